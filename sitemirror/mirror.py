"""
Mirror pipeline: fetch the entry page, download its assets, rewrite references, save.

Phases run strictly in order: scan -> fetch (parallel) -> rewrite -> serialize.
All state (registry, fetchers, counters) is created per call.
"""

import logging
import sys
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from tqdm import tqdm

from sitemirror.classify import asset_filename, classify
from sitemirror.fetcher import DEFAULT_TIMEOUT, Fetcher
from sitemirror.hardware import clamp_workers
from sitemirror.registry import AssetEntry, AssetRegistry
from sitemirror.reports import write_reports
from sitemirror.rewriter import rewrite
from sitemirror.scanner import AssetReference, effective_base_url, scan
from sitemirror.storage import INDEX_FILE, create_project_tree, write_binary, write_text
from sitemirror.validate import is_valid, sanitize

logger = logging.getLogger("sitemirror.mirror")


@dataclass(frozen=True)
class MirrorResult:
    """Outcome of one mirror call. project_folder is set only on success."""

    success: bool
    message: str
    project_folder: Path | None = None
    total_files: int = 0
    total_bytes: int = 0
    elapsed: float = 0.0  # seconds

    @property
    def total_kb(self) -> float:
        return self.total_bytes / 1024.0


def _plan_download(ref: AssetReference, registry: AssetRegistry) -> tuple[AssetReference, str, str]:
    """Category and claimed local path for a reserved reference."""
    category, extension = classify(ref.url, ref.category)
    return ref, category, registry.claim_path(category, asset_filename(ref.url, category, extension))


def _download_one(
    ref: AssetReference,
    category: str,
    local_path: str,
    fetcher: Fetcher,
    registry: AssetRegistry,
    project: Path,
) -> AssetEntry | None:
    """Fetch one reserved asset, write it to its claimed path and record it."""
    data = fetcher.fetch_bytes(ref.url)
    if not data:
        if data is not None:
            logger.warning("Failed to download %s: %s - empty response", ref.category, ref.url)
        return None
    try:
        write_binary(project / local_path, data)
    except OSError as e:
        logger.warning("Failed to save %s: %s - %s", ref.category, ref.url, e)
        return None
    entry = registry.record(ref.url, category, local_path, len(data))
    logger.info("Downloaded: %s -> %s", ref.url, local_path)
    return entry


def download_assets(
    refs: list[AssetReference],
    registry: AssetRegistry,
    fetcher: Fetcher,
    project: Path,
    *,
    workers: int | None = None,
    show_progress: bool = False,
) -> list[AssetEntry]:
    """
    Download every reference not yet reserved in the registry. Local paths are claimed
    in scan order before any fetch starts, so names do not depend on completion order.
    Returns once every attempt has resolved; failures are logged and skipped.
    """
    work = [_plan_download(ref, registry) for ref in refs if registry.try_reserve(ref.url)]
    if not work:
        return []
    effective = clamp_workers(workers, len(work))
    logger.info("Downloading %d assets (%d workers)...", len(work), effective)
    entries: list[AssetEntry] = []
    pbar = tqdm(total=len(work), desc="Assets", unit=" file", file=sys.stderr, disable=not show_progress)

    try:
        if effective == 1:
            for ref, category, local_path in work:
                entry = _download_one(ref, category, local_path, fetcher, registry, project)
                if entry:
                    entries.append(entry)
                pbar.update(1)
            return entries

        _thread_local = threading.local()
        _fetchers_to_close: list[Fetcher] = []
        _fetchers_lock = threading.Lock()

        def _get_thread_fetcher() -> Fetcher:
            f = getattr(_thread_local, "fetcher", None)
            if f is None:
                f = fetcher.spawn()
                with _fetchers_lock:
                    _fetchers_to_close.append(f)
                _thread_local.fetcher = f
            return f

        def _task(ref: AssetReference, category: str, local_path: str) -> AssetEntry | None:
            return _download_one(ref, category, local_path, _get_thread_fetcher(), registry, project)

        try:
            with ThreadPoolExecutor(max_workers=effective, thread_name_prefix="sitemirror-asset") as ex:
                futures = {ex.submit(_task, *item): item[0] for item in work}
                for fut in as_completed(futures):
                    ref = futures[fut]
                    try:
                        entry = fut.result()
                    except Exception as e:
                        logger.warning("Failed to download %s: %s - %s", ref.category, ref.url, e)
                        entry = None
                    if entry:
                        entries.append(entry)
                    pbar.update(1)
        finally:
            for f in _fetchers_to_close:
                f.close()
        return entries
    finally:
        pbar.close()


def mirror(
    url: str,
    out_dir: str | Path,
    *,
    workers: int | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = 0,
    fetcher: Fetcher | None = None,
    show_progress: bool = False,
    reports: bool = False,
    now: datetime | None = None,
) -> MirrorResult:
    """
    Mirror url into a new project folder under out_dir. Never raises: any fatal
    error (invalid URL, unreachable page, project folder not creatable) comes back
    as MirrorResult(success=False). Per-asset failures only leave that reference
    pointing at its original URL.
    """
    start = time.monotonic()
    url = sanitize(url)
    if not is_valid(url):
        return MirrorResult(
            success=False,
            message=f"Invalid URL: {url or '(empty)'}",
            elapsed=time.monotonic() - start,
        )

    registry = AssetRegistry()
    owns_fetcher = fetcher is None
    if fetcher is None:
        fetcher = Fetcher(timeout=timeout, retries=retries)
    try:
        project = create_project_tree(Path(out_dir), url, now)
        logger.info("Fetching page %s", url)
        page = fetcher.fetch_page(url)
        base_url = effective_base_url(page.soup, page.url)

        refs = scan(page.soup, base_url)
        logger.info("Found %d asset references", len(refs))
        download_assets(refs, registry, fetcher, project, workers=workers, show_progress=show_progress)

        rewrite(page.soup, registry, base_url)
        html_size = write_text(project / INDEX_FILE, str(page.soup))
        total_files = len(registry) + 1
        total_bytes = registry.total_bytes + html_size

        if reports:
            try:
                write_reports(project, url, page.soup, registry, total_files)
            except OSError as e:
                logger.warning("Could not write report files: %s", e)
    except Exception as e:
        logger.debug("Mirror of %s failed", url, exc_info=True)
        return MirrorResult(
            success=False,
            message=f"Download failed: {e}",
            total_files=len(registry),
            total_bytes=registry.total_bytes,
            elapsed=time.monotonic() - start,
        )
    finally:
        if owns_fetcher:
            fetcher.close()

    folder = project.resolve()
    registry.clear()
    return MirrorResult(
        success=True,
        message=f"Successfully downloaded {total_files} files ({total_bytes / 1024.0:.2f} KB) to: {folder}",
        project_folder=folder,
        total_files=total_files,
        total_bytes=total_bytes,
        elapsed=time.monotonic() - start,
    )


def mirror_async(
    url: str,
    out_dir: str | Path,
    *,
    on_done: Callable[[MirrorResult], None] | None = None,
    **kwargs,
) -> "Future[MirrorResult]":
    """
    Run mirror() on a background thread and return its Future. on_done(result) is
    called exactly once when the mirror finishes.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sitemirror")
    try:
        future = executor.submit(mirror, url, out_dir, **kwargs)
    finally:
        executor.shutdown(wait=False)
    if on_done is not None:
        future.add_done_callback(lambda f: on_done(f.result()))
    return future
