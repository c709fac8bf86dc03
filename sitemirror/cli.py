"""sitemirror CLI. Invoked as `sitemirror` when installed with pip install -e ."""

import argparse
import logging
import sys
from pathlib import Path

from sitemirror._deps import check_required
from sitemirror.hardware import SAFE_ASSET_WORKERS, default_workers
from sitemirror.storage import OUTPUT_STRUCTURE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitemirror",
        description="Save a web page and its stylesheets, scripts, images, fonts and media for offline viewing.",
        epilog=f"Output layout: {OUTPUT_STRUCTURE}",
    )
    parser.add_argument("--url", nargs="*", default=None, metavar="URL", help="URL(s) to mirror (one or more)")
    parser.add_argument("--out-dir", default="output", help="Output directory (default: output)")
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="N",
        help=f"Parallel asset downloads (default: auto from CPU, max {SAFE_ASSET_WORKERS})",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Download one asset at a time. Equivalent to --workers 1.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECS",
        help="Per-request timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=0,
        metavar="N",
        help="Retry each request N times on connection errors or timeouts (default: 0)",
    )
    parser.add_argument(
        "--reports",
        action="store_true",
        help="Also write README.md, structure_prompt.txt and full_source_code.txt into the mirror.",
    )
    parser.add_argument(
        "--info",
        action="store_true",
        help="Print page metadata (title, meta tags, CSS/JS/image references) instead of mirroring.",
    )
    parser.add_argument(
        "--links",
        action="store_true",
        help="Print the links found on the page instead of mirroring.",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bar (e.g. for scripting)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    return parser


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    if quiet and not verbose:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def main(argv: list[str] | None = None) -> None:
    check_required()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.url or not [u for u in args.url if u and str(u).strip()]:
        parser.error("At least one URL is required.")
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")
    if args.timeout is not None and args.timeout <= 0:
        parser.error("--timeout must be positive")

    _configure_logging(args.verbose, args.quiet)

    # Imported after the dependency check so a missing library gets an install hint
    from sitemirror.fetcher import DEFAULT_TIMEOUT, Fetcher, PageFetchError
    from sitemirror.metadata import format_summary, scrape_page
    from sitemirror.mirror import mirror

    urls = [u.strip() for u in args.url if u and u.strip()]
    timeout = args.timeout or DEFAULT_TIMEOUT
    workers = 1 if args.sequential else (args.workers or default_workers())
    out_dir = Path(args.out_dir)
    failures = 0

    for i, url in enumerate(urls):
        if len(urls) > 1:
            print(f"\n--- Site {i + 1}/{len(urls)}: {url} ---", file=sys.stderr)
        if args.info or args.links:
            try:
                with Fetcher(timeout=timeout, retries=args.retries) as fetcher:
                    meta = scrape_page(url, fetcher=fetcher)
            except (ValueError, PageFetchError) as e:
                print(f"Error: {e}", file=sys.stderr)
                failures += 1
                continue
            if args.info:
                print(format_summary(meta))
            if args.links:
                for link in meta.links:
                    print(link)
            continue

        result = mirror(
            url,
            out_dir,
            workers=workers,
            timeout=timeout,
            retries=args.retries,
            show_progress=not args.no_progress,
            reports=args.reports,
        )
        if result.success:
            print(f"  {result.message}", file=sys.stderr)
            print(f"  Time: {result.elapsed:.2f}s", file=sys.stderr)
            print(f"  Open {result.project_folder / 'index.html'} in a browser to view the local copy.", file=sys.stderr)
        else:
            print(f"  {result.message}", file=sys.stderr)
            failures += 1

    if failures:
        sys.exit(1)
    print("\nDone.", file=sys.stderr)


if __name__ == "__main__":
    main()
