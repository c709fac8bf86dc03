"""Per-mirror deduplication ledger: absolute asset URL -> local relative path."""

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class AssetEntry:
    """One downloaded asset. Created once per URL, never mutated."""

    url: str
    category: str
    local_path: str  # relative to the project folder, e.g. "css/site.css"
    size: int


class AssetRegistry:
    """
    Thread-safe registry shared by the fetch workers of a single mirror call.

    try_reserve() is the dedup gate: the first caller for a URL wins and is the only
    one allowed to fetch it. Failed fetches keep their reservation so a URL is
    attempted at most once per run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reserved: set[str] = set()
        self._entries: dict[str, AssetEntry] = {}
        self._claimed_paths: set[str] = set()
        # (id(tag), attribute) -> value the rewriter wrote there
        self._rewritten: dict[tuple[int, str], str] = {}

    def try_reserve(self, url: str) -> bool:
        """Atomically reserve url. True if newly reserved, False if already seen."""
        with self._lock:
            if url in self._reserved:
                return False
            self._reserved.add(url)
            return True

    def claim_path(self, category: str, filename: str) -> str:
        """Reserve a unique '<category>/<filename>' path, adding _1, _2... on collision."""
        stem, dot, ext = filename.rpartition(".")
        if not dot:
            stem, ext = filename, ""
        with self._lock:
            candidate = f"{category}/{filename}"
            n = 1
            while candidate in self._claimed_paths:
                name = f"{stem}_{n}.{ext}" if dot else f"{stem}_{n}"
                candidate = f"{category}/{name}"
                n += 1
            self._claimed_paths.add(candidate)
            return candidate

    def record(self, url: str, category: str, local_path: str, size: int) -> AssetEntry:
        """Store the mapping for a fetched URL. Raises ValueError if url is already recorded."""
        entry = AssetEntry(url=url, category=category, local_path=local_path, size=size)
        with self._lock:
            if url in self._entries:
                raise ValueError(f"Asset already recorded: {url}")
            self._reserved.add(url)
            self._claimed_paths.add(local_path)
            self._entries[url] = entry
        return entry

    def lookup(self, url: str) -> str | None:
        """Local path recorded for url, or None."""
        with self._lock:
            entry = self._entries.get(url)
        return entry.local_path if entry else None

    def mark_rewritten(self, tag: object, attr: str, value: str) -> None:
        """Remember that the rewriter set tag[attr] to value."""
        with self._lock:
            self._rewritten[(id(tag), attr)] = value

    def was_rewritten(self, tag: object, attr: str, value: str) -> bool:
        """True if tag[attr] still holds the value the rewriter wrote there."""
        with self._lock:
            return self._rewritten.get((id(tag), attr)) == value

    def entries(self) -> list[AssetEntry]:
        """Recorded entries in recording order."""
        with self._lock:
            return list(self._entries.values())

    @property
    def total_bytes(self) -> int:
        with self._lock:
            return sum(e.size for e in self._entries.values())

    def clear(self) -> None:
        with self._lock:
            self._reserved.clear()
            self._entries.clear()
            self._claimed_paths.clear()
            self._rewritten.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries
