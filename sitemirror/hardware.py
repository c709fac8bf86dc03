"""Worker sizing for parallel asset downloads."""

import os

MIN_WORKERS = 1
# Per-page parallelism for asset downloads; more mostly adds load on the remote host.
SAFE_ASSET_WORKERS = 8


def default_workers() -> int:
    """Suggested number of asset download workers from CPU count."""
    n = os.cpu_count()
    if n is None or n < 1:
        return MIN_WORKERS
    return max(MIN_WORKERS, min(n, SAFE_ASSET_WORKERS))


def clamp_workers(requested: int | None, n_items: int) -> int:
    """Effective worker count: requested (or default), capped by the work available."""
    workers = requested if requested is not None else default_workers()
    workers = max(MIN_WORKERS, min(workers, SAFE_ASSET_WORKERS))
    return max(MIN_WORKERS, min(workers, n_items or 1))
