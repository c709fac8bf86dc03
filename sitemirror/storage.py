"""Project folder layout and file writing."""

import logging
from datetime import datetime
from pathlib import Path
from urllib.parse import urlparse

from sitemirror.classify import CATEGORIES

logger = logging.getLogger("sitemirror.storage")

OUTPUT_STRUCTURE = "<host>_website_<YYYYMMDD_HHMMSS>/index.html|css|js|images|fonts|media|other"
ASSET_FOLDERS = CATEGORIES
INDEX_FILE = "index.html"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def host_slug(url: str) -> str:
    """Host of url with dots replaced by underscores ('unknown' when missing)."""
    host = urlparse(url).hostname or "unknown"
    return host.replace(".", "_")


def project_folder_name(url: str, now: datetime | None = None) -> str:
    """<host-with-dots-as-underscores>_website_<YYYYMMDD_HHMMSS>"""
    stamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return f"{host_slug(url)}_website_{stamp}"


def create_project_tree(out_dir: Path, url: str, now: datetime | None = None) -> Path:
    """
    Create the project folder and its asset subfolders. Raises OSError when the
    project folder itself cannot be created; subfolder failures are only logged.
    """
    project = Path(out_dir) / project_folder_name(url, now)
    project.mkdir(parents=True, exist_ok=True)
    for name in ASSET_FOLDERS:
        try:
            (project / name).mkdir(exist_ok=True)
        except OSError as e:
            logger.warning("Could not create %s folder: %s", name, e)
    return project


def write_text(path: Path, text: str) -> int:
    """Write text as UTF-8; return the number of bytes written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = text.encode("utf-8")
    path.write_bytes(data)
    return len(data)


def write_binary(path: Path, data: bytes) -> int:
    """Write binary data; return its size."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return len(data)
