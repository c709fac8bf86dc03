"""Map a discovered asset URL to its category folder, file extension and filename."""

import itertools
import re
import time
from urllib.parse import urlparse

CATEGORIES = ("css", "js", "images", "fonts", "media", "other")

# Substring fallback when the URL path has no usable suffix. Order matters: first hit wins.
KNOWN_EXTENSIONS = (
    (".css", "css"),
    (".js", "js"),
    (".png", "png"),
    (".jpg", "jpg"),
    (".jpeg", "jpg"),
    (".gif", "gif"),
    (".svg", "svg"),
    (".webp", "webp"),
    (".ico", "ico"),
    (".woff", "woff"),
    (".woff2", "woff2"),
    (".ttf", "ttf"),
    (".eot", "eot"),
    (".otf", "otf"),
    (".mp4", "mp4"),
    (".webm", "webm"),
    (".mp3", "mp3"),
    (".wav", "wav"),
)
FALLBACK_EXTENSION = "bin"
MAX_SUFFIX_LEN = 6

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")
_QUERY_OR_FRAGMENT_RE = re.compile(r"[?#]")

# Disambiguates synthesized names created within the same millisecond
_name_counter = itertools.count()


def normalize_category(hint: str | None) -> str:
    """Return hint if it names a known category folder, else 'other'."""
    hint = (hint or "").strip().lower()
    return hint if hint in CATEGORIES else "other"


def file_extension(url: str) -> str:
    """
    Extension for url: the suffix after the last '.' of the URL without query/fragment
    when it is short and slash-free, else a known extension found anywhere in the URL,
    else 'bin'. Permissive on purpose: any suffix of up to six characters is accepted.
    """
    if "." in url:
        path = _QUERY_OR_FRAGMENT_RE.split(url, maxsplit=1)[0]
        ext = path[path.rfind(".") + 1:].lower()
        if ext and len(ext) <= MAX_SUFFIX_LEN and "/" not in ext:
            return ext
    for needle, ext in KNOWN_EXTENSIONS:
        if needle in url:
            return ext
    return FALLBACK_EXTENSION


def classify(url: str, hint: str | None) -> tuple[str, str]:
    """Return (category, extension). Category comes from where the reference was found."""
    return normalize_category(hint), file_extension(url)


def sanitize_filename(name: str) -> str:
    """Replace anything outside [A-Za-z0-9._-] with '_'."""
    return _UNSAFE_CHARS_RE.sub("_", name)


def synthesize_filename(category: str, extension: str) -> str:
    """<category>_<id>.<extension> with a time-based id unique within the process."""
    uid = f"{int(time.time() * 1000)}{next(_name_counter):04d}"
    return f"{category}_{uid}.{extension}"


def asset_filename(url: str, category: str, extension: str) -> str:
    """
    Local filename for url. Uses the path basename when it has an extension,
    otherwise synthesizes one from category and extension.
    """
    try:
        path = urlparse(url).path
    except ValueError:
        return synthesize_filename(category, extension)
    if not path or path == "/":
        return synthesize_filename(category, extension)
    basename = path[path.rfind("/") + 1:]
    if not basename or "." not in basename:
        return synthesize_filename(category, extension)
    stem, _, ext = basename.rpartition(".")
    if not stem or not ext:
        return synthesize_filename(category, extension)
    return f"{sanitize_filename(stem)}.{sanitize_filename(ext)}"
