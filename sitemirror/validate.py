"""URL validation and normalization for user input."""

import re

URL_RE = re.compile(
    r"^(https?|ftp)://[-a-zA-Z0-9+&@#/%?=~_|!:,.;]*[-a-zA-Z0-9+&@#/%=~_|]$"
)

KNOWN_SCHEMES = ("http://", "https://", "ftp://")


def is_valid(url: str | None) -> bool:
    """True if url (trimmed) is an http, https or ftp URL with no stray characters."""
    if url is None or not url.strip():
        return False
    return URL_RE.match(url.strip()) is not None


def sanitize(url: str | None) -> str:
    """Trim whitespace and prepend https:// when no known scheme is present."""
    if url is None:
        return ""
    trimmed = url.strip()
    if not trimmed:
        return ""
    if not trimmed.startswith(KNOWN_SCHEMES):
        trimmed = f"https://{trimmed}"
    return trimmed
