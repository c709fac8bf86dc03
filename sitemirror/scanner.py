"""
Enumerate asset references in a parsed page.

Reference shapes are listed explicitly rather than derived from "any URL-bearing
attribute": resource attributes in HTML are irregular (srcset lists, CSS inside a
style attribute), and an explicit list avoids rewriting unrelated attributes.
"""

import re
from dataclasses import dataclass, field
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from sitemirror.fetcher import is_downloadable

# (CSS selector, attribute, category), scanned in this order before srcset and style shapes
ATTRIBUTE_SHAPES = (
    ("link[rel~=stylesheet][href]", "href", "css"),
    ("script[src]", "src", "js"),
    ("img[src]", "src", "images"),
    ("link[rel~=icon][href], link[rel~=apple-touch-icon][href]", "href", "images"),
    ("video source[src], audio source[src], video[src], audio[src]", "src", "media"),
)
SRCSET_SELECTOR = "picture source[srcset], source[srcset]"
SRCSET_CATEGORY = "images"
STYLE_CATEGORY = "images"
# Font files linked directly from the page, matched by href substring; scanned last
FONT_SHAPE = (
    "link[href*='.woff'], link[href*='.woff2'], link[href*='.ttf'], "
    "link[href*='.eot'], link[href*='.otf']",
    "href",
    "fonts",
)

# url(...) inside an inline style attribute. Group 1 is the URL without quotes.
STYLE_URL_RE = re.compile(r"url\(['\"]?([^'\")]*)['\"]?\)", re.IGNORECASE)
SRCSET_SPLIT_RE = re.compile(r"\s*,\s*")

KIND_ATTRIBUTE = "attribute"
KIND_SRCSET = "srcset"
KIND_STYLE = "style"


@dataclass(frozen=True)
class AssetReference:
    """One occurrence of an asset URL in the document."""

    url: str  # absolute
    kind: str  # attribute | srcset | style
    category: str
    attr: str
    tag: Tag = field(compare=False, repr=False)


def attribute_shapes() -> tuple[tuple[str, str, str], ...]:
    """All single-URL attribute shapes, fonts included."""
    return ATTRIBUTE_SHAPES + (FONT_SHAPE,)


def effective_base_url(soup: BeautifulSoup, page_url: str) -> str:
    """Base for relative references: <base href> resolved against the page URL, if present."""
    base = soup.find("base", href=True)
    if base is None:
        return page_url
    href = (base.get("href") or "").strip()
    if not href:
        return page_url
    try:
        return urljoin(page_url, href)
    except ValueError:
        return page_url


def resolve_url(base_url: str, raw: str | None) -> str | None:
    """Absolute URL for a raw reference, or None if it is not downloadable."""
    if not is_downloadable(raw):
        return None
    try:
        absolute = urljoin(base_url, raw.strip())
    except ValueError:
        return None
    return absolute if is_downloadable(absolute) else None


def parse_srcset(value: str) -> list[tuple[str, str]]:
    """Split a srcset into (url, descriptor) pairs; descriptor is '' when absent."""
    entries: list[tuple[str, str]] = []
    for part in SRCSET_SPLIT_RE.split(value.strip()):
        bits = part.split()
        if not bits:
            continue
        entries.append((bits[0], " ".join(bits[1:])))
    return entries


def style_urls(style: str) -> list[str]:
    """Raw url(...) values of an inline style, skipping data: and fragment-only values."""
    urls: list[str] = []
    for m in STYLE_URL_RE.finditer(style):
        raw = m.group(1).strip()
        if not raw or raw.startswith(("data:", "#")):
            continue
        urls.append(raw)
    return urls


def _scan_attribute_shape(
    soup: BeautifulSoup, base_url: str, shape: tuple[str, str, str]
) -> list[AssetReference]:
    selector, attr, category = shape
    refs: list[AssetReference] = []
    for tag in soup.select(selector):
        url = resolve_url(base_url, tag.get(attr))
        if url:
            refs.append(AssetReference(url=url, kind=KIND_ATTRIBUTE, category=category, attr=attr, tag=tag))
    return refs


def scan(soup: BeautifulSoup, base_url: str) -> list[AssetReference]:
    """
    Return every asset reference in the document, in scan order, resolved against
    base_url. Duplicates are kept; deduplication belongs to the registry.
    Must run before the document is rewritten.
    """
    refs: list[AssetReference] = []
    for shape in ATTRIBUTE_SHAPES:
        refs.extend(_scan_attribute_shape(soup, base_url, shape))

    for tag in soup.select(SRCSET_SELECTOR):
        for raw, _descriptor in parse_srcset(tag.get("srcset") or ""):
            url = resolve_url(base_url, raw)
            if url:
                refs.append(AssetReference(url=url, kind=KIND_SRCSET, category=SRCSET_CATEGORY, attr="srcset", tag=tag))

    for tag in soup.find_all(style=True):
        for raw in style_urls(tag.get("style") or ""):
            url = resolve_url(base_url, raw)
            if url:
                refs.append(AssetReference(url=url, kind=KIND_STYLE, category=STYLE_CATEGORY, attr="style", tag=tag))

    refs.extend(_scan_attribute_shape(soup, base_url, FONT_SHAPE))
    return refs
