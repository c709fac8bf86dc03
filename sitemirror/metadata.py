"""Single-page metadata: title, meta tags, links, images, CSS and JS references."""

import time
from collections import deque
from dataclasses import dataclass, field
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from sitemirror.fetcher import Fetcher
from sitemirror.validate import is_valid, sanitize


@dataclass
class PageMetadata:
    """Everything scrape_page() learns about one page."""

    url: str
    title: str = ""
    description: str = ""
    keywords: str = ""
    links: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    external_css: list[str] = field(default_factory=list)
    external_js: list[str] = field(default_factory=list)
    inline_css: str = ""
    inline_js: str = ""
    text: str = ""
    status_code: int = 0
    fetch_time: float = 0.0  # seconds
    raw_html: str = ""
    parsed_html: str = ""

    @property
    def assets(self) -> list[str]:
        return [*self.images, *self.external_css, *self.external_js]


def _abs_attr(soup: BeautifulSoup, selector: str, attr: str, base_url: str) -> list[str]:
    """Absolute values of attr for every tag matching selector, in document order."""
    out: list[str] = []
    for tag in soup.select(selector):
        raw = (tag.get(attr) or "").strip()
        if not raw:
            continue
        try:
            out.append(urljoin(base_url, raw))
        except ValueError:
            continue
    return out


def _meta_content(soup: BeautifulSoup, name: str) -> str:
    tag = soup.select_one(f"meta[name={name}]")
    return (tag.get("content") or "") if tag else ""


def _joined_blocks(soup: BeautifulSoup, selector: str) -> str:
    """Contents of matching tags, each followed by a blank line."""
    return "".join(f"{tag.string or ''}\n\n" for tag in soup.select(selector))


def extract_metadata(soup: BeautifulSoup, base_url: str) -> PageMetadata:
    """Collect metadata from an already parsed page."""
    title_tag = soup.find("title")
    return PageMetadata(
        url=base_url,
        title=title_tag.get_text() if title_tag else "",
        description=_meta_content(soup, "description"),
        keywords=_meta_content(soup, "keywords"),
        links=_abs_attr(soup, "a[href]", "href", base_url),
        images=_abs_attr(soup, "img[src]", "src", base_url),
        external_css=_abs_attr(soup, "link[rel~=stylesheet][href]", "href", base_url),
        external_js=_abs_attr(soup, "script[src]", "src", base_url),
        inline_css=_joined_blocks(soup, "style"),
        inline_js=_joined_blocks(soup, "script:not([src])"),
        text=" ".join(soup.get_text(separator=" ").split()),
        parsed_html=str(soup),
    )


def scrape_page(url: str, *, fetcher: Fetcher | None = None) -> PageMetadata:
    """
    Fetch url and extract its metadata. Raises ValueError for an invalid URL and
    PageFetchError when the page cannot be retrieved.
    """
    url = sanitize(url)
    if not is_valid(url):
        raise ValueError(f"Invalid URL format: {url}")
    start = time.monotonic()
    owns_fetcher = fetcher is None
    f = fetcher or Fetcher()
    try:
        page = f.fetch_page(url)
    finally:
        if owns_fetcher:
            f.close()
    meta = extract_metadata(page.soup, page.url)
    meta.status_code = page.status_code
    meta.raw_html = page.html
    meta.fetch_time = time.monotonic() - start
    return meta


def crawl_links(url: str, *, fetcher: Fetcher | None = None) -> deque[str]:
    """Links found on url, in document order (one level, no recursion)."""
    return deque(scrape_page(url, fetcher=fetcher).links)


def format_summary(meta: PageMetadata) -> str:
    """Human-readable overview of a scraped page."""
    lines = [
        f"URL: {meta.url}",
        f"Title: {meta.title}",
        f"Description: {meta.description}",
        f"Keywords: {meta.keywords}",
        f"Status Code: {meta.status_code}",
        f"Fetch Time: {meta.fetch_time * 1000:.0f} ms",
        "",
        f"Total Links: {len(meta.links)}",
        f"Total Images: {len(meta.images)}",
        f"External CSS Files: {len(meta.external_css)}",
        f"External JS Files: {len(meta.external_js)}",
    ]
    for label, urls in (("CSS", meta.external_css), ("JS", meta.external_js), ("Images", meta.images)):
        if urls:
            lines.append("")
            lines.append(f"{label}:")
            lines.extend(f"  {u}" for u in urls)
    return "\n".join(lines)
