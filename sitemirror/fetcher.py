"""HTTP fetching for the entry page and its assets (User-Agent, timeouts, redirects)."""

import logging
import time
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger("sitemirror.fetcher")

# Browser-like UA; some servers refuse unknown clients
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
DEFAULT_TIMEOUT = 30.0
RETRY_BACKOFF = 2.0  # seconds grow as RETRY_BACKOFF ** attempt between retries

DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# Values that never point at a fetchable resource
NON_DOWNLOADABLE_PREFIXES = ("data:", "#", "javascript:", "mailto:")

# Transport-level failures: bad URL, unsupported scheme, DNS, connect, timeout
TRANSPORT_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class PageFetchError(RuntimeError):
    """The entry page could not be retrieved."""


@dataclass
class FetchedPage:
    """Entry page as returned by Fetcher.fetch_page."""

    url: str  # final URL after redirects; base for resolving relative references
    status_code: int
    html: str
    soup: BeautifulSoup
    elapsed: float


def is_downloadable(value: str | None) -> bool:
    """False for empty values and data:, fragment-only, javascript: and mailto: references."""
    if not value:
        return False
    value = value.strip()
    if not value:
        return False
    return not value.lower().startswith(NON_DOWNLOADABLE_PREFIXES)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


class Fetcher:
    """HTTP fetcher with connection pooling. Reuse for multiple requests; spawn() one per thread."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
        retries: int = 0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._headers = {**DEFAULT_HEADERS, **(headers or {})}
        self._retries = max(0, retries)
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def timeout(self) -> float:
        return self._timeout

    def spawn(self) -> "Fetcher":
        """Return a new Fetcher with the same config (for use in another thread)."""
        return Fetcher(
            timeout=self._timeout,
            headers=self._headers,
            retries=self._retries,
            transport=self._transport,
        )

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                follow_redirects=True,
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client and not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _get(self, url: str) -> httpx.Response:
        """GET with retries on transport errors. HTTP error statuses are returned, not raised."""
        last_exc: Exception | None = None
        for attempt in range(self._retries + 1):
            try:
                return self._get_client().get(url)
            except TRANSPORT_ERRORS as e:
                last_exc = e
                if attempt < self._retries:
                    wait = RETRY_BACKOFF ** attempt
                    logger.debug("Retrying %s in %.0fs after: %s", url, wait, e)
                    time.sleep(wait)
        raise last_exc  # type: ignore[misc]

    def fetch_page(self, url: str) -> FetchedPage:
        """Fetch and parse an HTML page. Non-2xx pages are still parsed. Raises PageFetchError."""
        start = time.monotonic()
        try:
            resp = self._get(url)
        except TRANSPORT_ERRORS as e:
            raise PageFetchError(f"Could not fetch {url}: {e}") from e
        try:
            html = resp.content.decode(resp.charset_encoding or "utf-8", errors="replace")
        except LookupError:
            html = resp.content.decode("utf-8", errors="replace")
        if resp.status_code >= 400:
            logger.warning("Page %s answered HTTP %d; parsing body anyway", url, resp.status_code)
        return FetchedPage(
            url=str(resp.url),
            status_code=resp.status_code,
            html=html,
            soup=parse_html(html),
            elapsed=time.monotonic() - start,
        )

    def fetch_bytes(self, url: str) -> bytes | None:
        """
        Fetch raw bytes with no size limit. Returns whatever body the server sent,
        even for error statuses; None on transport failure (logged, never raised).
        """
        try:
            resp = self._get(url)
        except TRANSPORT_ERRORS as e:
            logger.warning("Failed to download: %s - %s", url, e or type(e).__name__)
            return None
        if resp.status_code >= 400:
            logger.debug("HTTP %d for %s", resp.status_code, url)
        return resp.content


def fetch_page(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> FetchedPage:
    """Standalone fetch (creates temporary client). Prefer Fetcher for multiple requests."""
    with Fetcher(timeout=timeout) as f:
        return f.fetch_page(url)


def fetch_bytes(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> bytes | None:
    """Standalone fetch. Prefer Fetcher for multiple requests."""
    with Fetcher(timeout=timeout) as f:
        return f.fetch_bytes(url)
