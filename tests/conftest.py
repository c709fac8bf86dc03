import threading
from collections import Counter

import httpx
import pytest

from sitemirror.fetcher import Fetcher


class FakeSite:
    """In-memory web server for httpx.MockTransport. Counts requests per URL."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes, str, dict[str, str]]] = {}
        self.errors: dict[str, type[httpx.TransportError]] = {}
        self.hits: Counter[str] = Counter()
        self.user_agents: list[str] = []
        self._lock = threading.Lock()

    def add(
        self,
        url: str,
        body: bytes | str,
        content_type: str = "text/html; charset=utf-8",
        status: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status, body, content_type, headers or {})

    def redirect(self, url: str, location: str, status: int = 301) -> None:
        self.routes[url] = (status, b"", "text/plain", {"location": location})

    def fail(self, url: str, exc: type[httpx.TransportError] = httpx.ReadTimeout) -> None:
        self.errors[url] = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        with self._lock:
            self.hits[url] += 1
            self.user_agents.append(request.headers.get("user-agent", ""))
        if url in self.errors:
            raise self.errors[url]("simulated failure", request=request)
        if url not in self.routes:
            return httpx.Response(404, content=b"")
        status, body, content_type, headers = self.routes[url]
        return httpx.Response(status, content=body, headers={"content-type": content_type, **headers})

    def fetcher(self, **kwargs) -> Fetcher:
        return Fetcher(transport=httpx.MockTransport(self.handler), **kwargs)

@pytest.fixture
def site() -> FakeSite:
    return FakeSite()

@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr("sitemirror.fetcher.time.sleep", lambda _secs: None)
