import threading
from datetime import datetime

import httpx
import pytest

from sitemirror.fetcher import parse_html
from sitemirror.mirror import MirrorResult, download_assets, mirror, mirror_async
from sitemirror.registry import AssetRegistry
from sitemirror.reports import README_FILE, SOURCE_FILE, STRUCTURE_FILE
from sitemirror.scanner import scan

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)

PAGE_URL = "https://x.test/"
FOLDER = "x_test_website_20240102_030405"


def _serve_basic_site(site) -> None:
    site.add(
        PAGE_URL,
        """<html><head>
        <title>Test</title>
        <link rel="stylesheet" href="https://x.test/static/site.css">
        <script src="https://x.test/static/app.js"></script>
        </head><body>
        <img src="https://x.test/img/logo.png">
        <div style="background-image: url('https://x.test/img/bg.jpg')"></div>
        </body></html>""",
    )
    site.add("https://x.test/static/site.css", "body { color: red }", "text/css")
    site.add("https://x.test/static/app.js", "console.log(1)", "application/javascript")
    site.add("https://x.test/img/logo.png", b"\x89PNG-logo", "image/png")
    site.add("https://x.test/img/bg.jpg", b"\xff\xd8JPEG-bg", "image/jpeg")


def test_end_to_end_mirror(site, tmp_path):
    _serve_basic_site(site)
    result = mirror(PAGE_URL, tmp_path, fetcher=site.fetcher(), now=FIXED_NOW)

    assert result.success, result.message
    assert result.total_files == 5
    assert result.project_folder == (tmp_path / FOLDER).resolve()
    assert result.message.startswith("Successfully downloaded 5 files (")
    assert result.message.endswith(f"KB) to: {result.project_folder}")

    project = result.project_folder
    for name in ("css", "js", "images", "fonts", "media", "other"):
        assert (project / name).is_dir()
    assert (project / "css" / "site.css").read_bytes() == b"body { color: red }"
    assert (project / "js" / "app.js").read_bytes() == b"console.log(1)"
    assert (project / "images" / "logo.png").read_bytes() == b"\x89PNG-logo"
    assert (project / "images" / "bg.jpg").read_bytes() == b"\xff\xd8JPEG-bg"

    html = (project / "index.html").read_text(encoding="utf-8")
    assert "https://x.test/" not in html
    assert 'href="css/site.css"' in html
    assert 'src="js/app.js"' in html
    assert 'src="images/logo.png"' in html
    assert "url('images/bg.jpg')" in html
    assert '<base href="./"/>' in html

    asset_bytes = sum(len(b) for b in (b"body { color: red }", b"console.log(1)", b"\x89PNG-logo", b"\xff\xd8JPEG-bg"))
    assert result.total_bytes == asset_bytes + len(html.encode("utf-8"))


def test_same_asset_fetched_once(site, tmp_path):
    site.add(
        PAGE_URL,
        '<html><body><img id="a" src="/img/logo.png"><img id="b" src="https://x.test/img/logo.png">'
        '<div style="background:url(img/logo.png)"></div></body></html>',
    )
    site.add("https://x.test/img/logo.png", b"PNG", "image/png")
    result = mirror(PAGE_URL, tmp_path, fetcher=site.fetcher(), now=FIXED_NOW, workers=4)

    assert result.success
    assert site.hits["https://x.test/img/logo.png"] == 1
    assert result.total_files == 2
    soup = parse_html((result.project_folder / "index.html").read_text(encoding="utf-8"))
    assert soup.find(id="a")["src"] == soup.find(id="b")["src"] == "images/logo.png"
    assert soup.div["style"] == "background:url('images/logo.png')"


def test_failed_asset_keeps_original_reference(site, tmp_path):
    site.add(
        PAGE_URL,
        '<html><head><link rel="stylesheet" href="/a.css"><link rel="stylesheet" href="/b.css">'
        '<link rel="stylesheet" href="/c.css"></head><body></body></html>',
    )
    site.add("https://x.test/a.css", "a{}", "text/css")
    site.fail("https://x.test/b.css", httpx.ReadTimeout)
    site.add("https://x.test/c.css", "c{}", "text/css")

    result = mirror(PAGE_URL, tmp_path, fetcher=site.fetcher(), now=FIXED_NOW)

    assert result.success
    assert result.total_files == 3
    hrefs = [link["href"] for link in parse_html((result.project_folder / "index.html").read_text()).select("link")]
    assert hrefs == ["css/a.css", "/b.css", "css/c.css"]
    assert sorted(p.name for p in (result.project_folder / "css").iterdir()) == ["a.css", "c.css"]


def test_empty_response_counts_as_failure(site, tmp_path):
    site.add(PAGE_URL, '<html><body><img src="/empty.png"></body></html>')
    site.add("https://x.test/empty.png", b"", "image/png")
    result = mirror(PAGE_URL, tmp_path, fetcher=site.fetcher(), now=FIXED_NOW)
    assert result.success
    assert result.total_files == 1
    assert 'src="/empty.png"' in (result.project_folder / "index.html").read_text()


def test_non_downloadable_references_are_never_fetched(site, tmp_path):
    site.add(
        PAGE_URL,
        '<html><head><link rel="stylesheet" href="#section"><link rel="icon" href="data:image/png;base64,AAAA">'
        '</head><body><script src="javascript:void(0)"></script></body></html>',
    )
    result = mirror(PAGE_URL, tmp_path, fetcher=site.fetcher(), now=FIXED_NOW)
    assert result.success
    assert result.total_files == 1
    assert list(site.hits) == [PAGE_URL]
    html = (result.project_folder / "index.html").read_text()
    assert 'href="data:image/png;base64,AAAA"' in html
    assert 'href="#section"' in html


@pytest.mark.parametrize("workers", [1, 4])
def test_colliding_basenames_get_distinct_paths(site, tmp_path, workers):
    site.add(PAGE_URL, '<html><body><img src="/a/logo.png"><img src="/b/logo.png"></body></html>')
    site.add("https://x.test/a/logo.png", b"A", "image/png")
    site.add("https://x.test/b/logo.png", b"B", "image/png")
    result = mirror(PAGE_URL, tmp_path, fetcher=site.fetcher(), now=FIXED_NOW, workers=workers)
    srcs = [img["src"] for img in parse_html((result.project_folder / "index.html").read_text()).find_all("img")]
    assert srcs == ["images/logo.png", "images/logo_1.png"]
    assert (result.project_folder / "images" / "logo.png").read_bytes() == b"A"
    assert (result.project_folder / "images" / "logo_1.png").read_bytes() == b"B"


@pytest.mark.parametrize("workers", [1, 4])
def test_page_reference_matching_another_assets_local_name(site, tmp_path, workers):
    site.add(PAGE_URL, '<html><body><img id="cdn" src="https://cdn.test/logo.png"><img id="own" src="images/logo.png"></body></html>')
    site.add("https://cdn.test/logo.png", b"CDN", "image/png")
    site.add("https://x.test/images/logo.png", b"OWN", "image/png")
    result = mirror(PAGE_URL, tmp_path, fetcher=site.fetcher(), now=FIXED_NOW, workers=workers)

    assert result.success
    soup = parse_html((result.project_folder / "index.html").read_text(encoding="utf-8"))
    own = soup.find(id="own")["src"]
    cdn = soup.find(id="cdn")["src"]
    assert own != cdn
    assert (result.project_folder / own).read_bytes() == b"OWN"
    assert (result.project_folder / cdn).read_bytes() == b"CDN"


@pytest.mark.parametrize("url", ["", "   ", "not a url", "https://exa mple.com"])
def test_invalid_url_fails_before_any_io(site, tmp_path, url):
    result = mirror(url, tmp_path / "out", fetcher=site.fetcher())
    assert not result.success
    assert result.message.startswith("Invalid URL")
    assert result.project_folder is None
    assert not (tmp_path / "out").exists()
    assert not site.hits


def test_unreachable_page_is_reported(site, tmp_path):
    site.fail(PAGE_URL, httpx.ConnectError)
    result = mirror(PAGE_URL, tmp_path, fetcher=site.fetcher(), now=FIXED_NOW)
    assert not result.success
    assert result.message.startswith("Download failed: ")
    assert result.project_folder is None


def test_uncreatable_output_folder_is_reported(site, tmp_path):
    _serve_basic_site(site)
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    result = mirror(PAGE_URL, blocker, fetcher=site.fetcher(), now=FIXED_NOW)
    assert not result.success
    assert result.message.startswith("Download failed: ")
    assert not site.hits


def test_schemeless_url_is_sanitized(site, tmp_path):
    site.add(PAGE_URL, "<html><body>hi</body></html>")
    result = mirror("x.test/", tmp_path, fetcher=site.fetcher(), now=FIXED_NOW)
    assert result.success
    assert site.hits[PAGE_URL] == 1


@pytest.mark.parametrize("workers", [1, 4])
def test_worker_counts_give_same_result(site, tmp_path, workers):
    _serve_basic_site(site)
    result = mirror(PAGE_URL, tmp_path, fetcher=site.fetcher(), now=FIXED_NOW, workers=workers)
    assert result.success
    assert result.total_files == 5
    assert all(count == 1 for count in site.hits.values())


def test_repeated_calls_are_independent(site, tmp_path):
    _serve_basic_site(site)
    first = mirror(PAGE_URL, tmp_path / "one", fetcher=site.fetcher(), now=FIXED_NOW)
    second = mirror(PAGE_URL, tmp_path / "two", fetcher=site.fetcher(), now=FIXED_NOW)
    assert first.success and second.success
    assert first.total_files == second.total_files == 5
    assert site.hits["https://x.test/static/site.css"] == 2
    assert (second.project_folder / "css" / "site.css").exists()


def test_reports_are_optional(site, tmp_path):
    _serve_basic_site(site)
    plain = mirror(PAGE_URL, tmp_path / "plain", fetcher=site.fetcher(), now=FIXED_NOW)
    assert not (plain.project_folder / README_FILE).exists()

    with_reports = mirror(PAGE_URL, tmp_path / "full", fetcher=site.fetcher(), now=FIXED_NOW, reports=True)
    assert with_reports.total_files == plain.total_files
    for name in (README_FILE, SOURCE_FILE, STRUCTURE_FILE):
        assert (with_reports.project_folder / name).is_file()


def test_download_assets_skips_reserved_urls(site, tmp_path):
    site.add("https://x.test/a.png", b"A", "image/png")
    site.add("https://x.test/b.png", b"B", "image/png")
    refs = scan(parse_html('<img src="/a.png"><img src="/b.png">'), PAGE_URL)
    registry = AssetRegistry()
    registry.try_reserve("https://x.test/b.png")
    with site.fetcher() as f:
        entries = download_assets(refs, registry, f, tmp_path, workers=2)
    assert [e.url for e in entries] == ["https://x.test/a.png"]
    assert "https://x.test/b.png" not in site.hits


def test_mirror_async_calls_back_once(site, tmp_path):
    _serve_basic_site(site)
    done = threading.Event()
    results: list[MirrorResult] = []

    def on_done(result: MirrorResult) -> None:
        results.append(result)
        done.set()

    future = mirror_async(PAGE_URL, tmp_path, on_done=on_done, fetcher=site.fetcher(), now=FIXED_NOW)
    assert done.wait(timeout=10)
    assert future.result(timeout=10).success
    assert len(results) == 1
    assert results[0] is future.result()
