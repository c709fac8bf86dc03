"""Point asset references in a parsed page at their downloaded local copies."""

from typing import Callable

from bs4 import BeautifulSoup

from sitemirror.registry import AssetRegistry
from sitemirror.scanner import (
    SRCSET_SELECTOR,
    STYLE_URL_RE,
    attribute_shapes,
    parse_srcset,
    resolve_url,
)

LOCAL_BASE_HREF = "./"


def rewrite_srcset(value: str, local_for: Callable[[str], str | None]) -> str:
    """
    Replace each srcset entry's URL with local_for(url) when it returns a path.
    Descriptors (1x, 480w) are kept; entries are joined with ", ".
    """
    parts: list[str] = []
    for url, descriptor in parse_srcset(value):
        local = local_for(url) or url
        parts.append(f"{local} {descriptor}" if descriptor else local)
    return ", ".join(parts)


def rewrite_style(value: str, local_for: Callable[[str], str | None]) -> str:
    """Replace url(...) values that have a local copy with url('<local>')."""

    def _sub(m) -> str:
        local = local_for(m.group(1).strip())
        return f"url('{local}')" if local else m.group(0)

    return STYLE_URL_RE.sub(_sub, value)


def ensure_base_href(soup: BeautifulSoup) -> None:
    """Insert <base href="./"> at the top of <head> when the page has no <base>."""
    if soup.find("base") is not None:
        return
    base = soup.new_tag("base", href=LOCAL_BASE_HREF)
    head = soup.head
    if head is None:
        head = soup.new_tag("head")
        if soup.html is not None:
            soup.html.insert(0, head)
        else:
            soup.insert(0, head)
    head.insert(0, base)


def rewrite(soup: BeautifulSoup, registry: AssetRegistry, base_url: str) -> None:
    """
    Rewrite every known reference shape in place using the registry as the lookup table.
    References whose URL was not downloaded stay untouched. Idempotent for a given registry:
    attribute values this function wrote earlier are recognized and left alone.
    """

    def local_for(raw: str | None) -> str | None:
        url = resolve_url(base_url, raw)
        return registry.lookup(url) if url else None

    def _set(tag, attr: str, value: str) -> None:
        if value != tag.get(attr):
            tag[attr] = value
            registry.mark_rewritten(tag, attr, value)

    for selector, attr, _category in attribute_shapes():
        for tag in soup.select(selector):
            current = tag.get(attr)
            if not current or registry.was_rewritten(tag, attr, current):
                continue
            local = local_for(current)
            if local:
                _set(tag, attr, local)

    for tag in soup.select(SRCSET_SELECTOR):
        srcset = tag.get("srcset") or ""
        if srcset.strip() and not registry.was_rewritten(tag, "srcset", srcset):
            _set(tag, "srcset", rewrite_srcset(srcset, local_for))

    for tag in soup.find_all(style=True):
        style = tag.get("style") or ""
        if "url(" in style.lower() and not registry.was_rewritten(tag, "style", style):
            _set(tag, "style", rewrite_style(style, local_for))

    ensure_base_href(soup)
