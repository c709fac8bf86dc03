"""Optional text reports written next to a mirror: README, structure notes, full source."""

import re
from datetime import datetime
from pathlib import Path
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from sitemirror.registry import AssetRegistry
from sitemirror.storage import write_text

SOURCE_FILE = "full_source_code.txt"
STRUCTURE_FILE = "structure_prompt.txt"
README_FILE = "README.md"
RULE = "-" * 40

_MULTI_SPACE_RE = re.compile(r"\s{2,}")
_BLANK_LINES_RE = re.compile(r"\n\s*\n")


def format_html_for_text(html: str) -> str:
    """Put tags on their own lines and squeeze whitespace, for reading in a text file."""
    text = html.replace("><", ">\n<").replace("/>", "/>\n").replace("</", "\n</")
    text = _MULTI_SPACE_RE.sub(" ", text)
    text = _BLANK_LINES_RE.sub("\n", text)
    return text.strip()


def _host(url: str) -> str:
    return urlparse(url).hostname or url


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _folder_tree(project_name: str) -> str:
    return "\n".join(
        [
            f"{project_name}/",
            "|-- index.html              # Main HTML file",
            f"|-- {SOURCE_FILE}    # Complete source code as text",
            "|-- css/                    # Stylesheets",
            "|-- js/                     # JavaScript files",
            "|-- images/                 # Images (png, jpg, svg, webp, ...)",
            "|-- fonts/                  # Font files (woff, woff2, ttf, eot, otf)",
            "|-- media/                  # Video and audio files",
            "|-- other/                  # Other resources",
            f"|-- {STRUCTURE_FILE}    # Structure notes",
            f"`-- {README_FILE}               # Project documentation",
        ]
    )


def build_source_report(soup: BeautifulSoup, page_url: str, registry: AssetRegistry, total_files: int) -> str:
    lines = [
        "=" * 80,
        "COMPREHENSIVE WEBSITE SOURCE CODE",
        "=" * 80,
        "WEBSITE INFORMATION:",
        RULE,
        f"URL: {page_url}",
        f"Downloaded: {_timestamp()}",
        f"Total Files: {total_files}",
        "HTML STRUCTURE:",
        RULE,
        format_html_for_text(str(soup)),
        "CSS STYLES:",
        RULE,
    ]
    lines.extend(tag.string or "" for tag in soup.select("style"))
    lines += ["JAVASCRIPT CODE:", RULE]
    lines.extend(tag.string or "" for tag in soup.select("script:not([src])"))
    lines += ["META INFORMATION:", RULE]
    for meta in soup.select("meta"):
        key = meta.get("name") or meta.get("property")
        if key:
            lines.append(f"{key}: {meta.get('content') or ''}")
    lines += ["DOWNLOADED RESOURCES:", RULE]
    lines.extend(f"{e.url} -> {e.local_path}" for e in registry.entries())
    return "\n".join(lines) + "\n"


def build_structure_report(project_name: str, page_url: str, total_files: int) -> str:
    return "\n".join(
        [
            "WEBSITE STRUCTURE",
            "=================",
            "",
            f"Website: {_host(page_url)}",
            f"Original URL: {page_url}",
            f"Downloaded: {_timestamp()}",
            f"Total Files: {total_files}",
            "",
            "FOLDER STRUCTURE:",
            RULE,
            _folder_tree(project_name),
            "",
            "HOW TO USE LOCALLY:",
            RULE,
            "1. Open 'index.html' in a web browser",
            "2. Downloaded resources load from the local folders",
            "3. Resources that failed to download still point at the original site",
        ]
    ) + "\n"


def build_readme(project_name: str, page_url: str) -> str:
    return "\n".join(
        [
            f"# {_host(page_url)} - Local Copy",
            "",
            "Local copy of a web page and its directly referenced assets.",
            "",
            "## Project Information",
            f"- **Original URL**: {page_url}",
            f"- **Download Date**: {_timestamp()}",
            "- **Local File**: `index.html`",
            "",
            "## Folder Structure",
            "```",
            _folder_tree(project_name),
            "```",
        ]
    ) + "\n"


def write_reports(
    project_folder: Path, page_url: str, soup: BeautifulSoup, registry: AssetRegistry, total_files: int
) -> list[Path]:
    """Write the three report files into project_folder; return their paths."""
    name = project_folder.name
    outputs = {
        SOURCE_FILE: build_source_report(soup, page_url, registry, total_files),
        STRUCTURE_FILE: build_structure_report(name, page_url, total_files),
        README_FILE: build_readme(name, page_url),
    }
    written: list[Path] = []
    for filename, text in outputs.items():
        path = project_folder / filename
        write_text(path, text)
        written.append(path)
    return written
