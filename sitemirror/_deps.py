"""Startup dependency check for the CLI: offer a pip install when a library is missing."""

import importlib
import os
import subprocess
import sys

AUTO_INSTALL_ENV = "SITEMIRROR_AUTO_INSTALL_DEPS"

# import name -> (distribution on PyPI, what the mirror needs it for)
REQUIRED = {
    "httpx": ("httpx", "page and asset downloads"),
    "bs4": ("beautifulsoup4", "HTML parsing and rewriting"),
    "lxml": ("lxml", "parser backend for beautifulsoup4"),
    "tqdm": ("tqdm", "download progress bar"),
}

HELP = """\
sitemirror cannot start, some libraries are missing:
{missing}

Install them with:
    pip install {packages}
or, from a source checkout:
    pip install -e .
"""


def auto_install_enabled() -> bool:
    """Auto-install is on unless SITEMIRROR_AUTO_INSTALL_DEPS is 0/false/no."""
    return os.environ.get(AUTO_INSTALL_ENV, "1").strip().lower() not in ("0", "false", "no", "off")


def missing_required() -> dict[str, tuple[str, str]]:
    """Required libraries that fail to import, keyed by import name."""
    missing = {}
    for module, info in REQUIRED.items():
        try:
            importlib.import_module(module)
        except ImportError:
            missing[module] = info
    return missing


def _pip_install(packages: list[str]) -> int:
    cmd = [sys.executable, "-m", "pip", "install", "--quiet", *packages]
    print(f"Installing {' '.join(packages)} ...", file=sys.stderr)
    try:
        return subprocess.run(cmd).returncode
    except OSError as e:
        print(f"Could not run pip: {e}", file=sys.stderr)
        return 1


def check_required() -> None:
    """
    Return quietly when every library imports. Otherwise try a pip install (unless
    disabled through the environment) and exit; the command has to be re-run so the
    fresh packages are importable.
    """
    missing = missing_required()
    if not missing:
        return
    packages = [dist for dist, _purpose in missing.values()]
    if auto_install_enabled():
        if _pip_install(packages) == 0:
            print("Done. Run the command again.", file=sys.stderr)
            sys.exit(0)
        print("Automatic install failed.", file=sys.stderr)
    lines = "\n".join(f"  - {dist} ({purpose})" for dist, purpose in missing.values())
    print(HELP.format(missing=lines, packages=" ".join(packages)), file=sys.stderr)
    sys.exit(1)
