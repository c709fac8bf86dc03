"""Mirror a web page and its directly referenced assets for offline viewing."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sitemirror")
except PackageNotFoundError:
    __version__ = "0.0.0+dev"
