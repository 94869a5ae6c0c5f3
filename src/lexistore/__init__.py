"""lexistore - Embedded SQLite store and disk sync for a digitized Hebrew lexicon."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("lexistore")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]
