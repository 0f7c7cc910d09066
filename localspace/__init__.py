"""LocalSpace - local filesystem indexer with risk classification and live sync."""

from .version import __version__

__all__ = ["__version__"]
