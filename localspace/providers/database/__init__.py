"""Database providers for LocalSpace."""

from .duckdb_provider import DuckDBProvider

__all__ = ["DuckDBProvider"]
