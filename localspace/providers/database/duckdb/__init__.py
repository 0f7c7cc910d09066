"""DuckDB connection management and repositories."""
