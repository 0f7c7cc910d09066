"""User-facing entry points for LocalSpace."""
