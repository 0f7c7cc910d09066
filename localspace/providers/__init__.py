"""Storage providers for LocalSpace."""
