"""Core domain types, models and configuration for LocalSpace."""
