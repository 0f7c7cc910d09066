"""Shared helpers for LocalSpace."""
