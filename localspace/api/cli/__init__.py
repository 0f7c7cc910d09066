"""LocalSpace command line interface."""
