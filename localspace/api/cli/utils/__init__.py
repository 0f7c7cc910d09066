"""CLI utilities."""

from .rich_output import RichOutputFormatter, ScanProgressDisplay

__all__ = ["RichOutputFormatter", "ScanProgressDisplay"]
