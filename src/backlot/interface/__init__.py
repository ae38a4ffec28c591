"""Terminal interface for Backlot."""

from .cli import main

__all__ = ["main"]
