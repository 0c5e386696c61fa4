"""Console presentation for VideoScribe."""

from .console_screen import ConsoleScreen

__all__ = ["ConsoleScreen"]
