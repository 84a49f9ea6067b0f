"""Release pipeline orchestration for a packaged macOS desktop app."""

__version__ = "0.1.0"
