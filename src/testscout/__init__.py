"""Static test framework detection for JavaScript/TypeScript workspaces."""

__version__ = "0.3.0"
