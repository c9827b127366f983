"""Build Tauri applications and publish them to GitHub releases."""

from tauri_release.__version__ import __version__

__all__ = ["__version__"]
