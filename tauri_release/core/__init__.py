"""Core services shared by the build and release packages."""

from tauri_release.core.logging_manager import LoggingConfig, LoggingManager

__all__ = ["LoggingConfig", "LoggingManager"]
