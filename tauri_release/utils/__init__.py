"""Utility functions and classes for tauri-release."""

from tauri_release.utils.exceptions import (
    ConfigDetectionFailure,
    ConfigurationError,
    MissingProjectPath,
    NoArtifactsFound,
    ProcessFailure,
    ReleaseError,
    TauriReleaseError,
)
from tauri_release.utils.result import Result

__all__ = [
    "ConfigDetectionFailure",
    "ConfigurationError",
    "MissingProjectPath",
    "NoArtifactsFound",
    "ProcessFailure",
    "ReleaseError",
    "Result",
    "TauriReleaseError",
]
