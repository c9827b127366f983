"""Publishing of build artifacts to hosted releases."""

from __future__ import annotations

from tauri_release.release.client import ReleaseClient, asset_name
from tauri_release.release.github import GitHubReleaseClient
from tauri_release.release.updater import build_manifest

__all__ = [
    "GitHubReleaseClient",
    "ReleaseClient",
    "asset_name",
    "build_manifest",
]
