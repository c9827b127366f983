"""Interface the orchestrator uses to publish releases."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from tauri_release.build.models import Artifact, ReleaseData, UpdateManifestRequest

APP_ARCHIVE_SUFFIX = ".app.tar.gz"


@runtime_checkable
class ReleaseClient(Protocol):
    """Protocol describing release hosting backends."""

    def fetch_or_create_release(
            self,
            owner: str,
            repo: str,
            tag_name: str,
            name: Optional[str] = None,
            body: Optional[str] = None,
            commitish: Optional[str] = None,
            draft: bool = False,
            prerelease: bool = False,
    ) -> ReleaseData:
        """Return the release for ``tag_name``, creating it when missing."""
        ...

    def upload_assets(
            self, owner: str, repo: str, release_id: int, artifacts: Sequence[Artifact]
    ) -> None:
        """Upload ``artifacts``, replacing assets with the same name."""
        ...

    def upload_update_manifest(self, request: UpdateManifestRequest) -> None:
        """Generate and upload the updater manifest."""
        ...


def asset_name(artifact: Artifact) -> str:
    """Name an artifact is uploaded under.

    macOS updater archives are named after the app only, so the architecture
    is added to keep archives of different builds apart. Spaces become dots,
    as GitHub would rename them anyway.
    """
    name = artifact.path.name
    index = name.find(APP_ARCHIVE_SUFFIX)
    if index > 0:
        name = f"{name[:index]}_{artifact.arch}{name[index:]}"
    return name.replace(" ", ".")
