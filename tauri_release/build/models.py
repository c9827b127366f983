"""Value objects passed between the build and release stages."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Artifact:
    """A file produced by the Tauri CLI.

    Attributes:
        path: Absolute path of the file
        arch: Architecture tag (``"mobile"`` for android/ios outputs)
    """

    path: pathlib.Path
    arch: str

    def with_path(self, path: pathlib.Path) -> Artifact:
        return replace(self, path=path)


@dataclass(frozen=True)
class TargetInfo:
    """Operating system and architecture a build targets."""

    platform: str
    arch: str


@dataclass(frozen=True)
class ProjectInfo:
    """Metadata read from the Tauri project configuration.

    Attributes:
        name: Product name used in bundle file names
        version: Application version
        tauri_path: Directory holding ``tauri.conf.json``
        unzipped_sigs: Updater signatures cover the installers themselves
            instead of zipped updater bundles
        wix_language: WiX languages MSI installers are built for
        rpm_release: Release field of generated RPM packages
        is_v2: The config uses the Tauri 2 layout
    """

    name: str
    version: str
    tauri_path: pathlib.Path
    unzipped_sigs: bool = False
    wix_language: Tuple[str, ...] = ("en-US",)
    rpm_release: str = "1"
    is_v2: bool = False


@dataclass(frozen=True)
class ReleaseTarget:
    """Identifies the release assets are published to."""

    owner: str
    repo: str
    tag_name: str
    release_id: Optional[int] = None
    draft: bool = False
    prerelease: bool = False
    name: str = ""
    body: str = ""
    commitish: Optional[str] = None


@dataclass(frozen=True)
class ReleaseData:
    """A release as returned by the hosting API."""

    id: int
    upload_url: str
    html_url: str


@dataclass(frozen=True)
class UpdateManifestRequest:
    """Everything needed to generate and upload an updater manifest."""

    owner: str
    repo: str
    version: str
    notes: str
    tag_name: Optional[str]
    release_id: int
    artifacts: Tuple[Artifact, ...]
    target_info: TargetInfo
    unzipped_sigs: bool = False
    prefer_nsis: bool = False
    keep_universal: bool = False


@dataclass
class RunResult:
    """Outputs of a run."""

    artifacts: List[Artifact] = field(default_factory=list)
    app_version: Optional[str] = None
    release: Optional[ReleaseData] = None

    @property
    def artifact_paths(self) -> List[str]:
        return [str(artifact.path) for artifact in self.artifacts]
