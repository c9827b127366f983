"""Generation of the ``latest.json`` manifest read by the Tauri updater."""

from __future__ import annotations

import datetime
import pathlib
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import structlog

from tauri_release.build.models import Artifact, UpdateManifestRequest

logger = structlog.get_logger(__name__)

MANIFEST_NAME = "latest.json"

UPDATER_OS = {"macos": "darwin", "windows": "windows", "linux": "linux"}
UPDATER_ARCH = {
    "x64": "x86_64",
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "x86": "i686",
    "i386": "i686",
    "i686": "i686",
    "arm64": "aarch64",
    "aarch64": "aarch64",
    "armhf": "armv7",
    "armv7": "armv7",
    "universal": "universal",
}


def updater_suffixes(platform: str, unzipped_sigs: bool, prefer_nsis: bool) -> Tuple[str, ...]:
    """File suffixes an updater bundle may have, most preferred first."""
    if platform == "macos":
        return (".app.tar.gz",)
    if platform == "linux":
        return (".AppImage",) if unzipped_sigs else (".AppImage.tar.gz",)
    if platform == "windows":
        msi, nsis = (".msi", "-setup.exe") if unzipped_sigs else (".msi.zip", ".nsis.zip")
        return (nsis, msi) if prefer_nsis else (msi, nsis)
    return ()


def signature_path(artifact: Artifact) -> pathlib.Path:
    return artifact.path.with_name(f"{artifact.path.name}.sig")


def select_updater_artifact(
        artifacts: Iterable[Artifact], suffixes: Sequence[str]
) -> Optional[Artifact]:
    """First artifact matching the preferred suffix that has a signature next to it."""
    artifacts = list(artifacts)
    for suffix in suffixes:
        for artifact in artifacts:
            if artifact.path.name.endswith(suffix) and signature_path(artifact).is_file():
                return artifact
    return None


def _pub_date() -> str:
    now = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)
    return now.isoformat().replace("+00:00", "Z")


def build_manifest(
        request: UpdateManifestRequest,
        download_url: Callable[[Artifact], str],
        existing: Optional[Mapping[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    """Build the updater manifest for the artifacts of ``request``.

    Platforms of an ``existing`` manifest for the same version are kept, so
    jobs building different targets can share one manifest.

    Args:
        request: Version, notes, artifacts and shaping flags
        download_url: Maps an artifact to the URL it can be downloaded from
        existing: Previously uploaded manifest, if any

    Returns:
        The manifest, or ``None`` when no signed updater bundle was built
    """
    os_name = UPDATER_OS.get(request.target_info.platform)
    if os_name is None:
        logger.info("Updater manifests are not generated for platform",
                    platform=request.target_info.platform)
        return None

    suffixes = updater_suffixes(
        request.target_info.platform, request.unzipped_sigs, request.prefer_nsis
    )
    artifact = select_updater_artifact(request.artifacts, suffixes)
    if artifact is None:
        logger.warning("No signed updater bundle found, skipping updater manifest",
                       suffixes=",".join(suffixes))
        return None

    platforms: Dict[str, Any] = {}
    if existing and existing.get("version") == request.version:
        platforms.update(existing.get("platforms") or {})

    entry = {
        "signature": signature_path(artifact).read_text(encoding="utf-8").strip(),
        "url": download_url(artifact),
    }
    arch = UPDATER_ARCH.get(artifact.arch, artifact.arch)
    if os_name == "darwin" and arch == "universal":
        for universal_arch in ("x86_64", "aarch64"):
            platforms.setdefault(f"darwin-{universal_arch}", entry)
        if request.keep_universal:
            platforms["darwin-universal"] = entry
    else:
        platforms[f"{os_name}-{arch}"] = entry

    return {
        "version": request.version,
        "notes": request.notes,
        "pub_date": _pub_date(),
        "platforms": platforms,
    }
