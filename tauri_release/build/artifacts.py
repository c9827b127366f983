"""Discovery of the files a Tauri build produced.

Every platform has a fixed set of paths the Tauri CLI writes to. The locator
builds the complete candidate list for a build target, logs it, and keeps the
candidates that exist on disk. Finding nothing is not an error here; the
orchestrator decides what an empty result means.
"""

from __future__ import annotations

import os
import pathlib
from typing import Callable, Dict, List, Mapping, Optional, Union

import structlog

from tauri_release.build.config import BuildPlatform, BuildTarget, BuildVariant
from tauri_release.build.models import Artifact, ProjectInfo, TargetInfo
from tauri_release.build.utils import to_kebab_case

logger = structlog.get_logger(__name__)

MOBILE_ARCH = "mobile"
ANDROID_ARCHES = ("universal", "arm64", "arm", "x86_64", "x86")
IOS_ARCHES = ("arm64", "arm64-sim", "x86_64")

MACOS_ARCH_NAMES = {"universal": "universal", "aarch64": "aarch64", "x86_64": "x64"}
WINDOWS_ARCH_NAMES = {"x86_64": "x64", "i686": "x86", "aarch64": "arm64"}
DEBIAN_ARCH_NAMES = {"x86_64": "amd64", "i686": "i386", "aarch64": "arm64", "armv7": "armhf"}
APPIMAGE_ARCH_NAMES = {"x86_64": "amd64", "i686": "i386", "aarch64": "aarch64", "armv7": "armhf"}
RPM_ARCH_NAMES = {"x86_64": "x86_64", "i686": "i386", "aarch64": "aarch64", "armv7": "armhfp"}


def android_candidates(tauri_path: pathlib.Path) -> List[Artifact]:
    """All 25 paths ``tauri android build`` may write to.

    APK folders are named ``<arch>/<variant>`` while AAB folders use
    ``<arch>Release``/``<arch>Debug``.
    """
    outputs = tauri_path / "gen" / "android" / "app" / "build" / "outputs"
    groups = (
        # unsigned release apks
        lambda a: outputs / "apk" / a / "release" / f"app-{a}-release-unsigned.apk",
        # signed release apks
        lambda a: outputs / "apk" / a / "release" / f"app-{a}-release.apk",
        # release aabs
        lambda a: outputs / "bundle" / f"{a}Release" / f"app-{a}-release.aab",
        # debug apks
        lambda a: outputs / "apk" / a / "debug" / f"app-{a}-debug.apk",
        # debug aabs
        lambda a: outputs / "bundle" / f"{a}Debug" / f"app-{a}-debug.aab",
    )
    return [Artifact(group(arch), MOBILE_ARCH) for group in groups for arch in ANDROID_ARCHES]


def ios_candidates(tauri_path: pathlib.Path, app_name: str) -> List[Artifact]:
    """The three paths ``tauri ios build`` may write to.

    The ``.ipa`` is assumed to be named after the product name; the Tauri CLI
    does not document this.
    """
    build_dir = tauri_path / "gen" / "apple" / "app" / "build"
    return [Artifact(build_dir / arch / f"{app_name}.ipa", MOBILE_ARCH) for arch in IOS_ARCHES]


def _with_signatures(paths: List[pathlib.Path]) -> List[pathlib.Path]:
    result: List[pathlib.Path] = []
    for path in paths:
        result.extend([path, path.with_name(f"{path.name}.sig")])
    return result


def macos_candidates(bundle_dir: pathlib.Path, info: ProjectInfo, arch: str) -> List[Artifact]:
    arch_name = MACOS_ARCH_NAMES.get(arch, arch)
    paths = [
        bundle_dir / "dmg" / f"{info.name}_{info.version}_{arch_name}.dmg",
        bundle_dir / "macos" / f"{info.name}.app",
        bundle_dir / "macos" / f"{info.name}.app.tar.gz",
        bundle_dir / "macos" / f"{info.name}.app.tar.gz.sig",
    ]
    return [Artifact(path, arch_name) for path in paths]


def windows_candidates(bundle_dir: pathlib.Path, info: ProjectInfo, arch: str) -> List[Artifact]:
    arch_name = WINDOWS_ARCH_NAMES.get(arch, arch)
    paths: List[pathlib.Path] = []
    for language in info.wix_language:
        msi = bundle_dir / "msi" / f"{info.name}_{info.version}_{arch_name}_{language}.msi"
        paths.extend(_with_signatures([msi, msi.with_name(f"{msi.name}.zip")]))
    nsis = bundle_dir / "nsis" / f"{info.name}_{info.version}_{arch_name}-setup.exe"
    nsis_zip = nsis.with_name(f"{nsis.name[:-len('.exe')]}.nsis.zip")
    paths.extend(_with_signatures([nsis, nsis_zip]))
    return [Artifact(path, arch_name) for path in paths]


def linux_candidates(bundle_dir: pathlib.Path, info: ProjectInfo, arch: str) -> List[Artifact]:
    file_name = to_kebab_case(info.name)
    debian_arch = DEBIAN_ARCH_NAMES.get(arch, arch)
    appimage = (
        bundle_dir / "appimage"
        / f"{file_name}_{info.version}_{APPIMAGE_ARCH_NAMES.get(arch, arch)}.AppImage"
    )
    paths = [
        bundle_dir / "deb" / f"{file_name}_{info.version}_{debian_arch}.deb",
        bundle_dir / "rpm"
        / f"{file_name}-{info.version}-{info.rpm_release}.{RPM_ARCH_NAMES.get(arch, arch)}.rpm",
        *_with_signatures([appimage, appimage.with_name(f"{appimage.name}.tar.gz")]),
    ]
    return [Artifact(path, debian_arch) for path in paths]


DESKTOP_CANDIDATES: Dict[str, Callable[[pathlib.Path, ProjectInfo, str], List[Artifact]]] = {
    "macos": macos_candidates,
    "windows": windows_candidates,
    "linux": linux_candidates,
}


class ArtifactLocator:
    """Finds the artifacts of a finished build.

    Attributes:
        target_triple: Rust target passed with ``--target``; desktop outputs
            then live below ``target/<triple>/``
        environ: Environment consulted for ``CARGO_TARGET_DIR``
    """

    def __init__(
            self,
            target_triple: Optional[str] = None,
            environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.target_triple = target_triple
        self.environ = os.environ if environ is None else environ
        self._dispatch: Dict[BuildPlatform, Callable[[BuildTarget, ProjectInfo, TargetInfo], List[Artifact]]] = {
            BuildPlatform.DESKTOP: self._desktop_candidates,
            BuildPlatform.ANDROID: lambda target, info, _: android_candidates(info.tauri_path),
            BuildPlatform.IOS: lambda target, info, _: ios_candidates(info.tauri_path, info.name),
        }

    def target_dir(self, info: ProjectInfo) -> pathlib.Path:
        """Cargo's target directory for the project."""
        configured = self.environ.get("CARGO_TARGET_DIR")
        if configured:
            return pathlib.Path(configured)
        for candidate in (info.tauri_path / "target", info.tauri_path.parent / "target"):
            if candidate.is_dir():
                return candidate
        return info.tauri_path / "target"

    def bundle_dir(self, info: ProjectInfo, variant: BuildVariant) -> pathlib.Path:
        base = self.target_dir(info)
        if self.target_triple:
            base = base / self.target_triple
        return base / variant.value / "bundle"

    def _desktop_candidates(
            self, target: BuildTarget, info: ProjectInfo, target_info: TargetInfo
    ) -> List[Artifact]:
        candidates = DESKTOP_CANDIDATES.get(target_info.platform)
        if candidates is None:
            logger.warning("No desktop bundle layout for platform", platform=target_info.platform)
            return []
        return candidates(self.bundle_dir(info, target.variant), info, target_info.arch)

    def candidates(
            self, target: BuildTarget, info: ProjectInfo, target_info: TargetInfo
    ) -> List[Artifact]:
        """All paths the build may have produced, existing or not."""
        return self._dispatch[target.platform](target, info, target_info)

    def locate(
            self,
            project_root: Union[str, pathlib.Path],
            target: BuildTarget,
            info: ProjectInfo,
            target_info: TargetInfo,
    ) -> List[Artifact]:
        """Return the artifacts of ``target`` that exist on disk.

        Args:
            project_root: Project root the build ran in
            target: Platform and variant that was built
            info: Project metadata
            target_info: Operating system and architecture built for

        Returns:
            Existing artifacts in candidate order, possibly empty
        """
        candidates = self.candidates(target, info, target_info)
        logger.info(
            "Looking for artifacts",
            target=str(target),
            project_root=str(project_root),
            candidates="\n".join(str(artifact.path) for artifact in candidates),
        )
        return [artifact for artifact in candidates if artifact.path.exists()]
