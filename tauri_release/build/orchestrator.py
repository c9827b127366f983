"""Orchestration of a complete build-and-release run.

This module contains the Orchestrator that decides which targets to build,
drives the Tauri CLI for each of them, collects the produced artifacts and
publishes them to a release together with the updater manifest.
"""

from __future__ import annotations

import pathlib
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import structlog

from tauri_release.build.artifacts import ArtifactLocator
from tauri_release.build.config import (
    ActionConfig,
    BuildPlatform,
    BuildTarget,
    BuildVariant,
    MobileMode,
)
from tauri_release.build.executor import CommandExecutor
from tauri_release.build.models import (
    Artifact,
    ProjectInfo,
    ReleaseData,
    ReleaseTarget,
    RunResult,
    TargetInfo,
    UpdateManifestRequest,
)
from tauri_release.build.runner import RunnerInvocation, RunnerResolver
from tauri_release.build.utils import archive_bundle, get_info, get_target_info, host_platform, render_template
from tauri_release.release.client import ReleaseClient
from tauri_release.utils.exceptions import ConfigurationError, NoArtifactsFound

logger = structlog.get_logger(__name__)

APP_BUNDLE_SUFFIX = ".app"
ARCHIVE_SUFFIX = ".tar.gz"


@dataclass(frozen=True)
class PlatformHandler:
    """How a platform family is built.

    Attributes:
        verb: Tauri subcommand prefix, empty for desktop builds
        family: Runner cache key; mobile platforms share one runner
    """

    verb: Tuple[str, ...]
    family: str


PLATFORM_DISPATCH: Dict[BuildPlatform, PlatformHandler] = {
    BuildPlatform.DESKTOP: PlatformHandler(verb=(), family="desktop"),
    BuildPlatform.ANDROID: PlatformHandler(verb=("android",), family="mobile"),
    BuildPlatform.IOS: PlatformHandler(verb=("ios",), family="mobile"),
}


def select_platform(mobile: MobileMode, host: str) -> BuildPlatform:
    """Pick the single platform family a run builds for.

    ``android`` builds anywhere when requested explicitly, ``all`` only
    enables it on Linux hosts. iOS needs a macOS host.
    """
    if (host == "linux" and mobile == MobileMode.ALL) or mobile == MobileMode.ANDROID:
        return BuildPlatform.ANDROID
    if host == "macos" and mobile in (MobileMode.ALL, MobileMode.IOS):
        return BuildPlatform.IOS
    if mobile != MobileMode.NONE:
        logger.warning("Mobile build not supported on this host, building desktop",
                       mobile=mobile.value, host=host)
    return BuildPlatform.DESKTOP


def build_targets(config: ActionConfig, host: str) -> List[BuildTarget]:
    """Enumerate the (platform, variant) pairs ``config`` asks for."""
    platform = select_platform(config.mobile, host)
    variants = []
    if config.include_release:
        variants.append(BuildVariant.RELEASE)
    if config.include_debug:
        variants.append(BuildVariant.DEBUG)
    return [BuildTarget(platform, variant) for variant in variants]


def release_target_from_config(config: ActionConfig, version: str) -> ReleaseTarget:
    """Describe the release to publish to, with ``__VERSION__`` filled in."""
    if not config.owner or not config.repo:
        raise ConfigurationError(
            "Repository owner and name are required to publish a release", config_key="repo"
        )
    return ReleaseTarget(
        owner=config.owner,
        repo=config.repo,
        tag_name=render_template(config.tag_name or "", version),
        release_id=config.release_id,
        draft=config.release_draft,
        prerelease=config.prerelease,
        name=render_template(config.release_name, version),
        body=render_template(config.release_body, version),
        commitish=config.release_commitish,
    )


def package_app_bundles(
        artifacts: List[Artifact], archiver: Callable[[pathlib.Path], pathlib.Path]
) -> List[Artifact]:
    """Replace ``.app`` directories by uploadable archives.

    A bundle that already has a ``.tar.gz`` sibling (created by the updater
    build) is dropped, since the archive itself is among the artifacts.
    """
    packaged: List[Artifact] = []
    for artifact in artifacts:
        if not artifact.path.name.endswith(APP_BUNDLE_SUFFIX):
            packaged.append(artifact)
            continue
        archive = artifact.path.with_name(f"{artifact.path.name}{ARCHIVE_SUFFIX}")
        if archive.exists():
            logger.info("Skipping bundle with existing archive", bundle=str(artifact.path))
            continue
        packaged.append(artifact.with_path(archiver(artifact.path)))
    return packaged


@dataclass
class ArtifactBuckets:
    """Artifacts of a run, split the way the uploads need them."""

    release: List[Artifact] = field(default_factory=list)
    debug: List[Artifact] = field(default_factory=list)
    mobile: List[Artifact] = field(default_factory=list)

    def bucket_for(self, target: BuildTarget) -> List[Artifact]:
        if target.platform != BuildPlatform.DESKTOP:
            return self.mobile
        return self.debug if target.debug else self.release

    def all(self) -> List[Artifact]:
        return [*self.release, *self.debug, *self.mobile]

    def map(self, transform: Callable[[List[Artifact]], List[Artifact]]) -> None:
        self.release = transform(self.release)
        self.debug = transform(self.debug)
        self.mobile = transform(self.mobile)

    def updater_artifacts(self) -> List[Artifact]:
        return self.release or self.debug


class Orchestrator:
    """Runs the builds described by an ActionConfig and publishes the results.

    Attributes:
        config: Run configuration
        executor: Runs the Tauri CLI
        resolver: Chooses how the Tauri CLI is invoked
        locator: Finds the artifacts of each build
        host: Operating system the run executes on
    """

    def __init__(
            self,
            config: ActionConfig,
            executor: Optional[CommandExecutor] = None,
            resolver: Optional[RunnerResolver] = None,
            locator: Optional[ArtifactLocator] = None,
            release_client: Optional[ReleaseClient] = None,
            archiver: Callable[[pathlib.Path], pathlib.Path] = archive_bundle,
            host: Optional[str] = None,
    ) -> None:
        self.config = config
        self.executor = executor or CommandExecutor()
        self.resolver = resolver or RunnerResolver(self.executor)
        self.locator = locator or ArtifactLocator(target_triple=config.target_arg)
        self.archiver = archiver
        self.host = host or host_platform()
        self._release_client = release_client
        self._runners: Dict[str, RunnerInvocation] = {}

    @property
    def release_client(self) -> ReleaseClient:
        if self._release_client is None:
            from tauri_release.release.github import GitHubReleaseClient

            self._release_client = GitHubReleaseClient()
        return self._release_client

    def runner_for(self, platform: BuildPlatform, project_root: pathlib.Path) -> RunnerInvocation:
        """Resolve the runner once for desktop and once for mobile builds."""
        family = PLATFORM_DISPATCH[platform].family
        if family not in self._runners:
            self._runners[family] = self.resolver.resolve(project_root, self.config.tauri_script)
        return self._runners[family]

    def build(
            self,
            target: BuildTarget,
            project_root: pathlib.Path,
            info: ProjectInfo,
            target_info: TargetInfo,
    ) -> List[Artifact]:
        """Run the Tauri CLI for ``target`` and return what it produced."""
        runner = self.runner_for(target.platform, project_root)
        command = [*PLATFORM_DISPATCH[target.platform].verb, "build"]
        options = ["--debug", *self.config.args] if target.debug else list(self.config.args)

        logger.info("Building", target=str(target), attempts=self.config.max_attempts)
        runner.run(
            self.executor,
            command,
            options,
            cwd=project_root,
            max_attempts=self.config.max_attempts,
        )
        return self.locator.locate(project_root, target, info, target_info)

    def run(self) -> RunResult:
        """Build every requested target and publish the artifacts.

        Returns:
            The artifacts, the app version and the release that was resolved

        Raises:
            MissingProjectPath: If the Tauri project cannot be found
            ProcessFailure: If a build fails on every attempt
            NoArtifactsFound: If nothing was built although an upload was requested
            ReleaseError: If the release API fails
        """
        config = self.config
        project_root = config.project_path.resolve()
        targets = build_targets(config, self.host)

        target_info = get_target_info(config.target_arg)
        if targets and targets[0].platform != BuildPlatform.DESKTOP:
            build_target_info = TargetInfo(platform=targets[0].platform.value, arch="mobile")
        else:
            build_target_info = target_info

        info = get_info(
            project_root,
            build_target_info,
            config.config_arg,
            app_name=config.app_name,
            app_version=config.app_version,
        )
        logger.info("Resolved project", app_name=info.name, version=info.version,
                    tauri_path=str(info.tauri_path))

        buckets = ArtifactBuckets()
        for target in targets:
            buckets.bucket_for(target).extend(
                self.build(target, project_root, info, build_target_info)
            )

        artifacts = buckets.all()
        if not artifacts:
            if config.upload_requested:
                raise NoArtifactsFound("No artifacts were found.")
            logger.info(
                "No artifacts were found. No release was requested, so this is not an error."
            )
            return RunResult(artifacts=[], app_version=info.version)

        logger.info("Found artifacts", paths="\n".join(str(a.path) for a in artifacts))

        if target_info.platform == "macos":
            buckets.map(lambda bucket: package_app_bundles(bucket, self.archiver))
            artifacts = buckets.all()

        result = RunResult(artifacts=artifacts, app_version=info.version)
        self.publish(buckets, info, target_info, result)
        return result

    def publish(
            self,
            buckets: ArtifactBuckets,
            info: ProjectInfo,
            target_info: TargetInfo,
            result: RunResult,
    ) -> None:
        """Resolve the release and upload assets and the updater manifest."""
        config = self.config
        release_id = config.release_id
        tag_name = config.tag_name
        notes = config.release_body

        if config.tag_name and not release_id:
            target = release_target_from_config(config, info.version)
            tag_name, notes = target.tag_name, target.body
            release: ReleaseData = self.release_client.fetch_or_create_release(
                target.owner,
                target.repo,
                target.tag_name,
                name=target.name or None,
                body=target.body,
                commitish=target.commitish,
                draft=target.draft,
                prerelease=target.prerelease,
            )
            result.release = release
            release_id = release.id

        if not release_id:
            logger.info("No releaseId or tagName provided, skipping all uploads")
            return

        if not config.owner or not config.repo:
            raise ConfigurationError(
                "Repository owner and name are required to upload assets", config_key="repo"
            )

        self.release_client.upload_assets(config.owner, config.repo, release_id, result.artifacts)

        if config.include_updater_json:
            self.release_client.upload_update_manifest(
                UpdateManifestRequest(
                    owner=config.owner,
                    repo=config.repo,
                    version=info.version,
                    notes=notes,
                    tag_name=tag_name,
                    release_id=release_id,
                    artifacts=tuple(buckets.updater_artifacts()),
                    target_info=target_info,
                    unzipped_sigs=info.unzipped_sigs,
                    prefer_nsis=config.updater_json_prefer_nsis,
                    keep_universal=config.updater_json_keep_universal,
                )
            )
