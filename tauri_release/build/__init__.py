"""Build orchestration for Tauri applications.

This package contains the tools that invoke the Tauri CLI, find the artifacts
it produced and hand them to the release stage.

Modules:
    artifacts: Candidate output paths per platform and variant
    cli: Command-line interface
    config: Run configuration and build targets
    executor: External command execution with bounded retry
    models: Value objects shared with the release stage
    orchestrator: The build-and-release state machine
    runner: Selection of the Tauri CLI invocation
    utils: Project configuration, target and packaging helpers
"""

from __future__ import annotations

from tauri_release.build.artifacts import ArtifactLocator
from tauri_release.build.config import ActionConfig, BuildPlatform, BuildTarget, BuildVariant, MobileMode
from tauri_release.build.executor import CommandExecutor, retry
from tauri_release.build.models import Artifact, ProjectInfo, ReleaseData, ReleaseTarget, RunResult, TargetInfo
from tauri_release.build.runner import RunnerInvocation, RunnerResolver

__all__ = [
    "ActionConfig",
    "Artifact",
    "ArtifactLocator",
    "BuildPlatform",
    "BuildTarget",
    "BuildVariant",
    "CommandExecutor",
    "MobileMode",
    "ProjectInfo",
    "ReleaseData",
    "ReleaseTarget",
    "RunResult",
    "RunnerInvocation",
    "RunnerResolver",
    "TargetInfo",
    "retry",
]
