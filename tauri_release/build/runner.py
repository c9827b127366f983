"""Selection of the command used to invoke the Tauri CLI."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple, Union

import structlog

from tauri_release.build.executor import CommandExecutor, retry
from tauri_release.build.utils import (
    TAURI_CLI_PACKAGE,
    detect_major_version,
    detect_package_manager,
    has_dependency,
    split_command,
)
from tauri_release.utils.exceptions import ConfigDetectionFailure

logger = structlog.get_logger(__name__)

# leading args per package manager when the CLI is a project dependency
MANAGER_INVOCATIONS = {
    "yarn": ("tauri",),
    "pnpm": ("tauri",),
    "bun": ("tauri",),
    "npm": ("run", "tauri"),
}

DEFAULT_CLI_TAG = "v1"
CLI_TAGS = {1: "v1", 2: "v2"}


@dataclass(frozen=True)
class RunnerInvocation:
    """How to invoke the Tauri CLI.

    ``executable`` may be a package manager (``npm``, ``yarn``, ``pnpm``,
    ``bun``), ``cargo``, a path to a CLI binary or the global ``tauri``.
    ``leading_args`` precede the Tauri subcommand, e.g. ``["run", "tauri"]``.
    """

    executable: str
    leading_args: Tuple[str, ...] = field(default_factory=tuple)

    def command_args(self, command: Sequence[str], options: Sequence[str]) -> List[str]:
        """Build the full argument list for ``<command> <options>``.

        ``npm`` needs ``run`` in front of the script name and ``--`` before
        flags meant for the script.
        """
        args: List[str] = []
        if self.executable == "npm" and (not self.leading_args or self.leading_args[0] != "run"):
            args.append("run")
        args.extend(self.leading_args)
        args.extend(command)
        if self.executable == "npm" and options:
            args.append("--")
        args.extend(options)
        return args

    def run(
            self,
            executor: CommandExecutor,
            command: Sequence[str],
            options: Sequence[str],
            cwd: Optional[Union[str, pathlib.Path]] = None,
            env: Optional[Mapping[str, str]] = None,
            max_attempts: int = 1,
    ) -> None:
        """Run a Tauri CLI command, retrying failed attempts."""
        args = self.command_args(command, options)
        retry(lambda: executor.execute(self.executable, args, cwd=cwd, env=env), max_attempts)


class RunnerResolver:
    """Decides which binary runs the Tauri CLI for a project."""

    def __init__(self, executor: Optional[CommandExecutor] = None) -> None:
        self.executor = executor or CommandExecutor()

    def resolve(
            self, project_root: Union[str, pathlib.Path], override: Optional[str] = None
    ) -> RunnerInvocation:
        """Pick the Tauri CLI invocation for ``project_root``.

        Priority: explicit ``override`` command, then the project's package
        manager when ``@tauri-apps/cli`` is a dependency, then a global
        install of the CLI matching the detected config version.
        """
        if override and override.split():
            executable, *leading = split_command(override)
            invocation = RunnerInvocation(executable, tuple(leading))
            logger.info("Using explicit Tauri command", executable=executable, leading=leading)
            return invocation

        if has_dependency(TAURI_CLI_PACKAGE, project_root):
            manager = detect_package_manager(project_root)
            invocation = RunnerInvocation(manager, MANAGER_INVOCATIONS[manager])
            logger.info("Using project Tauri CLI", package_manager=manager)
            return invocation

        tag = self.resolve_cli_tag(project_root)
        logger.info("Installing Tauri CLI globally", tag=tag)
        self.executor.execute("npm", ["install", "-g", f"{TAURI_CLI_PACKAGE}@{tag}"])
        return RunnerInvocation("tauri")

    @staticmethod
    def resolve_cli_tag(project_root: Union[str, pathlib.Path]) -> str:
        """Return the npm tag of the CLI to install; ``v1`` when detection fails."""

        def fallback(error: ConfigDetectionFailure) -> int:
            logger.debug("Tauri version detection failed, assuming v1", error=str(error))
            return 1

        major = detect_major_version(project_root).unwrap_or_else(fallback)
        return CLI_TAGS.get(major, DEFAULT_CLI_TAG)
