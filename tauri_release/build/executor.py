"""Execution of external commands with bounded retry."""

from __future__ import annotations

import os
import pathlib
import shlex
import shutil
import subprocess
from typing import IO, Callable, Mapping, Optional, Sequence, TypeVar, Union, cast

import structlog
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt

from tauri_release.utils.exceptions import ProcessFailure

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _log_failed_attempt(retry_state: RetryCallState) -> None:
    if retry_state.outcome is None or not retry_state.outcome.failed:
        return
    logger.warning(
        "Attempt failed",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()),
    )


def retry(operation: Callable[[], T], max_attempts: int) -> T:
    """Call ``operation`` until it succeeds or ``max_attempts`` calls failed.

    Only ``ProcessFailure`` counts as a failure; attempts are immediate. When
    every attempt fails the last ``ProcessFailure`` is re-raised unchanged.

    Args:
        operation: Zero-argument callable to invoke
        max_attempts: Total number of calls allowed, at least 1

    Returns:
        The return value of the first successful call
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        retry=retry_if_exception_type(ProcessFailure),
        after=_log_failed_attempt,
        reraise=True,
    )
    return retrying(operation)


class CommandExecutor:
    """Runs external processes and reports failures as ``ProcessFailure``.

    Attributes:
        output: Callable receiving each line the child prints
    """

    def __init__(self, output: Optional[Callable[[str], None]] = None) -> None:
        self.output = output or self._log_line

    @staticmethod
    def _log_line(line: str) -> None:
        logger.info(line)

    def execute(
            self,
            executable: str,
            args: Sequence[str],
            cwd: Optional[Union[str, pathlib.Path]] = None,
            env: Optional[Mapping[str, str]] = None,
    ) -> int:
        """Run ``executable`` with ``args`` and wait for it to exit.

        Args:
            executable: Program name or path
            args: Arguments passed after the program
            cwd: Working directory, the current one when omitted
            env: Variables added to (or replacing those in) the inherited environment

        Returns:
            The exit status, always 0

        Raises:
            ProcessFailure: If the process cannot be spawned or exits non-zero
        """
        command_line = shlex.join([executable, *args])
        # npm/yarn are .cmd shims on Windows and need the resolved path
        resolved = shutil.which(executable) or executable
        child_env = {**os.environ, **(env or {})}

        logger.info("Running command", command=command_line, cwd=str(cwd) if cwd else None)
        try:
            process = subprocess.Popen(
                [resolved, *args],
                cwd=cwd,
                env=child_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                # build tools may print bytes that are not valid UTF-8
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            raise ProcessFailure(
                f"Failed to spawn {executable}: {e}",
                reason="spawn-error",
                command=command_line,
            ) from e

        stdout = cast(IO[str], process.stdout)
        try:
            with stdout:
                for line in stdout:
                    self.output(line.rstrip())
        except BaseException:
            process.kill()
            raise
        finally:
            return_code = process.wait()
        if return_code != 0:
            raise ProcessFailure(
                f"Command `{command_line}` failed with exit code {return_code}",
                exit_code=return_code,
                command=command_line,
            )
        return return_code
