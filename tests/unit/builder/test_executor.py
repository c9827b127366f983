"""Unit tests for command execution and retry."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock

import pytest

from tauri_release.build.executor import CommandExecutor, retry
from tauri_release.utils.exceptions import ProcessFailure


def failing_operation(failures: int) -> MagicMock:
    """Mock that raises ProcessFailure ``failures`` times, then returns 0."""
    effects = [ProcessFailure(f"failure {i}", exit_code=1) for i in range(failures)]
    return MagicMock(side_effect=[*effects, 0])


@pytest.mark.parametrize("failures, max_attempts", [(0, 1), (1, 2), (2, 3), (2, 5)])
def test_retry_succeeds_within_budget(failures, max_attempts):
    """Test that k failures followed by a success need k + 1 calls."""
    operation = failing_operation(failures)
    assert retry(operation, max_attempts) == 0
    assert operation.call_count == failures + 1


@pytest.mark.parametrize("failures, max_attempts", [(1, 1), (3, 3), (5, 2)])
def test_retry_exhausted(failures, max_attempts):
    """Test that exactly max_attempts calls are made and the last failure surfaces."""
    operation = failing_operation(failures)
    with pytest.raises(ProcessFailure) as excinfo:
        retry(operation, max_attempts)
    assert operation.call_count == max_attempts
    assert excinfo.value.message == f"failure {max_attempts - 1}"


def test_retry_ignores_other_errors():
    """Test that errors other than ProcessFailure are not retried."""
    operation = MagicMock(side_effect=KeyError("boom"))
    with pytest.raises(KeyError):
        retry(operation, 3)
    assert operation.call_count == 1


def test_retry_requires_one_attempt():
    """Test that zero attempts is rejected without calling the operation."""
    operation = MagicMock()
    with pytest.raises(ValueError):
        retry(operation, 0)
    operation.assert_not_called()


class TestCommandExecutor:
    """Tests for the CommandExecutor class."""

    def test_success_streams_output(self, tmp_path):
        """Test that a successful command returns 0 and forwards its output."""
        lines = []
        executor = CommandExecutor(output=lines.append)
        code = executor.execute(sys.executable, ["-c", "print('hello')"], cwd=tmp_path)
        assert code == 0
        assert "hello" in lines

    def test_env_is_merged(self):
        """Test that extra variables reach the child next to the inherited ones."""
        lines = []
        executor = CommandExecutor(output=lines.append)
        executor.execute(
            sys.executable,
            ["-c", "import os; print(os.environ['TAURI_TEST_VALUE'])"],
            env={"TAURI_TEST_VALUE": "42"},
        )
        assert lines == ["42"]

    def test_non_zero_exit(self):
        """Test that a non-zero exit raises ProcessFailure with the exit code."""
        executor = CommandExecutor(output=lambda line: None)
        with pytest.raises(ProcessFailure) as excinfo:
            executor.execute(sys.executable, ["-c", "import sys; sys.exit(3)"])
        assert excinfo.value.exit_code == 3
        assert excinfo.value.reason is None
        assert excinfo.value.details["exit_code"] == 3

    def test_undecodable_output(self):
        """Test that bytes which are not UTF-8 are replaced instead of failing the run."""
        lines = []
        executor = CommandExecutor(output=lines.append)
        code = "import sys; sys.stdout.buffer.write(b'ok \\xff\\xfe\\n')"
        assert executor.execute(sys.executable, ["-c", code]) == 0
        assert lines[0].startswith("ok ")
        assert "\ufffd" in lines[0]

    def test_undecodable_output_with_failure(self):
        """Test that undecodable output still reports the exit code."""
        executor = CommandExecutor(output=lambda line: None)
        code = "import sys; sys.stdout.buffer.write(b'\\xff\\n'); sys.exit(4)"
        with pytest.raises(ProcessFailure) as excinfo:
            executor.execute(sys.executable, ["-c", code])
        assert excinfo.value.exit_code == 4

    def test_spawn_error(self, tmp_path):
        """Test that a missing program is reported as a spawn error."""
        executor = CommandExecutor(output=lambda line: None)
        with pytest.raises(ProcessFailure) as excinfo:
            executor.execute(str(tmp_path / "no-such-program"), [])
        assert excinfo.value.reason == "spawn-error"
        assert excinfo.value.exit_code is None
