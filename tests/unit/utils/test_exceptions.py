"""Unit tests for the exception hierarchy."""

import pytest

from tauri_release.utils.exceptions import (
    ConfigDetectionFailure,
    ConfigurationError,
    MissingProjectPath,
    NoArtifactsFound,
    ProcessFailure,
    ReleaseError,
    TauriReleaseError,
)


def test_base_exception():
    """Test the base exception keeps message and details."""
    exc = TauriReleaseError("Test message", details={"key": "value"}, extra=1)
    assert str(exc) == "Test message"
    assert exc.message == "Test message"
    assert exc.details == {"key": "value", "extra": 1}


def test_process_failure_exit_code():
    """Test a process that exited with a non-zero status."""
    exc = ProcessFailure("build failed", exit_code=101, command="tauri build")
    assert exc.exit_code == 101
    assert exc.reason is None
    assert exc.command == "tauri build"
    assert exc.details == {"exit_code": 101, "command": "tauri build"}


def test_process_failure_spawn_error():
    """Test a process that could not be started."""
    exc = ProcessFailure("not found", reason="spawn-error")
    assert exc.exit_code is None
    assert exc.details == {"reason": "spawn-error"}


def test_keyed_errors():
    """Test the errors that record the offending key or location."""
    assert ConfigurationError("bad", config_key="mobile").details == {"config_key": "mobile"}
    assert ConfigurationError("bad").config_key is None
    assert MissingProjectPath("missing", root="/src").details == {"root": "/src"}
    assert ConfigDetectionFailure("unknown", path="/src").details == {"path": "/src"}

    exc = ReleaseError("GitHub returned error", status_code=422, url="/releases")
    assert exc.status_code == 422
    assert exc.details == {"status_code": 422, "url": "/releases"}


@pytest.mark.parametrize(
    "exc_class",
    [ConfigDetectionFailure, ConfigurationError, MissingProjectPath, NoArtifactsFound,
     ProcessFailure, ReleaseError],
)
def test_hierarchy(exc_class):
    """Test that every error can be caught as TauriReleaseError."""
    with pytest.raises(TauriReleaseError):
        raise exc_class("failure")
