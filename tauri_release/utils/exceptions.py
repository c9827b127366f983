from __future__ import annotations

from typing import Any, Dict, Optional


class TauriReleaseError(Exception):
    """Base exception for all tauri-release errors."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        """
        Initialize exception.

        Args:
            message: Error message
            **kwargs: Additional error information
        """
        details: Dict[str, Any] = dict(kwargs.pop("details", None) or {})
        details.update(kwargs)
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.message}"


class ProcessFailure(TauriReleaseError):
    """Exception raised when an external process fails or cannot be spawned."""

    def __init__(
            self,
            message: str,
            *,
            exit_code: Optional[int] = None,
            reason: Optional[str] = None,
            command: Optional[str] = None,
            **kwargs: Any,
    ) -> None:
        """Initialize a ProcessFailure.

        Args:
            message: A descriptive error message.
            exit_code: Exit status of the process, if it ran at all.
            reason: Short machine-readable reason such as ``"spawn-error"``.
            command: The command line that failed.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        if exit_code is not None:
            details["exit_code"] = exit_code
        if reason:
            details["reason"] = reason
        if command:
            details["command"] = command
        super().__init__(message, details=details, **kwargs)
        self.exit_code = exit_code
        self.reason = reason
        self.command = command


class ConfigDetectionFailure(TauriReleaseError):
    """Raised or returned when the Tauri config version cannot be detected.

    This condition is never fatal: callers fall back to a default runner tag.
    """

    def __init__(self, message: str, *, path: Optional[str] = None, **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        if path:
            details["path"] = path
        super().__init__(message, details=details, **kwargs)


class NoArtifactsFound(TauriReleaseError):
    """Exception raised when a build that should be uploaded produced nothing."""

    pass


class MissingProjectPath(TauriReleaseError):
    """Exception raised when the Tauri project directory cannot be located."""

    def __init__(self, message: str, *, root: Optional[str] = None, **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        if root:
            details["root"] = root
        super().__init__(message, details=details, **kwargs)


class ConfigurationError(TauriReleaseError):
    """Exception raised for configuration-related errors."""

    def __init__(
            self, message: str, *, config_key: Optional[str] = None, **kwargs: Any
    ) -> None:
        """Initialize a ConfigurationError.

        Args:
            message: A descriptive error message.
            config_key: The configuration key that caused the error.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details=details, **kwargs)
        self.config_key = config_key


class ReleaseError(TauriReleaseError):
    """Exception raised when the release hosting API rejects a request."""

    def __init__(
            self, message: str, *, status_code: Optional[int] = None, **kwargs: Any
    ) -> None:
        """Initialize a ReleaseError.

        Args:
            message: A descriptive error message.
            status_code: HTTP status code returned by the API, if any.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details, **kwargs)
        self.status_code = status_code
