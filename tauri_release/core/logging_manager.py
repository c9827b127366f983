from __future__ import annotations

import logging
import logging.handlers
import os
import pathlib
import sys
from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel, Field
from pythonjsonlogger import jsonlogger

from tauri_release.utils.exceptions import ConfigurationError


class LoggingConfig(BaseModel):
    """Logging settings for a tauri-release run."""

    level: str = Field(default="INFO", description="Root log level")
    format: str = Field(default="text", description="Either 'text' or 'json'")
    console: bool = Field(default=True, description="Log to stdout")
    file_path: Optional[pathlib.Path] = Field(default=None, description="Optional log file")
    rotation: str = "10 MB"
    retention: str = "30 days"


class LoggingManager:
    """Configures stdlib logging and structlog for the command line tool.

    Every module obtains its logger through ``structlog.get_logger(__name__)``;
    this manager decides where those records end up and how they are
    rendered. In ``json`` mode records are emitted one JSON document per line,
    which suits CI log collectors; in ``text`` mode a compact human format is
    used.
    """

    LOG_LEVELS = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    def __init__(self, config: Optional[LoggingConfig] = None) -> None:
        """Initialize the Logging Manager.

        Args:
            config: Logging settings; defaults are used when omitted.
        """
        self._config = config or LoggingConfig()
        self._root_logger: Optional[logging.Logger] = None
        self._console_handler: Optional[logging.Handler] = None
        self._file_handler: Optional[logging.Handler] = None
        self._handlers: List[logging.Handler] = []
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Install handlers on the root logger and configure structlog.

        Raises:
            ConfigurationError: If the log level or format is not recognised.
        """
        level_name = self._config.level.lower()
        if level_name not in self.LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level: {self._config.level}", config_key="log_level"
            )
        log_format = self._config.format.lower()
        if log_format not in ("text", "json"):
            raise ConfigurationError(
                f"Unknown log format: {self._config.format}", config_key="log_format"
            )
        log_level = self.LOG_LEVELS[level_name]

        self._root_logger = logging.getLogger()
        self._root_logger.setLevel(log_level)
        for handler in list(self._root_logger.handlers):
            self._root_logger.removeHandler(handler)

        if log_format == "json":
            formatter = self._create_json_formatter()
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        if self._config.console:
            self._console_handler = logging.StreamHandler(sys.stdout)
            self._console_handler.setLevel(log_level)
            self._console_handler.setFormatter(formatter)
            self._root_logger.addHandler(self._console_handler)
            self._handlers.append(self._console_handler)

        if self._config.file_path is not None:
            os.makedirs(self._config.file_path.parent, exist_ok=True)

            # Parse rotation (e.g., "10 MB")
            rotation = self._config.rotation
            if "MB" in rotation:
                max_bytes = int(rotation.split()[0]) * 1024 * 1024
            else:
                max_bytes = 10 * 1024 * 1024

            # Parse retention (e.g., "30 days")
            retention = self._config.retention
            if "days" in retention:
                backup_count = int(retention.split()[0])
            else:
                backup_count = 30

            self._file_handler = logging.handlers.RotatingFileHandler(
                self._config.file_path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            self._file_handler.setLevel(log_level)
            self._file_handler.setFormatter(formatter)
            self._root_logger.addHandler(self._file_handler)
            self._handlers.append(self._file_handler)

        self._configure_structlog(json_output=log_format == "json")
        self._initialized = True
        self.get_logger(__name__).debug(
            "Logging configured", level=self._config.level, format=log_format
        )

    def _create_json_formatter(self) -> logging.Formatter:
        """Create a JSON formatter for log records.

        Returns:
            logging.Formatter: A formatter that outputs logs in JSON format.
        """
        return jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
            json_ensure_ascii=False,
        )

    def _configure_structlog(self, json_output: bool) -> None:
        """Route structlog through the stdlib handlers installed above."""
        # json mode hands the event dict to JsonFormatter as record extras
        renderer = (
            structlog.stdlib.render_to_log_kwargs
            if json_output
            else structlog.dev.ConsoleRenderer(colors=False)
        )
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )

    def get_logger(self, name: str) -> Union[logging.Logger, Any]:
        """Get a logger for a specific component.

        Args:
            name: The name of the component requesting a logger.

        Returns:
            A structlog logger bound to ``name``; a plain stdlib logger before
            initialization.
        """
        if not self._initialized:
            return logging.getLogger(name)
        return structlog.get_logger(name)

    def shutdown(self) -> None:
        """Flush and remove every handler this manager installed."""
        if not self._initialized:
            return

        for handler in self._handlers:
            if self._root_logger is not None:
                self._root_logger.removeHandler(handler)
            handler.flush()
            handler.close()
        self._handlers.clear()
        self._console_handler = None
        self._file_handler = None
        self._initialized = False

    def status(self) -> Dict[str, Any]:
        """Get the status of the Logging Manager.

        Returns:
            Dict[str, Any]: Status information about the Logging Manager.
        """
        return {
            "initialized": self._initialized,
            "level": self._config.level,
            "format": self._config.format,
            "handlers": {
                "console": self._console_handler is not None,
                "file": self._file_handler is not None,
            },
            "log_file": str(self._config.file_path) if self._config.file_path else None,
        }
