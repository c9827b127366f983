"""Build configuration for tauri-release.

This module contains the configuration model describing which platforms and
variants to build, how to invoke the Tauri CLI and where to publish the
results. Values usually arrive as GitHub Actions inputs (``INPUT_*``
environment variables), so every field accepts the string forms the Actions
runner produces.
"""

from __future__ import annotations

import enum
import json
import os
import pathlib
import shlex
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

import pydantic
import yaml
from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tauri_release.utils.exceptions import ConfigurationError

ENV_PREFIX = "INPUT_"


class BuildPlatform(str, enum.Enum):
    """Platform families the Tauri CLI can build for."""

    DESKTOP = "desktop"
    ANDROID = "android"
    IOS = "ios"


class BuildVariant(str, enum.Enum):
    """Cargo profiles a build can use."""

    RELEASE = "release"
    DEBUG = "debug"


class MobileMode(str, enum.Enum):
    """Value of the ``mobile`` input."""

    NONE = "none"
    ALL = "all"  # android on linux hosts, ios on macOS hosts
    ANDROID = "android"
    IOS = "ios"


@dataclass(frozen=True)
class BuildTarget:
    """A single (platform, variant) pair to build."""

    platform: BuildPlatform
    variant: BuildVariant

    @property
    def debug(self) -> bool:
        return self.variant == BuildVariant.DEBUG

    def __str__(self) -> str:
        return f"{self.platform.value}/{self.variant.value}"


def _extract_flag_value(args: List[str], *flags: str) -> Optional[str]:
    for index, arg in enumerate(args):
        if arg in flags and index + 1 < len(args):
            return args[index + 1]
    return None


class ActionConfig(pydantic.BaseModel):
    """Configuration for a build-and-release run.

    Attributes:
        project_path: Root of the JavaScript/Rust project
        app_name: Overrides the product name read from the Tauri config
        app_version: Overrides the version read from the Tauri config
        include_release: Build with the release profile
        include_debug: Build with the debug profile
        include_updater_json: Upload a ``latest.json`` updater manifest
        updater_json_keep_universal: Keep ``darwin-universal`` in the manifest
        updater_json_prefer_nsis: Prefer NSIS over MSI installers in the manifest
        retry_attempts: Extra attempts for a failing build command
        tauri_script: Explicit command used to invoke the Tauri CLI
        args: Pass-through arguments appended to ``tauri build``
        tag_name: Release tag, may contain ``__VERSION__``
        release_id: Existing release to upload to
        release_name: Release title, may contain ``__VERSION__``
        release_body: Release notes, may contain ``__VERSION__``
        release_draft: Create the release as a draft
        prerelease: Mark the release as a prerelease
        release_commitish: Commitish the tag is created from
        owner: Repository owner
        repo: Repository name
        mobile: Mobile build mode
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    project_path: pathlib.Path = pathlib.Path(".")
    app_name: Optional[str] = None
    app_version: Optional[str] = None
    include_release: bool = True
    include_debug: bool = False
    include_updater_json: bool = True
    updater_json_keep_universal: bool = False
    updater_json_prefer_nsis: bool = False
    retry_attempts: int = Field(default=0, ge=0)
    tauri_script: Optional[str] = None
    args: List[str] = Field(default_factory=list)
    tag_name: Optional[str] = None
    release_id: Optional[int] = None
    release_name: str = ""
    release_body: str = ""
    release_draft: bool = False
    prerelease: bool = False
    release_commitish: Optional[str] = None
    owner: Optional[str] = None
    repo: Optional[str] = None
    mobile: MobileMode = MobileMode.NONE

    @field_validator("args", mode="before")
    @classmethod
    def split_args(cls, v: Any) -> Any:
        """Split a shell-style argument string into a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return shlex.split(v)
        return v

    @field_validator("tag_name", "release_name", mode="before")
    @classmethod
    def strip_tag_ref(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.replace("refs/tags/", "")
        return v

    @field_validator("tag_name", "app_name", "app_version", "tauri_script", "release_commitish",
                     "owner", "repo", mode="after")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("release_id", mode="before")
    @classmethod
    def validate_release_id(cls, v: Any) -> Any:
        """Treat empty strings and zero as "no release id"."""
        if v is None or v == "" or v == 0 or v == "0":
            return None
        return v

    @field_validator("mobile", mode="before")
    @classmethod
    def validate_mobile(cls, v: Any) -> Any:
        if v is None or isinstance(v, MobileMode):
            return v or MobileMode.NONE
        if isinstance(v, bool):
            return MobileMode.ALL if v else MobileMode.NONE
        lowered = str(v).strip().lower()
        if lowered in ("", "false", "none"):
            return MobileMode.NONE
        if lowered == "true":
            return MobileMode.ALL
        return lowered

    @property
    def config_arg(self) -> Optional[str]:
        """Value of the ``-c/--config`` pass-through argument."""
        return _extract_flag_value(self.args, "-c", "--config")

    @property
    def target_arg(self) -> Optional[str]:
        """Value of the ``-t/--target`` pass-through argument."""
        return _extract_flag_value(self.args, "-t", "--target")

    @property
    def max_attempts(self) -> int:
        return self.retry_attempts + 1

    @property
    def upload_requested(self) -> bool:
        """Whether the caller identified a release to publish to."""
        return bool(self.release_id or self.tag_name)

    @classmethod
    def from_dict(cls, config_dict: Mapping[str, Any]) -> ActionConfig:
        """Create an ActionConfig from a dictionary.

        Args:
            config_dict: Dictionary keyed by field names or camelCase input names.

        Returns:
            ActionConfig instance.

        Raises:
            ConfigurationError: If a value fails validation.
        """
        try:
            return cls.model_validate(dict(config_dict))
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(part) for part in first.get("loc", ()))
            raise ConfigurationError(
                f"Invalid configuration: {key}: {first.get('msg')}", config_key=key
            ) from e

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> ActionConfig:
        """Load an ActionConfig from GitHub Actions ``INPUT_*`` variables.

        Empty inputs are ignored so field defaults apply. ``owner`` and
        ``repo`` fall back to ``GITHUB_REPOSITORY``.

        Args:
            environ: Environment mapping, ``os.environ`` when omitted.

        Returns:
            ActionConfig instance.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            alias = field.alias or name
            raw = environ.get(f"{ENV_PREFIX}{alias.upper()}")
            if raw is None or not raw.strip():
                continue
            values[name] = raw

        repository = environ.get("GITHUB_REPOSITORY", "")
        if "/" in repository:
            owner, repo = repository.split("/", 1)
            values.setdefault("owner", owner)
            values.setdefault("repo", repo)

        return cls.from_dict(values)

    @classmethod
    def from_file(cls, path: Union[str, pathlib.Path]) -> ActionConfig:
        """Load an ActionConfig from a YAML or JSON file.

        Args:
            path: Path to the configuration file.

        Returns:
            ActionConfig instance.

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        path = pathlib.Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read config file {path}: {e}", config_key="config_path"
            ) from e

        try:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(content)
            elif path.suffix.lower() == ".json":
                data = json.loads(content)
            else:
                raise ConfigurationError(
                    f"Unsupported config file format: {path.suffix}", config_key="config_path"
                )
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Error parsing config file {path}: {e}", config_key="config_path"
            ) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {path} must contain a mapping", config_key="config_path"
            )
        return cls.from_dict(data)

    def merged_with(self, overrides: Mapping[str, Any]) -> ActionConfig:
        """Return a copy with ``overrides`` applied on top of this config."""
        data = self.model_dump()
        data.update(overrides)
        return self.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the ActionConfig to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    def to_file(self, path: Union[str, pathlib.Path]) -> None:
        """Save the ActionConfig to a YAML or JSON file."""
        path = pathlib.Path(path)
        with open(path, "w", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False)
            else:
                json.dump(self.to_dict(), f, indent=2)
