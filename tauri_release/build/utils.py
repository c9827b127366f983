"""Utility functions for the tauri-release build system.

This module reads the Tauri project configuration, detects the package
manager of the surrounding JavaScript project, works out the platform a build
targets and packages macOS bundles for upload.
"""

from __future__ import annotations

import json
import os
import pathlib
import platform
import re
import sys
import tarfile
import tomllib
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import structlog

from tauri_release.build.models import ProjectInfo, TargetInfo
from tauri_release.utils.exceptions import (
    ConfigDetectionFailure,
    ConfigurationError,
    MissingProjectPath,
)
from tauri_release.utils.result import Result

logger = structlog.get_logger(__name__)

TAURI_CLI_PACKAGE = "@tauri-apps/cli"
VERSION_TEMPLATE = "__VERSION__"

CONFIG_FILE_NAMES = ("tauri.conf.json", "Tauri.toml")
IGNORED_DIRS = {"node_modules", "target", ".git", "dist", "build"}

LOCK_FILES = {
    "yarn": ("yarn.lock",),
    "pnpm": ("pnpm-lock.yaml",),
    "bun": ("bun.lockb", "bun.lock"),
}

PathLike = Union[str, pathlib.Path]


def read_package_json(root: PathLike) -> Dict[str, Any]:
    """Return the parsed ``package.json`` of ``root``, or an empty dict."""
    path = pathlib.Path(root) / "package.json"
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable package.json", path=str(path), error=str(e))
        return {}
    return data if isinstance(data, dict) else {}


def has_dependency(name: str, root: PathLike) -> bool:
    """Whether ``package.json`` lists ``name`` as a (dev) dependency."""
    package_json = read_package_json(root)
    for section in ("dependencies", "devDependencies"):
        deps = package_json.get(section) or {}
        if isinstance(deps, dict) and name in deps:
            return True
    return False


def uses_package_manager(manager: str, root: PathLike) -> bool:
    """Whether ``root`` shows a lock file or ``packageManager`` entry for ``manager``."""
    root = pathlib.Path(root)
    if any((root / lock_file).exists() for lock_file in LOCK_FILES.get(manager, ())):
        return True
    declared = read_package_json(root).get("packageManager")
    return isinstance(declared, str) and declared.split("@", 1)[0] == manager


def detect_package_manager(root: PathLike) -> str:
    """Return ``yarn``, ``pnpm``, ``bun`` or ``npm``, in that priority order."""
    for manager in ("yarn", "pnpm", "bun"):
        if uses_package_manager(manager, root):
            return manager
    return "npm"


def find_tauri_dir(root: PathLike) -> Optional[pathlib.Path]:
    """Find the directory holding the Tauri config below ``root``.

    The shallowest match wins; dependency and build output directories are
    not searched.
    """
    root = pathlib.Path(root)
    best: Optional[Tuple[int, str, pathlib.Path]] = None

    for current, dirs, files in os.walk(root):
        dirs[:] = sorted(d for d in dirs if d not in IGNORED_DIRS)
        if any(name in files for name in CONFIG_FILE_NAMES):
            current_path = pathlib.Path(current)
            depth = len(current_path.relative_to(root).parts)
            candidate = (depth, str(current_path), current_path)
            if best is None or candidate[:2] < best[:2]:
                best = candidate

    return best[2] if best else None


def _read_config_file(path: pathlib.Path) -> Dict[str, Any]:
    content = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".toml":
        data = tomllib.loads(content)
    else:
        data = json.loads(content)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} does not contain an object", config_key=str(path))
    return data


def merge_patch(target: Any, patch: Any) -> Any:
    """Apply an RFC 7396 JSON merge patch, returning a new value."""
    if not isinstance(patch, dict):
        return patch
    result = dict(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = merge_patch(result.get(key), value)
    return result


def read_base_config(tauri_dir: PathLike) -> Dict[str, Any]:
    """Read ``tauri.conf.json`` (or ``Tauri.toml``) from ``tauri_dir``."""
    tauri_dir = pathlib.Path(tauri_dir)
    for name in CONFIG_FILE_NAMES:
        path = tauri_dir / name
        if path.is_file():
            return _read_config_file(path)
    raise MissingProjectPath(f"No Tauri config found in {tauri_dir}", root=str(tauri_dir))


def load_tauri_config(
        tauri_dir: PathLike,
        target_platform: Optional[str] = None,
        config_arg: Optional[str] = None,
        root: Optional[PathLike] = None,
) -> Dict[str, Any]:
    """Read the effective Tauri config.

    The base config is merged with the platform-specific file
    (``tauri.<platform>.conf.json``) and then with the ``--config`` argument,
    which may be inline JSON or a path relative to ``root``.
    """
    tauri_dir = pathlib.Path(tauri_dir)
    config = read_base_config(tauri_dir)

    if target_platform:
        for name in (f"tauri.{target_platform}.conf.json", f"Tauri.{target_platform}.toml"):
            platform_path = tauri_dir / name
            if platform_path.is_file():
                config = merge_patch(config, _read_config_file(platform_path))
                break

    if config_arg:
        stripped = config_arg.strip()
        try:
            if stripped.startswith("{"):
                extra = json.loads(stripped)
            else:
                extra_path = pathlib.Path(root or tauri_dir) / stripped
                extra = _read_config_file(extra_path)
        except (OSError, json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read --config value {config_arg!r}: {e}", config_key="args"
            ) from e
        config = merge_patch(config, extra)

    return config


def is_v2_config(config: Mapping[str, Any]) -> bool:
    """Tauri 2 configs carry the bundle identifier at the top level."""
    return "identifier" in config


def detect_major_version(root: PathLike) -> Result[int, ConfigDetectionFailure]:
    """Detect whether the project under ``root`` uses Tauri 1 or 2."""
    try:
        tauri_dir = find_tauri_dir(root)
        if tauri_dir is None:
            return Result.err(ConfigDetectionFailure("No Tauri config found", path=str(root)))
        config = read_base_config(tauri_dir)
    except (OSError, ValueError, tomllib.TOMLDecodeError, MissingProjectPath,
            ConfigurationError) as e:
        return Result.err(ConfigDetectionFailure(f"Cannot read Tauri config: {e}", path=str(root)))
    return Result.ok(2 if is_v2_config(config) else 1)


def _nested(config: Mapping[str, Any], *keys: str) -> Any:
    value: Any = config
    for key in keys:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def _read_cargo_package(tauri_dir: pathlib.Path) -> Dict[str, Any]:
    cargo_toml = tauri_dir / "Cargo.toml"
    if not cargo_toml.is_file():
        return {}
    try:
        package = tomllib.loads(cargo_toml.read_text(encoding="utf-8")).get("package", {})
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable Cargo.toml", path=str(cargo_toml), error=str(e))
        return {}
    return package if isinstance(package, dict) else {}


def _normalize_languages(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str) and value:
        return (value,)
    if isinstance(value, list):
        languages = tuple(str(item) for item in value if item)
        return languages or ("en-US",)
    if isinstance(value, dict) and value:
        return tuple(str(key) for key in value)
    return ("en-US",)


def get_info(
        root: PathLike,
        target_info: Optional[TargetInfo] = None,
        config_arg: Optional[str] = None,
        app_name: Optional[str] = None,
        app_version: Optional[str] = None,
) -> ProjectInfo:
    """Derive the project metadata the build and release stages need.

    Args:
        root: Project root
        target_info: Build target, selects the platform-specific config file
        config_arg: Value of the ``--config`` pass-through argument
        app_name: Overrides the configured product name
        app_version: Overrides the configured version

    Returns:
        ProjectInfo for the project

    Raises:
        MissingProjectPath: If no Tauri directory exists below ``root``
        ConfigurationError: If the name or version cannot be determined
    """
    root = pathlib.Path(root)
    tauri_dir = find_tauri_dir(root)
    if tauri_dir is None:
        raise MissingProjectPath("Couldn't detect path of tauri app", root=str(root))

    config = load_tauri_config(
        tauri_dir,
        target_platform=target_info.platform if target_info else None,
        config_arg=config_arg,
        root=root,
    )
    v2 = is_v2_config(config)

    if v2:
        name = config.get("productName") or config.get("mainBinaryName")
        version = config.get("version")
        bundle = config.get("bundle") or {}
        unzipped_sigs = bundle.get("createUpdaterArtifacts") is True
        rpm_release = _nested(bundle, "linux", "rpm", "release")
    else:
        name = _nested(config, "package", "productName")
        version = _nested(config, "package", "version")
        bundle = _nested(config, "tauri", "bundle") or {}
        unzipped_sigs = False
        rpm_release = None
    wix_language = _normalize_languages(_nested(bundle, "windows", "wix", "language"))

    if isinstance(version, str) and version.endswith(".json"):
        version_file = tauri_dir / version
        try:
            version = json.loads(version_file.read_text(encoding="utf-8")).get("version")
        except (OSError, json.JSONDecodeError, AttributeError) as e:
            raise ConfigurationError(
                f"Cannot read version from {version_file}: {e}", config_key="version"
            ) from e

    cargo_package = _read_cargo_package(tauri_dir)
    if not name and isinstance(cargo_package.get("name"), str):
        name = cargo_package["name"]
    if not version and isinstance(cargo_package.get("version"), str):
        version = cargo_package["version"]

    name = app_name or name
    version = app_version or version
    if not name:
        raise ConfigurationError("Could not determine the application name", config_key="appName")
    if not version:
        raise ConfigurationError("Could not determine the application version", config_key="appVersion")

    return ProjectInfo(
        name=str(name),
        version=str(version),
        tauri_path=tauri_dir.resolve(),
        unzipped_sigs=unzipped_sigs,
        wix_language=wix_language,
        rpm_release=str(rpm_release or "1"),
        is_v2=v2,
    )


def host_platform() -> str:
    """Map ``sys.platform`` to the names used for build targets."""
    if sys.platform == "darwin":
        return "macos"
    if sys.platform.startswith("win"):
        return "windows"
    return "linux"


def normalize_arch(machine: str) -> str:
    machine = machine.lower()
    if machine in ("x86_64", "amd64", "x64"):
        return "x86_64"
    if machine in ("arm64", "aarch64"):
        return "aarch64"
    if machine in ("i386", "i586", "i686", "x86"):
        return "i686"
    if machine.startswith("armv7"):
        return "armv7"
    return machine


def get_target_info(target_triple: Optional[str] = None) -> TargetInfo:
    """Return the platform and architecture a build produces.

    Args:
        target_triple: Rust target triple passed with ``--target``; the host
            is described when omitted.
    """
    if not target_triple:
        return TargetInfo(platform=host_platform(), arch=normalize_arch(platform.machine()))

    triple = target_triple.lower()
    if "android" in triple:
        target_platform = "android"
    elif "ios" in triple:
        target_platform = "ios"
    elif "windows" in triple:
        target_platform = "windows"
    elif "darwin" in triple or "apple" in triple:
        target_platform = "macos"
    else:
        target_platform = "linux"

    if triple.startswith("universal"):
        arch = "universal"
    else:
        arch = normalize_arch(triple.split("-", 1)[0])

    return TargetInfo(platform=target_platform, arch=arch)


def render_template(text: str, version: str) -> str:
    """Replace every ``__VERSION__`` in ``text`` with ``version``."""
    return text.replace(VERSION_TEMPLATE, version)


def to_kebab_case(name: str) -> str:
    """Lower-case ``name`` and join its words with dashes, as Linux bundles do."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def archive_bundle(bundle: PathLike) -> pathlib.Path:
    """Pack a ``.app`` directory into a sibling ``.tar.gz``.

    Returns:
        Path of the created archive
    """
    bundle = pathlib.Path(bundle)
    archive = bundle.with_name(f"{bundle.name}.tar.gz")
    logger.info("Packaging bundle", bundle=str(bundle), archive=str(archive))
    with tarfile.open(archive, "w:gz") as tar:
        tar.add(bundle, arcname=bundle.name)
    return archive


def split_command(command: str) -> List[str]:
    """Split an override command on whitespace.

    This is a literal split: a path containing spaces is broken apart.
    """
    return command.split()
