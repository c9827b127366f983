"""Pytest configuration and fixtures for tauri-release tests."""

from __future__ import annotations

import json
import pathlib
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from tauri_release.build.executor import CommandExecutor
from tauri_release.build.models import Artifact, ReleaseData, UpdateManifestRequest
from tauri_release.utils.exceptions import ProcessFailure


class FakeExecutor(CommandExecutor):
    """Records commands instead of running them.

    ``failures`` makes the first N calls fail; ``on_success`` runs after
    every successful call, e.g. to create the files a build would produce.
    """

    def __init__(
            self,
            failures: int = 0,
            on_success: Optional[Callable[[str, List[str]], None]] = None,
    ) -> None:
        super().__init__(output=lambda line: None)
        self.calls: List[Tuple[str, List[str], Any]] = []
        self.failures = failures
        self.on_success = on_success

    def execute(self, executable, args, cwd=None, env=None) -> int:
        self.calls.append((executable, list(args), cwd))
        if self.failures > 0:
            self.failures -= 1
            raise ProcessFailure("simulated failure", exit_code=1)
        if self.on_success is not None:
            self.on_success(executable, list(args))
        return 0


class FakeReleaseClient:
    """In-memory stand-in for the GitHub release backend."""

    def __init__(self, release_id: int = 42) -> None:
        self.release = ReleaseData(
            id=release_id,
            upload_url=f"https://uploads.example.com/releases/{release_id}/assets",
            html_url=f"https://github.com/owner/repo/releases/{release_id}",
        )
        self.fetch_calls: List[Dict[str, Any]] = []
        self.uploads: List[Tuple[int, List[Artifact]]] = []
        self.manifests: List[UpdateManifestRequest] = []

    def fetch_or_create_release(self, owner, repo, tag_name, name=None, body=None,
                                commitish=None, draft=False, prerelease=False) -> ReleaseData:
        self.fetch_calls.append(
            {
                "owner": owner,
                "repo": repo,
                "tag_name": tag_name,
                "name": name,
                "body": body,
                "commitish": commitish,
                "draft": draft,
                "prerelease": prerelease,
            }
        )
        return self.release

    def upload_assets(self, owner, repo, release_id, artifacts: Sequence[Artifact]) -> None:
        self.uploads.append((release_id, list(artifacts)))

    def upload_update_manifest(self, request: UpdateManifestRequest) -> None:
        self.manifests.append(request)


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def fake_executor_factory() -> Callable[..., FakeExecutor]:
    return FakeExecutor


@pytest.fixture
def fake_release_client() -> FakeReleaseClient:
    return FakeReleaseClient()


@pytest.fixture
def make_project(tmp_path: pathlib.Path) -> Callable[..., pathlib.Path]:
    """Create a Tauri project below ``tmp_path`` and return its root."""

    def _make_project(
            name: str = "Test App",
            version: str = "1.2.3",
            v2: bool = True,
            package_json: Optional[Dict[str, Any]] = None,
            lock_file: Optional[str] = None,
            extra_config: Optional[Dict[str, Any]] = None,
    ) -> pathlib.Path:
        root = tmp_path / "project"
        tauri_dir = root / "src-tauri"
        tauri_dir.mkdir(parents=True, exist_ok=True)

        if v2:
            config: Dict[str, Any] = {
                "productName": name,
                "version": version,
                "identifier": "com.example.app",
                "bundle": {"active": True},
            }
        else:
            config = {
                "package": {"productName": name, "version": version},
                "tauri": {"bundle": {"identifier": "com.example.app"}},
            }
        config.update(extra_config or {})
        (tauri_dir / "tauri.conf.json").write_text(json.dumps(config), encoding="utf-8")

        if package_json is not None:
            (root / "package.json").write_text(json.dumps(package_json), encoding="utf-8")
        if lock_file:
            (root / lock_file).write_text("", encoding="utf-8")
        return root

    return _make_project


def touch(path: pathlib.Path, content: str = "") -> pathlib.Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def touch_file() -> Callable[..., pathlib.Path]:
    return touch
