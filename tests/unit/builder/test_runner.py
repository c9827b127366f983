"""Unit tests for Tauri CLI runner selection."""

from __future__ import annotations

import pytest

from tauri_release.build.runner import RunnerInvocation, RunnerResolver
from tauri_release.utils.exceptions import ProcessFailure

CLI_DEPENDENCY = {"devDependencies": {"@tauri-apps/cli": "^2.0.0"}}


class TestRunnerResolver:
    """Tests for the RunnerResolver class."""

    @pytest.mark.parametrize(
        "lock_file, manager",
        [
            ("yarn.lock", "yarn"),
            ("pnpm-lock.yaml", "pnpm"),
            ("bun.lockb", "bun"),
            ("bun.lock", "bun"),
        ],
    )
    def test_package_manager_from_lock_file(self, make_project, fake_executor, lock_file, manager):
        """Test that the lock file selects the package manager."""
        root = make_project(package_json=CLI_DEPENDENCY, lock_file=lock_file)
        runner = RunnerResolver(fake_executor).resolve(root)
        assert runner == RunnerInvocation(manager, ("tauri",))
        assert fake_executor.calls == []

    def test_npm_without_lock_file(self, make_project, fake_executor):
        """Test that npm is used when no other manager is detected."""
        root = make_project(package_json={"dependencies": {"@tauri-apps/cli": "1.5.0"}})
        runner = RunnerResolver(fake_executor).resolve(root)
        assert runner == RunnerInvocation("npm", ("run", "tauri"))

    def test_package_manager_field(self, make_project, fake_executor):
        """Test that the packageManager field selects the manager without a lock file."""
        root = make_project(package_json={**CLI_DEPENDENCY, "packageManager": "pnpm@9.1.0"})
        assert RunnerResolver(fake_executor).resolve(root).executable == "pnpm"

    def test_yarn_wins_over_pnpm(self, make_project, fake_executor):
        """Test the manager priority when several lock files exist."""
        root = make_project(package_json=CLI_DEPENDENCY, lock_file="pnpm-lock.yaml")
        (root / "yarn.lock").write_text("", encoding="utf-8")
        assert RunnerResolver(fake_executor).resolve(root).executable == "yarn"

    def test_override_is_split_on_whitespace(self, make_project, fake_executor):
        """Test that an explicit command is used verbatim, split on whitespace."""
        root = make_project(package_json=CLI_DEPENDENCY, lock_file="yarn.lock")
        runner = RunnerResolver(fake_executor).resolve(root, "cargo  tauri")
        assert runner == RunnerInvocation("cargo", ("tauri",))
        assert fake_executor.calls == []

    def test_blank_override_is_ignored(self, make_project, fake_executor):
        """Test that a whitespace-only override falls through to detection."""
        root = make_project(package_json=CLI_DEPENDENCY, lock_file="yarn.lock")
        assert RunnerResolver(fake_executor).resolve(root, "   ").executable == "yarn"

    @pytest.mark.parametrize("v2, tag", [(True, "v2"), (False, "v1")])
    def test_global_install(self, make_project, fake_executor, v2, tag):
        """Test that the CLI is installed globally for the detected major version."""
        root = make_project(v2=v2, package_json={"dependencies": {"react": "18"}})
        runner = RunnerResolver(fake_executor).resolve(root)
        assert runner == RunnerInvocation("tauri")
        assert fake_executor.calls == [
            ("npm", ["install", "-g", f"@tauri-apps/cli@{tag}"], None)
        ]

    def test_global_install_without_config(self, tmp_path, fake_executor):
        """Test that a failed version detection falls back to the v1 CLI."""
        runner = RunnerResolver(fake_executor).resolve(tmp_path)
        assert runner.executable == "tauri"
        assert fake_executor.calls[0][1] == ["install", "-g", "@tauri-apps/cli@v1"]

    def test_global_install_with_broken_config(self, tmp_path):
        """Test that an unreadable config also falls back to v1."""
        tauri_dir = tmp_path / "src-tauri"
        tauri_dir.mkdir()
        (tauri_dir / "tauri.conf.json").write_text("{not json", encoding="utf-8")
        assert RunnerResolver.resolve_cli_tag(tmp_path) == "v1"

    def test_global_install_failure_propagates(self, make_project, fake_executor_factory):
        """Test that a failing global install is reported."""
        root = make_project()
        executor = fake_executor_factory(failures=1)
        with pytest.raises(ProcessFailure):
            RunnerResolver(executor).resolve(root)

    def test_dependency_in_package_json_only(self, make_project, fake_executor):
        """Test that unrelated dependencies do not count as the CLI."""
        root = make_project(package_json={"devDependencies": {"@tauri-apps/api": "2"}})
        RunnerResolver(fake_executor).resolve(root)
        assert fake_executor.calls[0][0] == "npm"

    def test_unreadable_package_json(self, make_project, fake_executor):
        """Test that a broken package.json is treated as missing."""
        root = make_project()
        (root / "package.json").write_text("{", encoding="utf-8")
        assert RunnerResolver(fake_executor).resolve(root).executable == "tauri"


class TestRunnerInvocation:
    """Tests for command shaping."""

    def test_npm_separator(self):
        """Test that npm gets `--` before options."""
        runner = RunnerInvocation("npm", ("run", "tauri"))
        assert runner.command_args(["build"], ["--debug"]) == ["run", "tauri", "build", "--", "--debug"]

    def test_npm_without_options(self):
        """Test that npm gets no separator when there are no options."""
        runner = RunnerInvocation("npm", ("run", "tauri"))
        assert runner.command_args(["android", "build"], []) == ["run", "tauri", "android", "build"]

    def test_npm_override_gets_run(self):
        """Test that a bare npm override still runs the script."""
        runner = RunnerInvocation("npm", ("tauri",))
        assert runner.command_args(["build"], ["--target", "x"]) == [
            "run", "tauri", "build", "--", "--target", "x"
        ]

    @pytest.mark.parametrize("executable", ["yarn", "pnpm", "bun"])
    def test_other_managers(self, executable):
        """Test that other managers pass options straight through."""
        runner = RunnerInvocation(executable, ("tauri",))
        assert runner.command_args(["ios", "build"], ["--debug"]) == ["tauri", "ios", "build", "--debug"]

    def test_global_cli(self):
        """Test the globally installed CLI."""
        assert RunnerInvocation("tauri").command_args(["build"], []) == ["build"]

    def test_run_retries(self, tmp_path, fake_executor_factory):
        """Test that run retries failed attempts up to the limit."""
        executor = fake_executor_factory(failures=2)
        RunnerInvocation("yarn", ("tauri",)).run(executor, ["build"], [], cwd=tmp_path, max_attempts=3)
        assert len(executor.calls) == 3
        assert executor.calls[-1] == ("yarn", ["tauri", "build"], tmp_path)

    def test_run_gives_up(self, fake_executor_factory):
        """Test that the last failure surfaces after all attempts."""
        executor = fake_executor_factory(failures=5)
        with pytest.raises(ProcessFailure):
            RunnerInvocation("tauri").run(executor, ["build"], [], max_attempts=2)
        assert len(executor.calls) == 2
