"""Tests for the layout of the test suite itself."""

import fnmatch
import pathlib

# pytest's default norecursedirs
SKIPPED_PATTERNS = ("*.egg", ".*", "_darcs", "build", "CVS", "dist", "node_modules", "venv", "{arch}")


class TestSuiteLayout:
    """Tests that every test directory is collected by pytest."""

    def test_no_directory_is_skipped_by_default(self):
        """Test that no test directory matches a name pytest does not recurse into."""
        root = pathlib.Path(__file__).parent
        skipped = [
            path.relative_to(root).as_posix()
            for path in root.rglob("*")
            if path.is_dir()
            and path.name != "__pycache__"
            and any(fnmatch.fnmatch(path.name, pattern) for pattern in SKIPPED_PATTERNS)
        ]
        assert skipped == []

    def test_builder_tests_present(self):
        """Test that the build unit tests live in a collected directory."""
        builder = pathlib.Path(__file__).parent / "unit" / "builder"
        assert (builder / "test_executor.py").is_file()
