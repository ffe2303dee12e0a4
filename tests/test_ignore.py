"""Tests for workspace enumeration and ignore patterns."""

from __future__ import annotations

from pathlib import Path

import pytest

from codefinder.errors import TraversalError
from codefinder.index.ignore import DEFAULT_IGNORES, IgnoreFilter, list_files, merge_patterns


def _touch(root: Path, relative: str, text: str = "x") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestMergePatterns:
    """Test merge_patterns function."""

    def test_defaults_only(self) -> None:
        """Without user patterns the built-in set is returned."""
        assert merge_patterns() == list(DEFAULT_IGNORES)

    def test_user_patterns_appended(self) -> None:
        """User patterns follow the built-ins."""
        assert merge_patterns(["*.tmp"])[-1] == "*.tmp"

    def test_duplicates_dropped(self) -> None:
        """A user pattern equal to a built-in is not repeated."""
        merged = merge_patterns(["**/.git/**"])

        assert merged.count("**/.git/**") == 1
        assert merged[: len(DEFAULT_IGNORES)] == list(DEFAULT_IGNORES)


class TestIgnoreFilter:
    """Test IgnoreFilter matching."""

    def test_dependency_directory_ignored(self) -> None:
        """Dependency directories are pruned at any depth."""
        ignore = IgnoreFilter(merge_patterns())

        assert ignore.is_ignored("node_modules", is_dir=True)
        assert ignore.is_ignored("web/node_modules", is_dir=True)
        assert ignore.is_ignored(".git", is_dir=True)

    def test_source_directory_kept(self) -> None:
        """Ordinary directories are walked."""
        assert not IgnoreFilter(merge_patterns()).is_ignored("src", is_dir=True)

    def test_extensions_ignored(self) -> None:
        """Lock, log, map and minified files are excluded."""
        ignore = IgnoreFilter(merge_patterns())

        assert ignore.is_ignored("package-lock.json")
        assert ignore.is_ignored("logs/server.log")
        assert ignore.is_ignored("static/app.min.js")
        assert not ignore.is_ignored("static/app.js")

    def test_user_pattern(self) -> None:
        """User patterns exclude both directories and files."""
        ignore = IgnoreFilter(merge_patterns(["**/secrets/**"]))

        assert ignore.is_ignored("config/secrets", is_dir=True)
        assert ignore.is_ignored("secrets/key.py")

    def test_empty_pattern_rejected(self) -> None:
        """Blank patterns are an error, not a no-op."""
        with pytest.raises(TraversalError):
            IgnoreFilter(["  "])

    def test_malformed_pattern_rejected(self) -> None:
        """Patterns the glob compiler refuses fail loudly."""
        with pytest.raises(TraversalError):
            IgnoreFilter(["secrets//*.py"])

    def test_invalid_character_range_rejected(self) -> None:
        """A glob whose regex does not compile is a traversal error naming the pattern."""
        with pytest.raises(TraversalError) as excinfo:
            IgnoreFilter(merge_patterns(["**/[z-a]/**"]))

        assert excinfo.value.pattern == "**/[z-a]/**"


class TestListFiles:
    """Test list_files function."""

    def test_excludes_builtin_directories(self, tmp_path: Path) -> None:
        """Files under ignored directories are not listed."""
        _touch(tmp_path, "src/app.py")
        _touch(tmp_path, "node_modules/lib/index.js")
        _touch(tmp_path, ".git/config")
        _touch(tmp_path, "build/out.js")

        assert list_files(tmp_path) == ["src/app.py"]

    def test_excludes_binary_and_lock_files(self, tmp_path: Path) -> None:
        """Built-in extension patterns apply."""
        _touch(tmp_path, "main.go")
        _touch(tmp_path, "logo.png")
        _touch(tmp_path, "yarn.lock")
        _touch(tmp_path, "data.json")

        assert list_files(tmp_path) == ["main.go"]

    def test_user_patterns(self, tmp_path: Path) -> None:
        """User patterns are applied on top of the built-ins."""
        _touch(tmp_path, "src/app.py")
        _touch(tmp_path, "src/secrets/token.py")

        assert list_files(tmp_path, ["**/secrets/**"]) == ["src/app.py"]

    def test_deterministic_order(self, tmp_path: Path) -> None:
        """Files of a directory come sorted, before its subdirectories."""
        _touch(tmp_path, "b.py")
        _touch(tmp_path, "a.py")
        _touch(tmp_path, "sub/d.py")
        _touch(tmp_path, "sub/c.py")

        assert list_files(tmp_path) == ["a.py", "b.py", "sub/c.py", "sub/d.py"]

    def test_empty_workspace(self, tmp_path: Path) -> None:
        """An empty root yields nothing."""
        assert list_files(tmp_path) == []

    def test_missing_root(self, tmp_path: Path) -> None:
        """A root that does not exist is a traversal error."""
        with pytest.raises(TraversalError) as excinfo:
            list_files(tmp_path / "missing")

        assert excinfo.value.root == str(tmp_path / "missing")

    def test_root_is_file(self, tmp_path: Path) -> None:
        """A root that is a regular file is a traversal error."""
        file_root = _touch(tmp_path, "file.py")

        with pytest.raises(TraversalError):
            list_files(file_root)
