"""Workspace enumeration with glob-based exclusion."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Iterable, Iterator

import pathspec
from pathspec.patterns.gitwildmatch import GitWildMatchPattern, GitWildMatchPatternError

from codefinder.errors import TraversalError

LOGGER = logging.getLogger(__name__)

DEFAULT_IGNORES = (
    "**/node_modules/**", "**/bower_components/**", "**/dist/**", "**/out/**", "**/build/**",
    "**/.venv/**", "**/venv/**", "**/env/**", "**/__pycache__/**", "**/*.pyc", "**/*.pyo",
    "**/target/**", "**/bin/**", "**/obj/**", "**/vendor/**",
    "**/.git/**", "**/.svn/**", "**/.idea/**", "**/.vscode/**", "**/.DS_Store",
    "**/*.min.js", "**/*.map", "**/*.svg", "**/*.png", "**/*.jpg", "**/*.json", "**/*.lock", "**/*.log",
)


def merge_patterns(user_patterns: Iterable[str] = ()) -> list[str]:
    """Built-in exclusions followed by user patterns, without duplicates."""
    return list(dict.fromkeys([*DEFAULT_IGNORES, *user_patterns]))


class IgnoreFilter:
    """Compiled exclusion set for one traversal.

    Patterns use gitignore syntax. Excluded directories are pruned rather
    than walked.
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns = list(patterns)
        for pattern in self.patterns:
            if not isinstance(pattern, str) or not pattern.strip():
                raise TraversalError(f"Invalid ignore pattern: {pattern!r}", pattern=str(pattern))
        self._spec = pathspec.PathSpec([_compile(pattern) for pattern in self.patterns])

    def is_ignored(self, relative_path: str, *, is_dir: bool = False) -> bool:
        rel = relative_path.replace(os.sep, "/").strip("/")
        if not rel:
            return False
        if is_dir:
            rel += "/"
        return self._spec.match_file(rel)

    def iter_files(self, root: Path) -> Iterator[str]:
        """Yield relative POSIX paths of every regular file not excluded.

        Entries are sorted per directory so that enumeration order does not
        depend on the platform.
        """
        _check_root(root)

        def _on_error(exc: OSError) -> None:
            LOGGER.debug("Skipping unreadable directory %s: %s", exc.filename, exc)

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            base = Path(dirpath).relative_to(root)
            dirnames[:] = sorted(
                name for name in dirnames if not self.is_ignored((base / name).as_posix(), is_dir=True)
            )
            for name in sorted(filenames):
                rel = (base / name).as_posix()
                if self.is_ignored(rel):
                    continue
                if not os.path.isfile(os.path.join(dirpath, name)):
                    continue
                yield rel


def _check_root(root: Path) -> None:
    if not root.exists():
        raise TraversalError(f"Workspace root not found: {root}", root=str(root))
    if not root.is_dir():
        raise TraversalError(f"Workspace root is not a directory: {root}", root=str(root))
    try:
        with os.scandir(root):
            pass
    except OSError as exc:
        raise TraversalError(f"Workspace root is not readable: {root}", root=str(root)) from exc


def list_files(root: Path, user_patterns: Iterable[str] = ()) -> list[str]:
    """Enumerate the workspace with built-in and user exclusions applied."""
    return list(IgnoreFilter(merge_patterns(user_patterns)).iter_files(root))


def _compile(pattern: str) -> GitWildMatchPattern:
    # Bad globs fail either in pathspec's parser or in re.compile.
    try:
        return GitWildMatchPattern(pattern)
    except (GitWildMatchPatternError, re.error) as exc:
        raise TraversalError(f"Invalid ignore pattern {pattern!r}: {exc}", pattern=pattern) from exc
