"""Exceptions raised across the indexing boundary."""

from __future__ import annotations


class CodeFinderError(Exception):
    """Base class for codefinder errors."""


class TraversalError(CodeFinderError):
    """The workspace could not be traversed; the previous index is kept."""

    def __init__(self, message: str, *, root: str | None = None, pattern: str | None = None) -> None:
        super().__init__(message)
        self.root = root
        self.pattern = pattern
