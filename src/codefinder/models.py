"""Core codefinder data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator

SKIPPED_LARGE_DIGEST = "skipped_large"
ERROR_DIGEST = "error"
NO_MATCH_TEXT = "No correlated files found."


class FileStatus(str, Enum):
    INDEXED = "indexed"
    SKIPPED_LARGE = "skipped_large"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class FileRecord:
    """Last observed state of one file in the workspace."""

    path: Path
    digest: str
    size: int
    status: FileStatus = FileStatus.INDEXED

    @property
    def indexed(self) -> bool:
        return self.status is FileStatus.INDEXED


@dataclass(slots=True)
class MerkleNode:
    """Node of the workspace hash tree.

    Leaves carry the digest of a file's bytes (or a sentinel digest);
    directories carry the digest of their children's digests in
    enumeration order.
    """

    path: Path
    digest: str = ""
    is_dir: bool = False
    children: list[MerkleNode] = field(default_factory=list)


@dataclass(slots=True)
class IndexStats:
    files: int = 0
    symbols: int = 0
    dependencies: int = 0
    changed: int = 0
    skipped_large: int = 0
    failed: int = 0
    root_digest: str = ""
    changed_files: list[Path] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "files": self.files,
            "symbols": self.symbols,
            "dependencies": self.dependencies,
            "changed": self.changed,
            "skipped_large": self.skipped_large,
            "failed": self.failed,
            "root_digest": self.root_digest,
        }


class BundleStatus(str, Enum):
    FOUND = "found"
    NO_MATCH = "no_match"
    NOT_INDEXED = "not_indexed"


@dataclass(slots=True, frozen=True)
class BundleEntry:
    """One file selected for a query, with the content read at query time."""

    name: str
    path: Path
    content: str
    score: float = 0.0


@dataclass(slots=True)
class ContextBundle:
    status: BundleStatus
    entries: list[BundleEntry] = field(default_factory=list)

    @classmethod
    def no_match(cls) -> ContextBundle:
        return cls(status=BundleStatus.NO_MATCH)

    @classmethod
    def not_indexed(cls) -> ContextBundle:
        return cls(status=BundleStatus.NOT_INDEXED)

    @property
    def found(self) -> bool:
        return self.status is BundleStatus.FOUND

    @property
    def paths(self) -> list[Path]:
        return [entry.path for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[BundleEntry]:
        return iter(self.entries)

    def render(self) -> str:
        """Format the bundle as a single text block for a prompt."""
        if not self.found:
            return NO_MATCH_TEXT
        return "".join(
            f"\n\n--- RELATED FILE: {entry.name} ---\n{entry.content}\n" for entry in self.entries
        )
