"""Merkle tree construction with digest-based change detection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Sequence

from codefinder.models import ERROR_DIGEST, SKIPPED_LARGE_DIGEST, FileStatus, MerkleNode
from codefinder.utils.files import combine_digests, compute_digest

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_FILE_BYTES = 500 * 1024
DEFAULT_BATCH_SIZE = 50


@dataclass(slots=True)
class Leaf:
    """Outcome of reading one file."""

    path: Path
    relative: str
    digest: str
    size: int
    status: FileStatus
    content: str | None = None


@dataclass(slots=True)
class BuildResult:
    root: MerkleNode
    leaves: list[Leaf] = field(default_factory=list)
    changed: list[Path] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def digests(self) -> dict[Path, str]:
        return {leaf.path: leaf.digest for leaf in self.leaves}

    def count(self, status: FileStatus) -> int:
        return sum(1 for leaf in self.leaves if leaf.status is status)


class TreeBuilder:
    """Reads workspace files in bounded concurrent batches.

    ``on_changed`` is called for every readable file whose digest differs
    from ``prior``, on the calling task, before the next batch is read.
    """

    def __init__(
        self,
        *,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.max_file_bytes = max_file_bytes
        self.batch_size = max(batch_size, 1)

    async def build(
        self,
        root: Path,
        files: Sequence[str],
        prior: Mapping[Path, str],
        on_changed: Callable[[Path, str], None] | None = None,
    ) -> BuildResult:
        result = BuildResult(root=MerkleNode(path=root, is_dir=True))

        for start in range(0, len(files), self.batch_size):
            batch = files[start : start + self.batch_size]
            leaves = await asyncio.gather(
                *(asyncio.to_thread(self.read_leaf, root, rel) for rel in batch)
            )
            for rel, leaf in zip(batch, leaves):
                if leaf is None:
                    result.missing.append(rel)
                    continue
                if leaf.status is FileStatus.INDEXED and prior.get(leaf.path) != leaf.digest:
                    result.changed.append(leaf.path)
                    if on_changed is not None:
                        on_changed(leaf.path, leaf.content or "")
                # Content is only needed for indexing.
                leaf.content = None
                result.leaves.append(leaf)

        result.root = assemble_tree(root, result.leaves)
        return result

    def read_leaf(self, root: Path, relative: str) -> Leaf | None:
        path = root / relative
        try:
            size = path.stat().st_size
            if size > self.max_file_bytes:
                LOGGER.debug("Skipping %s: %d bytes exceeds %d", relative, size, self.max_file_bytes)
                return Leaf(path, relative, SKIPPED_LARGE_DIGEST, size, FileStatus.SKIPPED_LARGE)
            data = path.read_bytes()
        except OSError as exc:
            LOGGER.debug("Unable to read %s: %s", relative, exc)
            return None

        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError:
            LOGGER.debug("Unable to decode %s as UTF-8", relative)
            return Leaf(path, relative, ERROR_DIGEST, len(data), FileStatus.ERROR)

        return Leaf(path, relative, compute_digest(data), len(data), FileStatus.INDEXED, content)


def assemble_tree(root: Path, leaves: Sequence[Leaf]) -> MerkleNode:
    """Group leaves into directory nodes and fold digests bottom-up."""
    root_node = MerkleNode(path=root, is_dir=True)
    directories: dict[str, MerkleNode] = {"": root_node}

    for leaf in leaves:
        parent = root_node
        parts = leaf.relative.split("/")
        prefix = ""
        for part in parts[:-1]:
            prefix = f"{prefix}/{part}" if prefix else part
            node = directories.get(prefix)
            if node is None:
                node = MerkleNode(path=root / prefix, is_dir=True)
                directories[prefix] = node
                parent.children.append(node)
            parent = node
        parent.children.append(MerkleNode(path=leaf.path, digest=leaf.digest))

    _fold(root_node)
    return root_node


def _fold(node: MerkleNode) -> str:
    if node.is_dir:
        node.digest = combine_digests(_fold(child) for child in node.children)
    return node.digest
