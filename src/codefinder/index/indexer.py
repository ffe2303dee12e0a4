"""Codebase indexing pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

from codefinder.config import AppConfig
from codefinder.errors import TraversalError
from codefinder.index.ignore import list_files
from codefinder.index.resolver import DependencyResolver
from codefinder.index.search import RelevanceEngine
from codefinder.index.symbols import ContentIndexer, DependencyTable, SymbolTable
from codefinder.index.tree import TreeBuilder
from codefinder.models import ContextBundle, FileRecord, FileStatus, IndexStats, MerkleNode
from codefinder.utils.files import canonical_path

LOGGER = logging.getLogger(__name__)


class CodebaseIndexer:
    """Owns the index of one workspace and answers context queries.

    ``rebuild`` and ``find_relevant_context`` must not run concurrently; the
    caller serializes them.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or AppConfig()
        self.workspace_root: Path | None = None
        self.root: MerkleNode | None = None
        self.last_indexed_at: float | None = None
        self.stats = IndexStats()

        self._records: dict[Path, FileRecord] = {}
        self._indexed: set[Path] = set()
        self._symbols = SymbolTable()
        self._dependencies = DependencyTable()
        self._content = ContentIndexer(
            self._symbols, self._dependencies, DependencyResolver(self._indexed)
        )
        self._engine = RelevanceEngine(
            self._symbols,
            self._dependencies,
            mention_score=self.config.mention_score,
            symbol_weight=self.config.symbol_weight,
            seed_count=self.config.seed_count,
            max_files=self.config.max_context_files,
        )

    @property
    def is_indexed(self) -> bool:
        return self.root is not None

    @property
    def ignore_patterns(self) -> list[str]:
        return list(self.config.ignore_patterns)

    @property
    def records(self) -> Mapping[Path, FileRecord]:
        return MappingProxyType(self._records)

    def add_ignore(self, pattern: str) -> bool:
        if pattern in self.config.ignore_patterns:
            return False
        self.config.ignore_patterns.append(pattern)
        return True

    def remove_ignore(self, pattern: str) -> bool:
        if pattern not in self.config.ignore_patterns:
            return False
        self.config.ignore_patterns.remove(pattern)
        return True

    def reset_ignores(self) -> None:
        self.config.ignore_patterns.clear()

    async def rebuild(
        self,
        workspace_root: Path | str,
        ignore_patterns: Sequence[str] | None = None,
    ) -> IndexStats:
        """Bring the index up to date with the workspace on disk.

        Raises ``TraversalError`` when the root cannot be walked or a pattern
        is malformed; the existing index is then left as it was.
        """
        root = Path(workspace_root).expanduser().resolve()
        patterns = list(self.config.ignore_patterns if ignore_patterns is None else ignore_patterns)

        LOGGER.info("Refreshing index for %s", root)
        try:
            files = list_files(root, patterns)
        except TraversalError as exc:
            LOGGER.error("Indexing failed: %s", exc)
            raise

        self.config.ignore_patterns = patterns
        if self.workspace_root is not None and self.workspace_root != root:
            LOGGER.info("Workspace changed from %s, starting a fresh index", self.workspace_root)
            self._reset()
        self.workspace_root = root

        builder = TreeBuilder(max_file_bytes=self.config.max_file_bytes, batch_size=self.config.batch_size)
        prior = {path: record.digest for path, record in self._records.items()}
        result = await builder.build(root, files, prior, on_changed=self._content.index)

        records = {
            leaf.path: FileRecord(path=leaf.path, digest=leaf.digest, size=leaf.size, status=leaf.status)
            for leaf in result.leaves
            if leaf.status is not FileStatus.ERROR
        }
        for path in self._indexed - {path for path, record in records.items() if record.indexed}:
            LOGGER.debug("Dropping stale entries for %s", path)
            self._content.forget(path)

        self._records = records
        self._indexed.clear()
        self._indexed.update(path for path, record in records.items() if record.indexed)
        self._content.relink()

        self.root = result.root
        self.last_indexed_at = time.time()
        self.stats = IndexStats(
            files=len(self._indexed),
            symbols=len(self._symbols),
            dependencies=self._dependencies.edge_count,
            changed=len(result.changed),
            skipped_large=result.count(FileStatus.SKIPPED_LARGE),
            failed=result.count(FileStatus.ERROR) + len(result.missing),
            root_digest=result.root.digest,
            changed_files=list(result.changed),
        )
        LOGGER.info("Index updated. Symbols: %d, Deps: %d", self.stats.symbols, self.stats.dependencies)
        return self.stats

    def rebuild_sync(
        self,
        workspace_root: Path | str,
        ignore_patterns: Sequence[str] | None = None,
    ) -> IndexStats:
        return asyncio.run(self.rebuild(workspace_root, ignore_patterns))

    async def refresh_if_stale(self, now: float | None = None) -> IndexStats | None:
        """Rebuild when the last index is older than ``refresh_interval``."""
        if self.workspace_root is None:
            return None
        now = time.time() if now is None else now
        if self.last_indexed_at is not None and now - self.last_indexed_at < self.config.refresh_interval:
            return None
        return await self.rebuild(self.workspace_root)

    def find_relevant_context(self, query: str, source: str | None = None) -> ContextBundle:
        """Select the files most related to ``query`` and read their content."""
        if not self.is_indexed:
            return ContextBundle.not_indexed()
        text = query if not source else f"{query}\n{source}"
        files = [path for path, record in self._records.items() if record.indexed]
        bundle = self._engine.query(text, files, self.workspace_root)
        LOGGER.debug("Query matched %d files", len(bundle))
        return bundle

    def files_declaring(self, symbol: str) -> tuple[Path, ...]:
        return self._symbols.files_for(symbol)

    def symbols_of(self, path: Path | str) -> tuple[str, ...]:
        return self._symbols.symbols_of(self._lookup_path(path))

    def dependencies_of(self, path: Path | str) -> tuple[Path, ...]:
        return self._dependencies.get(self._lookup_path(path))

    def record_for(self, path: Path | str) -> FileRecord | None:
        return self._records.get(self._lookup_path(path))

    def _lookup_path(self, path: Path | str) -> Path:
        path = Path(path)
        if not path.is_absolute() and self.workspace_root is not None:
            path = self.workspace_root / path
        return canonical_path(path)

    def _reset(self) -> None:
        self._records = {}
        self._indexed.clear()
        self._symbols.clear()
        self._dependencies.clear()
        self.root = None


def index_workspace(
    workspace_root: Path | str,
    ignore_patterns: Iterable[str] = (),
    config: AppConfig | None = None,
) -> CodebaseIndexer:
    """Build a fresh indexer for ``workspace_root`` in one call."""
    indexer = CodebaseIndexer(config)
    indexer.rebuild_sync(workspace_root, list(ignore_patterns))
    return indexer
