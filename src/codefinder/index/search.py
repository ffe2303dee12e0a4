"""Query scoring, ranking and dependency expansion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

import numpy as np

from codefinder.index.symbols import DependencyTable, SymbolTable
from codefinder.models import BundleEntry, BundleStatus, ContextBundle
from codefinder.utils.files import display_name
from codefinder.utils.text import tokenize

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ScoredFile:
    path: Path
    score: float
    mentioned: bool = False


class RelevanceEngine:
    """Ranks indexed files against free text and bundles their contents."""

    def __init__(
        self,
        symbols: SymbolTable,
        dependencies: DependencyTable,
        *,
        mention_score: float = 100.0,
        symbol_weight: float = 10.0,
        seed_count: int = 3,
        max_files: int = 8,
    ) -> None:
        self.symbols = symbols
        self.dependencies = dependencies
        self.mention_score = mention_score
        self.symbol_weight = symbol_weight
        self.seed_count = seed_count
        self.max_files = max_files

    def score(self, text: str, files: Sequence[Path]) -> dict[Path, ScoredFile]:
        """Score files by explicit mention, then by symbol overlap.

        A symbol declared by ``n`` files adds ``symbol_weight / (n + 1)`` to
        each of them. Insertion order of the result is the tie-break order.
        """
        scores: dict[Path, ScoredFile] = {}

        for path in files:
            if _is_mentioned(text, path):
                scores[path] = ScoredFile(path, self.mention_score, mentioned=True)

        for token in tokenize(text):
            declaring = self.symbols.files_for(token)
            if not declaring:
                continue
            weight = self.symbol_weight / (len(declaring) + 1)
            for path in declaring:
                entry = scores.get(path)
                if entry is None:
                    scores[path] = ScoredFile(path, weight)
                else:
                    entry.score += weight
        return scores

    def rank(self, scores: dict[Path, ScoredFile]) -> List[ScoredFile]:
        """Mentioned files first, then by descending score; stable on ties."""
        if not scores:
            return []
        entries = list(scores.values())
        values = np.fromiter((entry.score for entry in entries), dtype=float, count=len(entries))
        unmentioned = np.fromiter((not entry.mentioned for entry in entries), dtype=bool, count=len(entries))
        order = np.lexsort((-values, unmentioned))
        return [entries[idx] for idx in order]

    def select(self, text: str, files: Sequence[Path]) -> List[ScoredFile]:
        """Top seeds plus their direct dependencies, capped at ``max_files``."""
        scores = self.score(text, files)
        seeds = self.rank(scores)[: self.seed_count]

        selected: dict[Path, ScoredFile] = {seed.path: seed for seed in seeds}
        for seed in seeds:
            for dependency in self.dependencies.get(seed.path):
                if dependency not in selected:
                    selected[dependency] = scores.get(dependency) or ScoredFile(dependency, 0.0)
        return list(selected.values())[: self.max_files]

    def query(self, text: str, files: Sequence[Path], root: Path | None = None) -> ContextBundle:
        entries: List[BundleEntry] = []
        for scored in self.select(text, files):
            try:
                content = scored.path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                LOGGER.debug("Skipping %s while reading context: %s", scored.path, exc)
                continue
            entries.append(
                BundleEntry(
                    name=display_name(scored.path, root),
                    path=scored.path,
                    content=content,
                    score=scored.score,
                )
            )

        if not entries:
            return ContextBundle.no_match()
        return ContextBundle(status=BundleStatus.FOUND, entries=entries)


def _is_mentioned(text: str, path: Path) -> bool:
    return path.name in text or str(path) in text
