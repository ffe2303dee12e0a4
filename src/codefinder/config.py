"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass, field

from codefinder.index.tree import DEFAULT_BATCH_SIZE, DEFAULT_MAX_FILE_BYTES


@dataclass(slots=True)
class AppConfig:
    ignore_patterns: list[str] = field(default_factory=list)
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    batch_size: int = DEFAULT_BATCH_SIZE
    seed_count: int = 3
    max_context_files: int = 8
    mention_score: float = 100.0
    symbol_weight: float = 10.0
    # Seconds before refresh_if_stale triggers a rebuild.
    refresh_interval: float = 300.0
