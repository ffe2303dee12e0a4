"""Lexical symbol and dependency extraction."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator

from codefinder.index.resolver import DependencyResolver, python_module_to_path
from codefinder.utils.text import is_meaningful, unique

LOGGER = logging.getLogger(__name__)

DEFINITION_PATTERN = re.compile(
    r"\b(?:function|class|def|func|fn|fun|struct|interface|enum|trait|type|impl|module|package)"
    r"\s+(?:\([^)\n]*\)\s*)?([A-Za-z_][A-Za-z0-9_]*)"
)
QUOTED_IMPORT_PATTERN = re.compile(
    r"\b(?:import|from|require|include|use)[ \t]*\(?(?:[\w \t{},*$]{0,200}?)['\"]([^'\"\n]+)['\"]"
)
ANGLE_INCLUDE_PATTERN = re.compile(r"#\s*include\s*<([^>\n]+)>")
MODULE_IMPORT_PATTERN = re.compile(r"^[ \t]*(?:from|import)\s+([A-Za-z0-9_.]+)", re.MULTILINE)

GENERIC_FILE_NAMES = frozenset(
    {"index", "main", "app", "mod", "lib", "init", "__init__", "__main__", "setup", "test", "tests"}
)


def extract_symbols(path: Path, content: str) -> list[str]:
    """Declared identifiers plus the file's base name when it is specific enough."""
    names = [match.group(1) for match in DEFINITION_PATTERN.finditer(content)]
    stem = path.stem
    if stem and stem.lower() not in GENERIC_FILE_NAMES:
        names.append(stem)
    return unique(name for name in names if is_meaningful(name))


def extract_imports(content: str) -> list[str]:
    """Raw import strings from quoted, angle-bracket and module-path imports."""
    raw: list[str] = []
    raw.extend(match.group(1) for match in QUOTED_IMPORT_PATTERN.finditer(content))
    raw.extend(match.group(1) for match in ANGLE_INCLUDE_PATTERN.finditer(content))
    raw.extend(
        python_module_to_path(match.group(1)) for match in MODULE_IMPORT_PATTERN.finditer(content)
    )
    return unique(raw)


class SymbolTable:
    """Symbol name to declaring files, with a reverse index per file."""

    def __init__(self) -> None:
        self._files: dict[str, list[Path]] = {}
        self._by_file: dict[Path, list[str]] = {}

    def add(self, symbol: str, path: Path) -> None:
        files = self._files.setdefault(symbol, [])
        if path not in files:
            files.append(path)
            self._by_file.setdefault(path, []).append(symbol)

    def retract(self, path: Path) -> None:
        """Drop every contribution made by ``path``."""
        for symbol in self._by_file.pop(path, []):
            files = self._files.get(symbol)
            if files is None:
                continue
            files.remove(path)
            if not files:
                del self._files[symbol]

    def files_for(self, symbol: str) -> tuple[Path, ...]:
        return tuple(self._files.get(symbol, ()))

    def symbols_of(self, path: Path) -> tuple[str, ...]:
        return tuple(self._by_file.get(path, ()))

    def clear(self) -> None:
        self._files.clear()
        self._by_file.clear()

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._files

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)


class DependencyTable:
    """Resolved imports per file, plus the raw strings they came from."""

    def __init__(self) -> None:
        self._edges: dict[Path, list[Path]] = {}
        self._raw: dict[Path, list[str]] = {}

    def set(self, path: Path, raw_imports: list[str], resolved: list[Path]) -> None:
        self._raw[path] = list(raw_imports)
        self._edges[path] = list(resolved)

    def get(self, path: Path) -> tuple[Path, ...]:
        return tuple(self._edges.get(path, ()))

    def raw_imports(self, path: Path) -> tuple[str, ...]:
        return tuple(self._raw.get(path, ()))

    def remove(self, path: Path) -> None:
        self._edges.pop(path, None)
        self._raw.pop(path, None)

    def clear(self) -> None:
        self._edges.clear()
        self._raw.clear()

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._edges.values())

    def __contains__(self, path: object) -> bool:
        return path in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[Path]:
        return iter(self._edges)


class ContentIndexer:
    """Keeps the symbol and dependency tables in step with file contents."""

    def __init__(
        self,
        symbols: SymbolTable,
        dependencies: DependencyTable,
        resolver: DependencyResolver,
    ) -> None:
        self.symbols = symbols
        self.dependencies = dependencies
        self.resolver = resolver

    def index(self, path: Path, content: str) -> None:
        """Replace everything known about ``path`` with what ``content`` declares."""
        self.symbols.retract(path)
        for symbol in extract_symbols(path, content):
            self.symbols.add(symbol, path)

        raw_imports = extract_imports(content)
        self.dependencies.set(path, raw_imports, self._resolve_all(path, raw_imports))
        LOGGER.debug(
            "Indexed %s: %d symbols, %d imports",
            path,
            len(self.symbols.symbols_of(path)),
            len(self.dependencies.get(path)),
        )

    def forget(self, path: Path) -> None:
        self.symbols.retract(path)
        self.dependencies.remove(path)

    def relink(self) -> None:
        """Re-resolve stored raw imports against the current file set."""
        for path in list(self.dependencies):
            raw_imports = list(self.dependencies.raw_imports(path))
            self.dependencies.set(path, raw_imports, self._resolve_all(path, raw_imports))

    def _resolve_all(self, path: Path, raw_imports: list[str]) -> list[Path]:
        resolved: list[Path] = []
        for raw in raw_imports:
            target = self.resolver.resolve(path, raw)
            if target is not None and target != path and target not in resolved:
                resolved.append(target)
        return resolved
