"""Best-effort mapping of raw import strings to indexed files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Container

SUPPORTED_EXTENSIONS = (
    "", ".ts", ".js", ".tsx", ".jsx", ".mjs", ".cjs",
    ".py", ".pyw", ".java", ".kt", ".scala",
    ".go", ".rs", ".c", ".cpp", ".h", ".hpp", ".cs",
    ".php", ".rb", ".swift", ".dart", ".lua",
)

INDEX_CONVENTIONS = ("index.js", "index.ts", "__init__.py", "main.go", "mod.rs")


class DependencyResolver:
    """Resolve imports against the set of indexed files.

    Only exact matches against ``known_files`` count, so an import is either
    resolved to a file that is really in the workspace or dropped. Tried in
    order: the path itself, the path plus each supported extension, then each
    directory-index convention under the path.
    """

    def __init__(self, known_files: Container[Path]) -> None:
        self.known_files = known_files

    def resolve(self, from_path: Path, raw_import: str) -> Path | None:
        raw_import = raw_import.strip()
        if not raw_import:
            return None

        base = os.path.normpath(os.path.join(os.path.dirname(from_path), raw_import))
        candidate = Path(base)
        if candidate in self.known_files:
            return candidate

        for ext in SUPPORTED_EXTENSIONS:
            candidate = Path(base + ext)
            if candidate in self.known_files:
                return candidate

        for name in INDEX_CONVENTIONS:
            candidate = Path(base) / name
            if candidate in self.known_files:
                return candidate

        return None


def python_module_to_path(module: str) -> str:
    """Turn ``pkg.mod`` / ``..pkg.mod`` into a path relative to the importing file.

    Leading dots count parent levels the way relative imports do.
    """
    stripped = module.lstrip(".")
    dots = len(module) - len(stripped)
    rel = stripped.replace(".", "/")
    if dots == 0:
        return rel
    prefix = "./" if dots == 1 else "../" * (dots - 1)
    return prefix + rel
