"""Text helpers shared by symbol extraction and query scoring."""

from __future__ import annotations

import re
from typing import Iterable

MIN_TOKEN_LENGTH = 3

STOP_WORDS = frozenset(
    {
        "const", "let", "var", "function", "class", "import", "from", "return",
        "async", "await", "if", "else", "for", "while", "try", "catch", "new",
        "this", "true", "false", "null", "undefined", "export", "default",
        "interface", "type", "module", "require", "include", "package", "namespace",
        "public", "private", "protected", "void", "int", "string", "bool",
        "def", "self", "None", "True", "False", "elif", "pass", "with", "lambda",
        "func", "struct", "enum", "trait", "impl", "static", "final", "use",
    }
)

_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9_]+")


def is_meaningful(token: str) -> bool:
    """Whether a token is long enough and not a stop word."""
    return len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS


def tokenize(text: str) -> list[str]:
    """Split text on non-identifier characters into unique meaningful tokens.

    Order of first appearance is kept so that scoring stays deterministic.
    """
    return unique(token for token in _NON_IDENTIFIER.split(text) if is_meaningful(token))


def unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))
