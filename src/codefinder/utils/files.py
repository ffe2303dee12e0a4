"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Iterable


def compute_digest(data: bytes | str) -> str:
    """Compute the SHA256 digest of a blob.

    Text is encoded as UTF-8 first, so a string and its encoded bytes
    share a digest.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def combine_digests(digests: Iterable[str]) -> str:
    """Digest of the ordered concatenation of child digests."""
    sha = hashlib.sha256()
    for digest in digests:
        sha.update(digest.encode("ascii"))
    return sha.hexdigest()


def canonical_path(path: Path | str) -> Path:
    """Absolute, lexically normalized path without touching the filesystem."""
    return Path(os.path.normpath(os.path.abspath(path)))


def display_name(path: Path, root: Path | None) -> str:
    """Path relative to the workspace root, or its base name outside it."""
    if root is not None and path.is_relative_to(root):
        return path.relative_to(root).as_posix()
    return path.name
