"""codefinder - content-addressed codebase index for retrieving query context."""

from __future__ import annotations

__version__ = "0.1.0"
