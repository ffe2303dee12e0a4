"""FastAPI application exposing the codebase index."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from codefinder import __version__
from codefinder.config import AppConfig
from codefinder.errors import TraversalError
from codefinder.index.indexer import CodebaseIndexer
from codefinder.models import BundleStatus

LOGGER = logging.getLogger(__name__)


class RebuildPayload(BaseModel):
    root: str
    ignore_patterns: List[str] | None = None


class ContextPayload(BaseModel):
    query: str
    source: str | None = None


class IgnorePayload(BaseModel):
    pattern: str


def _indexer(request: Request) -> CodebaseIndexer:
    return request.app.state.indexer


def _index_lock(request: Request) -> asyncio.Lock:
    return request.app.state.index_lock


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the service around a single indexer owned by the app."""
    api = FastAPI(title="codefinder", version=__version__)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    api.state.indexer = CodebaseIndexer(config)
    # Held for every use of the indexer so a rebuild never overlaps a query.
    api.state.index_lock = asyncio.Lock()

    @api.on_event("startup")
    async def startup_event() -> None:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    @api.post("/rebuild")
    async def rebuild(payload: RebuildPayload, request: Request) -> dict[str, Any]:
        root = payload.root.strip().replace("\r", "").replace("\n", "")
        if not root or "\0" in root:
            raise HTTPException(status_code=400, detail="Invalid root path")

        try:
            async with _index_lock(request):
                stats = await _indexer(request).rebuild(root, payload.ignore_patterns)
        except TraversalError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"status": "ok", "stats": stats.as_dict()}

    @api.post("/context")
    async def find_context(payload: ContextPayload, request: Request) -> dict[str, Any]:
        query = payload.query.strip()
        if not query:
            raise HTTPException(status_code=400, detail="Empty query")

        indexer = _indexer(request)
        async with _index_lock(request):
            try:
                await indexer.refresh_if_stale()
            except TraversalError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
            bundle = await asyncio.to_thread(indexer.find_relevant_context, query, payload.source)
        if bundle.status is BundleStatus.NOT_INDEXED:
            raise HTTPException(status_code=409, detail="Workspace not indexed yet")

        return {
            "found": bundle.found,
            "files": [
                {"name": entry.name, "path": str(entry.path), "score": entry.score}
                for entry in bundle
            ],
            "text": bundle.render(),
        }

    @api.get("/status")
    async def status(request: Request) -> dict[str, Any]:
        indexer = _indexer(request)
        async with _index_lock(request):
            stats = indexer.stats
            return {
                "indexed": indexer.is_indexed,
                "root": str(indexer.workspace_root) if indexer.workspace_root else None,
                "root_digest": stats.root_digest or None,
                "files": stats.files,
                "symbols": stats.symbols,
                "dependencies": stats.dependencies,
                "last_indexed_at": indexer.last_indexed_at,
            }

    @api.get("/ignores")
    async def list_ignores(request: Request) -> dict[str, Any]:
        return {"patterns": _indexer(request).ignore_patterns}

    @api.post("/ignores")
    async def add_ignore(payload: IgnorePayload, request: Request) -> dict[str, Any]:
        pattern = payload.pattern.strip()
        if not pattern:
            raise HTTPException(status_code=400, detail="Empty pattern")
        indexer = _indexer(request)
        async with _index_lock(request):
            added = indexer.add_ignore(pattern)
            return {"added": added, "patterns": indexer.ignore_patterns}

    @api.delete("/ignores")
    async def remove_ignore(pattern: str, request: Request) -> dict[str, Any]:
        indexer = _indexer(request)
        async with _index_lock(request):
            removed = indexer.remove_ignore(pattern)
            patterns = indexer.ignore_patterns
        if not removed:
            raise HTTPException(status_code=404, detail=f"Pattern not found: {pattern}")
        return {"removed": removed, "patterns": patterns}

    return api


app = create_app()
