"""Tests for the FastAPI web application."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from codefinder.config import AppConfig
from codefinder.web.app import create_app


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "ws"
    root.mkdir()
    (root / "main.x").write_text("import { parseConfig } from './utils.x';\nparseConfig();\n")
    (root / "utils.x").write_text("function parseConfig() {\n  return {};\n}\n")
    return root


class TestRebuildEndpoint:
    """Tests for POST /rebuild endpoint."""

    def test_rebuild_success(self, client: TestClient, workspace: Path) -> None:
        """Returns stats for an indexed workspace."""
        response = client.post("/rebuild", json={"root": str(workspace)})
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["stats"]["files"] == 2
        assert data["stats"]["dependencies"] == 1
        assert len(data["stats"]["root_digest"]) == 64

    def test_rebuild_empty_root(self, client: TestClient) -> None:
        """Returns 400 for a blank root."""
        response = client.post("/rebuild", json={"root": "   "})
        assert response.status_code == 400
        assert "Invalid root path" in response.json()["detail"]

    def test_rebuild_missing_root(self, client: TestClient, tmp_path: Path) -> None:
        """Returns 400 when the root does not exist."""
        response = client.post("/rebuild", json={"root": str(tmp_path / "missing")})
        assert response.status_code == 400

    def test_rebuild_malformed_pattern(self, client: TestClient, workspace: Path) -> None:
        """Returns 400 for a malformed ignore pattern."""
        response = client.post(
            "/rebuild", json={"root": str(workspace), "ignore_patterns": ["lib//*.py"]}
        )
        assert response.status_code == 400

    def test_rebuild_invalid_character_range(self, client: TestClient, workspace: Path) -> None:
        """Returns 400 when a pattern does not compile to a regex."""
        response = client.post(
            "/rebuild", json={"root": str(workspace), "ignore_patterns": ["**/[z-a]/**"]}
        )
        assert response.status_code == 400
        assert "[z-a]" in response.json()["detail"]


class TestContextEndpoint:
    """Tests for POST /context endpoint."""

    def test_context_empty_query(self, client: TestClient) -> None:
        """Returns 400 for whitespace-only query."""
        response = client.post("/context", json={"query": "   "})
        assert response.status_code == 400
        assert "Empty query" in response.json()["detail"]

    def test_context_not_indexed(self, client: TestClient) -> None:
        """Returns 409 before any rebuild."""
        response = client.post("/context", json={"query": "parseConfig"})
        assert response.status_code == 409

    def test_context_found(self, client: TestClient, workspace: Path) -> None:
        """Returns ranked files and rendered text."""
        client.post("/rebuild", json={"root": str(workspace)})

        response = client.post("/context", json={"query": "parseConfig threw an error in main.x"})
        assert response.status_code == 200
        data = response.json()
        assert data["found"] is True
        assert [item["name"] for item in data["files"]] == ["main.x", "utils.x"]
        assert "--- RELATED FILE: main.x ---" in data["text"]

    def test_context_source(self, client: TestClient, workspace: Path) -> None:
        """Source text contributes to the match."""
        client.post("/rebuild", json={"root": str(workspace)})

        response = client.post(
            "/context", json={"query": "it crashed", "source": "parseConfig();"}
        )
        assert response.json()["files"][0]["name"] == "utils.x"

    def test_context_no_match(self, client: TestClient, workspace: Path) -> None:
        """Unrelated text returns the no-match message."""
        client.post("/rebuild", json={"root": str(workspace)})

        response = client.post("/context", json={"query": "the weather is nice"})
        assert response.status_code == 200
        data = response.json()
        assert data["found"] is False
        assert data["files"] == []
        assert data["text"] == "No correlated files found."


class TestStatusEndpoint:
    """Tests for GET /status endpoint."""

    def test_status_before_index(self, client: TestClient) -> None:
        """Reports an empty, unindexed service."""
        data = client.get("/status").json()
        assert data["indexed"] is False
        assert data["root"] is None
        assert data["root_digest"] is None

    def test_status_after_index(self, client: TestClient, workspace: Path) -> None:
        """Reports the indexed workspace."""
        client.post("/rebuild", json={"root": str(workspace)})

        data = client.get("/status").json()
        assert data["indexed"] is True
        assert data["root"] == str(workspace.resolve())
        assert data["files"] == 2
        assert data["last_indexed_at"] is not None


class TestIgnoresEndpoint:
    """Tests for the /ignores endpoints."""

    def test_add_list_remove(self, client: TestClient) -> None:
        """Patterns can be added, listed and removed."""
        response = client.post("/ignores", json={"pattern": "*.gen.ts"})
        assert response.json() == {"added": True, "patterns": ["*.gen.ts"]}

        response = client.post("/ignores", json={"pattern": "*.gen.ts"})
        assert response.json()["added"] is False

        assert client.get("/ignores").json() == {"patterns": ["*.gen.ts"]}

        response = client.delete("/ignores", params={"pattern": "*.gen.ts"})
        assert response.status_code == 200
        assert response.json()["patterns"] == []

    def test_add_empty_pattern(self, client: TestClient) -> None:
        """Returns 400 for a blank pattern."""
        response = client.post("/ignores", json={"pattern": " "})
        assert response.status_code == 400

    def test_remove_unknown_pattern(self, client: TestClient) -> None:
        """Returns 404 for a pattern that was never added."""
        response = client.delete("/ignores", params={"pattern": "nope/"})
        assert response.status_code == 404

    def test_added_pattern_applies_on_rebuild(self, client: TestClient, workspace: Path) -> None:
        """Stored patterns filter the next rebuild."""
        client.post("/ignores", json={"pattern": "utils.x"})

        data = client.post("/rebuild", json={"root": str(workspace)}).json()
        assert data["stats"]["files"] == 1


class TestStaleRefresh:
    """Tests for the re-index timer behind /context."""

    def test_stale_index_rebuilt_before_query(self, workspace: Path) -> None:
        """A file added after the last rebuild is found once the index is stale."""
        client = TestClient(create_app(AppConfig(refresh_interval=0)))
        client.post("/rebuild", json={"root": str(workspace)})
        (workspace / "later.x").write_text("function lateArrival() {}\n")

        response = client.post("/context", json={"query": "lateArrival failed"})
        assert response.status_code == 200
        assert [item["name"] for item in response.json()["files"]] == ["later.x"]

    def test_fresh_index_not_rebuilt(self, client: TestClient, workspace: Path) -> None:
        """Within the interval the existing index answers."""
        client.post("/rebuild", json={"root": str(workspace)})
        (workspace / "later.x").write_text("function lateArrival() {}\n")

        response = client.post("/context", json={"query": "lateArrival failed"})
        assert response.json()["found"] is False


def _make_workspace(root: Path, prefix: str, count: int = 60) -> Path:
    root.mkdir()
    for i in range(count):
        (root / f"{prefix}{i}.py").write_text(f"def {prefix}_fn_{i}():\n    return {i}\n")
    return root.resolve()


class TestConcurrentRequests:
    """Requests arriving together see a consistent index."""

    def test_overlapping_rebuilds(self, tmp_path: Path) -> None:
        """Two rebuilds of different roots never mix their files."""
        alpha = _make_workspace(tmp_path / "alpha", "alpha")
        beta = _make_workspace(tmp_path / "beta", "beta")
        api = create_app()

        async def run() -> tuple[list[httpx.Response], dict, dict]:
            transport = httpx.ASGITransport(app=api)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
                responses = await asyncio.gather(
                    http.post("/rebuild", json={"root": str(alpha)}),
                    http.post("/rebuild", json={"root": str(beta)}),
                )
                status = (await http.get("/status")).json()
                context = (await http.post("/context", json={"query": "alpha_fn_3 beta_fn_3"})).json()
            return list(responses), status, context

        responses, status, context = asyncio.run(run())

        assert [response.status_code for response in responses] == [200, 200]
        root = Path(status["root"])
        assert root in (alpha, beta)
        assert status["files"] == 60
        assert all(path.is_relative_to(root) for path in api.state.indexer.records)
        assert context["found"] is True
        assert [Path(item["path"]).parent for item in context["files"]] == [root]

    def test_query_during_rebuild(self, tmp_path: Path) -> None:
        """A query sent alongside a rebuild sees either no index or the whole one."""
        alpha = _make_workspace(tmp_path / "alpha", "alpha")
        api = create_app()

        async def run() -> list[httpx.Response]:
            transport = httpx.ASGITransport(app=api)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
                return list(
                    await asyncio.gather(
                        http.post("/rebuild", json={"root": str(alpha)}),
                        http.post("/context", json={"query": "alpha_fn_59"}),
                    )
                )

        rebuild, context = asyncio.run(run())

        assert rebuild.status_code == 200
        if context.status_code == 200:
            assert [item["name"] for item in context.json()["files"]] == ["alpha59.py"]
        else:
            assert context.status_code == 409
