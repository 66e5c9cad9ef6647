"""
Tests for MCP tool registration, dispatch and the HTTP endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from superset_mcp import backend as backend_module
from superset_mcp import server
from superset_mcp.config import settings


@pytest.fixture
def superset_backend(catalog):
    instance = backend_module.initialize_backend(settings, transport=catalog.transport)
    yield instance
    backend_module._backend = None


@pytest.fixture
def http():
    # Lifespan is not run, so no backend is created
    return TestClient(server.app)


class TestTools:
    @pytest.mark.asyncio
    async def test_list_tools(self):
        tools = await server.list_tools()

        assert [t.name for t in tools] == [
            "query_superset",
            "list_databases",
            "list_tables",
            "list_fields",
        ]
        query_tool = tools[0]
        assert query_tool.inputSchema["required"] == ["query"]

    @pytest.mark.asyncio
    async def test_list_databases(self, superset_backend):
        await superset_backend.cache.initialize()

        content = await server.call_tool("list_databases", {})

        assert len(content) == 1
        assert content[0].type == "text"
        assert content[0].text.startswith("Available databases:")
        assert "ID: 2, Name: analytics" in content[0].text

    @pytest.mark.asyncio
    async def test_list_fields(self, superset_backend):
        content = await server.call_tool(
            "list_fields", {"database_id": 1, "schema": "public", "table_name": "orders"}
        )

        assert "Name: status, Type: VARCHAR(32)" in content[0].text

    @pytest.mark.asyncio
    async def test_unknown_tool(self, superset_backend):
        content = await server.call_tool("drop_everything", {})

        assert content[0].text == "Error: Unknown tool: drop_everything"

    @pytest.mark.asyncio
    async def test_bad_arguments(self, superset_backend):
        content = await server.call_tool("list_tables", {"database_id": 1, "bogus": True})

        assert content[0].text.startswith("Error: ")

    @pytest.mark.asyncio
    async def test_backend_not_initialized(self):
        content = await server.call_tool("list_databases", {})

        assert content[0].text.startswith("Error: Superset backend not initialized")


class TestBackend:
    def test_get_backend_requires_initialization(self):
        with pytest.raises(RuntimeError):
            backend_module.get_backend()

    def test_build_backend_uses_settings(self, superset_backend):
        assert backend_module.get_backend() is superset_backend
        assert superset_backend.client.base_url == settings.superset_url.rstrip("/")
        assert superset_backend.service.client is superset_backend.client

    @pytest.mark.asyncio
    async def test_close_backend(self, catalog):
        backend_module.initialize_backend(settings, transport=catalog.transport)

        await backend_module.close_backend()

        assert backend_module._backend is None


class TestHttp:
    def test_health(self, http):
        response = http.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "superset-mcp-server"}

    def test_messages_require_authentication(self, http):
        response = http.post("/messages/", json={})

        assert response.status_code == 401
        assert "X-API-Key" in response.json()["detail"]

    def test_sse_alias_requires_authentication(self, http):
        response = http.get("/sse/")

        assert response.status_code == 401

    def test_api_key_passes_authentication(self, http):
        response = http.post(
            "/messages/", json={}, headers={"X-API-Key": settings.api_keys_list[0]}
        )

        assert response.status_code != 401


def test_stdio_mode_follows_tty(monkeypatch):
    class FakeStdin:
        def __init__(self, tty):
            self.tty = tty

        def isatty(self):
            return self.tty

    monkeypatch.setattr(server.sys, "stdin", FakeStdin(False))
    assert server.is_stdio_mode() is True

    monkeypatch.setattr(server.sys, "stdin", FakeStdin(True))
    assert server.is_stdio_mode() is False
