"""
Tests for the process-wide Superset backend.
"""
import pytest

from superset_mcp import backend as backend_module
from superset_mcp.config import settings


@pytest.fixture
def superset_backend(catalog):
    instance = backend_module.initialize_backend(settings, transport=catalog.transport)
    yield instance
    backend_module._backend = None


@pytest.mark.asyncio
async def test_close_cancels_running_warmup(superset_backend, catalog):
    superset_backend.cache.ensure_initialized()
    warmup = superset_backend.cache._warmup

    await backend_module.close_backend()

    assert warmup.cancelled()
    assert catalog.requests == []
    assert superset_backend.client._http.is_closed
    assert backend_module._backend is None


@pytest.mark.asyncio
async def test_close_after_finished_warmup(superset_backend):
    superset_backend.cache.ensure_initialized()
    await superset_backend.cache.wait_until_ready()

    await superset_backend.close()

    assert not superset_backend.cache.is_empty
    assert superset_backend.client._http.is_closed


@pytest.mark.asyncio
async def test_requests_after_close_do_not_raise(superset_backend):
    await superset_backend.client.login()
    await superset_backend.close()

    response = await superset_backend.client.get("/api/v1/database/")

    assert response.success is False
    assert response.status == 0
