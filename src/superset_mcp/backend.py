"""Superset backend: session client, API service and metadata cache."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .api import SupersetApiService
from .cache import MetadataCache
from .client import SupersetHttpClient
from .config import Settings

logger = logging.getLogger(__name__)


@dataclass
class Backend:
    """Objects shared by all tool invocations of one server process."""

    client: SupersetHttpClient
    service: SupersetApiService
    cache: MetadataCache

    async def close(self) -> None:
        """Stop the cache warm-up, then close the HTTP client."""
        await self.cache.cancel_warmup()
        await self.client.aclose()
        logger.info("Superset client closed")


def build_backend(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> Backend:
    """Create the client, service and cache from settings. No network call is made."""
    client = SupersetHttpClient(
        settings.superset_url,
        settings.superset_username,
        settings.superset_password,
        timeout=settings.superset_timeout_seconds,
        verify=settings.superset_verify_ssl,
        with_credentials=settings.superset_with_credentials,
        transport=transport,
    )
    service = SupersetApiService(client)
    return Backend(client=client, service=service, cache=MetadataCache(service))


# Global backend instance (initialized on server startup)
_backend: Optional[Backend] = None


def get_backend() -> Backend:
    """Get the global backend instance."""
    if _backend is None:
        raise RuntimeError("Superset backend not initialized. Call initialize_backend() first.")
    return _backend


def initialize_backend(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> Backend:
    """Initialize the global backend."""
    global _backend
    _backend = build_backend(settings, transport)
    logger.info(f"Superset backend initialized for {_backend.client.base_url}")
    return _backend


async def close_backend() -> None:
    """Close and forget the global backend."""
    global _backend
    if _backend is not None:
        await _backend.close()
        _backend = None
