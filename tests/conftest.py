"""
Pytest configuration and shared fixtures.
"""
import json
import os
import tempfile
from typing import Callable, Dict, List, Tuple

# Settings are read when superset_mcp.config is imported
os.environ.setdefault("SUPERSET_URL", "https://superset.example.com")
os.environ.setdefault("SUPERSET_USERNAME", "admin")
os.environ.setdefault("SUPERSET_PASSWORD", "secret")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="superset-mcp-logs-"))

import httpx
import pytest

from superset_mcp.api import SupersetApiService
from superset_mcp.cache import MetadataCache
from superset_mcp.client import CSRF_PATH, LOGIN_PATH, REFRESH_PATH, SupersetHttpClient

BASE_URL = "https://superset.example.com"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeSuperset:
    """In-memory stand-in for the Superset REST API.

    Login and CSRF endpoints answer successfully by default; other routes are
    registered per test. Unregistered routes answer 404.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.json("POST", LOGIN_PATH, {"access_token": "access-1", "refresh_token": "refresh-1"})
        self.add(
            "GET",
            CSRF_PATH,
            lambda request: httpx.Response(
                200,
                json={"result": "csrf-token-123"},
                headers=[("set-cookie", "session=abc123; Path=/; HttpOnly")],
            ),
        )

    def add(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method, path)] = handler

    def json(self, method: str, path: str, payload, status: int = 200) -> None:
        self.add(method, path, lambda request: httpx.Response(status, json=payload))

    def sequence(self, method: str, path: str, responses: List[httpx.Response]) -> None:
        """Answer with the given responses in order, repeating the last one."""
        remaining = list(responses)

        def handler(request):
            return remaining.pop(0) if len(remaining) > 1 else remaining[0]

        self.add(method, path, handler)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "Not found"})
        return handler(request)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


def body_of(request: httpx.Request) -> dict:
    return json.loads(request.content)


def add_catalog(fake: FakeSuperset) -> None:
    """Two databases: examples (public, sales) and analytics (logs)."""
    fake.json("GET", "/api/v1/database/", {
        "count": 2,
        "result": [
            {"id": 1, "database_name": "examples", "backend": "postgresql", "allow_run_async": False},
            {"id": 2, "database_name": "analytics", "backend": "trino", "allow_dml": True},
        ],
    })
    fake.json("GET", "/api/v1/database/1/schemas/", {"result": ["public", "sales"]})
    fake.json("GET", "/api/v1/database/2/schemas/", {"result": ["logs"]})

    tables = {
        (1, "public"): [{"value": "customers", "type": "table"}, {"value": "orders", "type": "table"}],
        (1, "sales"): [{"value": "invoices", "type": "view"}],
        (2, "logs"): [{"value": "access_logs", "type": "table"}],
    }

    def tables_handler(database_id):
        def handler(request):
            schema = request.url.params["q"].rstrip(")").split("schema_name:")[1]
            return httpx.Response(200, json={"count": 1, "result": tables[(database_id, schema)]})
        return handler

    fake.add("GET", "/api/v1/database/1/tables/", tables_handler(1))
    fake.add("GET", "/api/v1/database/2/tables/", tables_handler(2))

    fake.json("GET", "/api/v1/database/1/table/orders/public/", {
        "name": "orders",
        "columns": [
            {"name": "id", "type": "INTEGER", "nullable": False, "longType": "INTEGER"},
            {"name": "status", "type": "VARCHAR(32)", "nullable": True, "comment": "order state"},
        ],
        "comment": None,
        "foreignKeys": [],
        "indexes": [{"name": "ix_status", "column_names": ["status"], "type": "btree", "unique": False}],
        "primaryKey": {"name": "orders_pkey", "constrained_columns": ["id"]},
        "selectStar": 'SELECT * FROM public.orders LIMIT 100',
    })


@pytest.fixture
def fake():
    return FakeSuperset()


@pytest.fixture
def client(fake):
    return SupersetHttpClient(BASE_URL + "/", "admin", "secret", transport=fake.transport)


@pytest.fixture
def service(client):
    return SupersetApiService(client)


@pytest.fixture
def cache(service):
    return MetadataCache(service)


@pytest.fixture
def catalog(fake):
    add_catalog(fake)
    return fake
