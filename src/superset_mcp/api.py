"""Typed Superset metadata and SQL Lab operations on top of the session client."""

import logging
import time
from typing import Any, Dict, List
from urllib.parse import quote

from .client import SupersetHttpClient, SupersetResponse
from .models import Database, QueryRequest, QueryResult, Table, TableMetadata

logger = logging.getLogger(__name__)


class SupersetApiError(Exception):
    """Raised when Superset answers unsuccessfully or with an unexpected shape."""

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status


def _fail(response: SupersetResponse, fallback: str) -> SupersetApiError:
    message = response.error.message if response.error else fallback
    return SupersetApiError(message, status=response.status)


def _result_of(response: SupersetResponse) -> Any:
    if isinstance(response.data, dict):
        return response.data.get("result")
    return None


def table_from_item(item: Dict[str, Any], schema: str) -> Table:
    """Map one entry of the tables endpoint onto a Table.

    The endpoint reports the table name as `value`; `name` is accepted as a
    fallback. The schema always comes from the request.
    """
    return Table(
        name=item.get("value") or item.get("name") or "",
        schema=schema,
        catalog=item.get("catalog") or "",
        description=item.get("description") or "",
        type=item.get("type"),
        extra=item.get("extra") if isinstance(item.get("extra"), dict) else None,
    )


def now_ms() -> int:
    return int(time.time() * 1000)


class SupersetApiService:
    """High-level Superset operations. One request per call."""

    def __init__(self, client: SupersetHttpClient):
        self._client = client

    @property
    def client(self) -> SupersetHttpClient:
        """The underlying session client."""
        return self._client

    async def get_databases(self) -> List[Database]:
        """List every database visible to the account, in Superset's order."""
        response = await self._client.get("/api/v1/database/")
        result = _result_of(response)
        if not response.success or result is None:
            raise _fail(response, "Failed to list databases")
        return [Database.model_validate(item) for item in result]

    async def get_database(self, database_id: int) -> Database:
        response = await self._client.get(f"/api/v1/database/{database_id}")
        result = _result_of(response)
        if not response.success or result is None:
            raise _fail(response, f"Failed to get database {database_id}")
        return Database.model_validate(result)

    async def get_schemas(self, database_id: int) -> List[str]:
        response = await self._client.get(f"/api/v1/database/{database_id}/schemas/?q=(force:!t)")
        result = _result_of(response)
        if not response.success or result is None:
            raise _fail(response, f"Failed to list schemas of database {database_id}")
        return list(result)

    async def get_tables(self, database_id: int, schema: str) -> List[Table]:
        """
        List the tables of one schema.

        Args:
            database_id: Database ID
            schema: Schema name

        Returns:
            Tables normalized by table_from_item()
        """
        query = f"q=(force:!f,schema_name:{quote(schema, safe='')})"
        response = await self._client.get(f"/api/v1/database/{database_id}/tables/?{query}")
        result = _result_of(response)
        if not response.success or result is None:
            raise _fail(
                response, f"Failed to list tables of database {database_id}, schema '{schema}'"
            )

        tables = [table_from_item(item, schema) for item in result]
        logger.debug(f"Found {len(tables)} tables in database {database_id}, schema '{schema}'")
        return tables

    async def get_table_metadata(
        self, database_id: int, schema: str, table_name: str
    ) -> TableMetadata:
        """Columns, keys, indexes and the SELECT * template of one table."""
        response = await self._client.get(
            f"/api/v1/database/{database_id}/table/{quote(table_name, safe='')}/{quote(schema, safe='')}/"
        )
        if not response.success or not isinstance(response.data, dict):
            raise _fail(response, f"Failed to get metadata of table {schema}.{table_name}")
        return TableMetadata.model_validate(response.data)

    async def execute_query(self, request: QueryRequest) -> QueryResult:
        """
        Submit SQL to SQL Lab.

        Client and editor ids default to time-based values, execution is
        synchronous unless run_async is set, and the JSON result format is
        always requested.

        Args:
            request: Query to run

        Returns:
            QueryResult as reported by Superset

        Raises:
            ValueError: If database_id or sql is missing
            SupersetApiError: If Superset rejects the query
        """
        if not request.database_id or not request.sql:
            raise ValueError("Executing a query requires database_id and sql")

        now = now_ms()
        payload = request.model_copy(
            update={
                "client_id": request.client_id or f"client_{now}",
                "sql_editor_id": request.sql_editor_id or f"editor_{now}",
                "run_async": request.run_async if request.run_async is not None else False,
                "json_format": True,
            }
        )

        response = await self._client.post(
            "/api/v1/sqllab/execute/",
            payload.model_dump(by_alias=True, exclude_none=True),
        )
        if not response.success or not isinstance(response.data, dict):
            raise _fail(response, "Query execution failed")
        return QueryResult.model_validate(response.data)

    async def get_query_results(self, query_id: int) -> QueryResult:
        response = await self._client.get(f"/api/v1/sqllab/results/{query_id}/")
        if not response.success or not isinstance(response.data, dict):
            raise _fail(response, f"Failed to get results of query {query_id}")
        return QueryResult.model_validate(response.data)

    async def cancel_query(self, query_id: int) -> bool:
        """Ask Superset to stop a running query. Never raises."""
        try:
            response = await self._client.post(
                "/api/v1/sqllab/cancel_query/", {"query_id": query_id}
            )
            return response.success
        except Exception as e:
            logger.error(f"Error cancelling query {query_id}: {e}")
            return False
