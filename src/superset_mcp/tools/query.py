"""Query tool: turn a natural-language request into SQL and run it in SQL Lab."""

from typing import Any, List, Optional
from ..api import SupersetApiError, SupersetApiService, now_ms
from ..cache import MetadataCache
from ..matching import find_matching_table, generate_sql_query
from ..models import Database, QueryRequest, QueryResult, Table
from .result import INITIALIZING, ToolResult
import json
import logging

logger = logging.getLogger(__name__)


def _error_message(result: QueryResult) -> str:
    error = result.error
    if isinstance(error, dict):
        return str(error.get("message") or error)
    if error:
        return str(error)
    return "Unknown error"


def _format_rows(database: Database, table: Table, sql: str, rows: Optional[List[Any]]) -> str:
    rows = rows or []
    return (
        f"Database: {database.database_name}\n"
        f"Table: {table.schema_name}.{table.name}\n\n"
        f"SQL: {sql}\n\n"
        f"Query result ({len(rows)} rows):\n\n"
        f"{json.dumps(rows, indent=2, default=str)}"
    )


async def query_superset(
    cache: MetadataCache,
    service: SupersetApiService,
    query: str,
    database_id: Optional[int] = None,
    schema: Optional[str] = None,
    table_name: Optional[str] = None,
) -> ToolResult:
    """
    Answer a natural-language request with a SELECT against one table.

    The table is the one named by database_id/schema/table_name when all
    three are given, otherwise the best match for the request text.

    Args:
        cache: Metadata cache
        service: Superset API service
        query: Natural-language request, e.g. "latest 10 rows of logs"
        database_id: Database ID
        schema: Schema name
        table_name: Table name

    Returns:
        ToolResult with the generated SQL and the returned rows
    """
    try:
        if not cache.ensure_initialized():
            return INITIALIZING

        database: Optional[Database] = None
        table: Optional[Table] = None

        if database_id is not None and schema and table_name:
            database = cache.get_database(database_id)
            if database is not None:
                table = cache.find_table(database_id, schema, table_name)
        else:
            match = find_matching_table(cache, query)
            if match is not None:
                database, table = match

        if database is None or table is None:
            return ToolResult.failure(
                "No matching database or table found. Use a more specific query or "
                "pass database_id, schema and table_name explicitly."
            )

        fields = await cache.get_table_fields(database.id, table.schema_name, table.name)
        if not fields:
            return ToolResult.failure(
                f"Could not fetch fields of table {table.schema_name}.{table.name}."
            )

        sql = generate_sql_query(query, table, fields)
        now = now_ms()
        request = QueryRequest(
            database_id=database.id,
            sql=sql,
            schema=table.schema_name,
            client_id=f"mcp_client_{now}",
            sql_editor_id=f"mcp_editor_{now}",
            run_async=False,
            json_format=True,
        )

        logger.info(f"Executing query: {sql}")
        try:
            result = await service.execute_query(request)
        except SupersetApiError as e:
            return ToolResult.failure(f"Query failed: {e}\n\nSQL: {sql}")

        if result.status == "success":
            logger.info(f"Query returned {len(result.data or [])} rows")
            return ToolResult.success(_format_rows(database, table, sql, result.data))

        if result.status == "running" and result.query_id:
            results = await service.get_query_results(result.query_id)
            logger.info(f"Query {result.query_id} returned {len(results.data or [])} rows")
            return ToolResult.success(_format_rows(database, table, sql, results.data))

        return ToolResult.failure(f"Query failed: {_error_message(result)}\n\nSQL: {sql}")

    except Exception as e:
        logger.error(f"Error executing query: {e}", exc_info=True)
        return ToolResult.failure(f"Error executing query: {e}")
