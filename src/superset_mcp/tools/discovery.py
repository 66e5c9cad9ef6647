"""Discovery tools for exploring cached databases, tables and fields."""

from typing import Optional
from ..cache import MetadataCache
from .result import INITIALIZING, ToolResult
import logging

logger = logging.getLogger(__name__)


async def list_databases(cache: MetadataCache) -> ToolResult:
    """
    List all databases known to Superset.

    Returns:
        One "ID: <id>, Name: <name>" line per database
    """
    try:
        if not cache.ensure_initialized():
            return INITIALIZING

        lines = [f"ID: {db.id}, Name: {db.database_name}" for db in cache.databases]
        logger.info(f"Listed {len(lines)} databases")
        return ToolResult.success("Available databases:\n\n" + "\n".join(lines))
    except Exception as e:
        logger.error(f"Error listing databases: {e}", exc_info=True)
        return ToolResult.failure(f"Failed to list databases: {e}")


async def list_tables(
    cache: MetadataCache, database_id: int, schema: Optional[str] = None
) -> ToolResult:
    """
    List the cached tables of a database.

    Args:
        cache: Metadata cache
        database_id: Database ID
        schema: Only list tables of this schema

    Returns:
        One "Schema: <schema>, Table: <name>" line per table
    """
    try:
        if not cache.ensure_initialized():
            return INITIALIZING

        database = cache.get_database(database_id)
        if database is None:
            return ToolResult.failure(f"Database with ID {database_id} not found")

        tables = cache.get_tables(database_id, schema)
        if not tables:
            return ToolResult.success(f"No tables found in database {database.database_name}")

        lines = [f"Schema: {t.schema_name}, Table: {t.name}" for t in tables]
        logger.info(f"Listed {len(lines)} tables of database {database_id}")
        return ToolResult.success(
            f"Tables of database {database.database_name}:\n\n" + "\n".join(lines)
        )
    except Exception as e:
        logger.error(f"Error listing tables of database {database_id}: {e}", exc_info=True)
        return ToolResult.failure(f"Failed to list tables: {e}")


async def list_fields(
    cache: MetadataCache, database_id: int, schema: str, table_name: str
) -> ToolResult:
    """
    List the fields of a table, fetching them from Superset on first use.

    Args:
        cache: Metadata cache
        database_id: Database ID
        schema: Schema name
        table_name: Table name

    Returns:
        One "Name: <name>, Type: <type>" line per field
    """
    try:
        fields = await cache.get_table_fields(database_id, schema, table_name)
        if not fields:
            return ToolResult.success(f"No fields found in table {schema}.{table_name}")

        lines = [f"Name: {f.name}, Type: {f.type}" for f in fields]
        return ToolResult.success(
            f"Fields of table {schema}.{table_name}:\n\n" + "\n".join(lines)
        )
    except Exception as e:
        logger.error(f"Error listing fields of '{schema}.{table_name}': {e}", exc_info=True)
        return ToolResult.failure(f"Failed to list fields: {e}")
