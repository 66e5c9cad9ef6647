"""In-memory metadata cache: databases, tables per database, fields per table."""

import asyncio
import logging
from typing import Dict, List, Optional

from .api import SupersetApiService
from .models import Column, Database, Table

logger = logging.getLogger(__name__)


def fields_key(database_id: int, schema: str, table_name: str) -> str:
    """Cache key of a table's field list."""
    return f"{database_id}:{schema}:{table_name}"


class MetadataCache:
    """
    Three-tier metadata cache owned by the server.

    Entries are never evicted or refreshed: once a tier holds data for a key
    it is served until the process exits.
    """

    def __init__(self, service: SupersetApiService):
        self._service = service
        self.databases: List[Database] = []
        self.tables: Dict[int, List[Table]] = {}
        self.fields: Dict[str, List[Column]] = {}
        self._warmup: Optional[asyncio.Task] = None

    @property
    def is_empty(self) -> bool:
        return not self.databases

    async def initialize(self) -> None:
        """
        Load databases and the tables of every schema of every database.

        A database whose schemas or tables cannot be fetched is logged and
        skipped. Never raises.
        """
        logger.info("Initializing database and table cache...")
        try:
            databases = await self._service.get_databases()
        except Exception as e:
            logger.error(f"Failed to initialize cache: {e}")
            return

        self.databases = databases
        logger.info(f"Cached {len(databases)} databases")

        for db in databases:
            try:
                schemas = await self._service.get_schemas(db.id)
                if not schemas:
                    logger.info(f"No schemas found in database {db.database_name} (ID: {db.id})")
                    continue

                tables: List[Table] = []
                for schema in schemas:
                    tables.extend(await self._service.get_tables(db.id, schema))
                self.tables[db.id] = tables
                logger.info(f"Cached {len(tables)} tables of database {db.database_name} (ID: {db.id})")
            except Exception as e:
                logger.error(f"Failed to fetch tables of database {db.database_name} (ID: {db.id}): {e}")

        logger.info("Cache initialization complete")

    def ensure_initialized(self) -> bool:
        """
        Start a background warm-up if no databases are cached.

        Returns:
            True when the cache already holds databases
        """
        if not self.is_empty:
            return True
        if self._warmup is None or self._warmup.done():
            self._warmup = asyncio.get_running_loop().create_task(self.initialize())
        return False

    async def wait_until_ready(self) -> None:
        """Wait for an in-flight warm-up, if any."""
        if self._warmup is not None:
            await self._warmup

    async def cancel_warmup(self) -> None:
        """Stop an in-flight warm-up and wait for it to finish."""
        task, self._warmup = self._warmup, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.info("Cache warm-up cancelled")

    def get_database(self, database_id: int) -> Optional[Database]:
        for db in self.databases:
            if db.id == database_id:
                return db
        return None

    def get_tables(self, database_id: int, schema: Optional[str] = None) -> List[Table]:
        tables = self.tables.get(database_id, [])
        if schema:
            tables = [t for t in tables if t.schema_name == schema]
        return tables

    def find_table(self, database_id: int, schema: str, table_name: str) -> Optional[Table]:
        for table in self.tables.get(database_id, []):
            if table.schema_name == schema and table.name == table_name:
                return table
        return None

    async def get_table_fields(self, database_id: int, schema: str, table_name: str) -> List[Column]:
        """
        Return the columns of a table, fetching them on first use.

        Successful lookups are memoized; failures are logged, return an empty
        list and are retried on the next call.
        """
        key = fields_key(database_id, schema, table_name)
        if key in self.fields:
            return self.fields[key]

        try:
            metadata = await self._service.get_table_metadata(database_id, schema, table_name)
        except Exception as e:
            logger.error(f"Failed to fetch fields of table {schema}.{table_name}: {e}")
            return []

        self.fields[key] = metadata.columns
        return metadata.columns
