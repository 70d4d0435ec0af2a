"""
PostgreSQL Database Adapter

Implements the adapter interface on top of the `databases` library with
its asyncpg backend.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar
import asyncpg
from databases import Database
from databases.core import Connection
from strata.core.exceptions import AdapterNotConnectedError
from strata.core.migrations.migration_models import MigrationRecord
from strata.services.database.adapters.base_adapter import (
    BaseDatabaseAdapter,
    QueryParams,
    TransactionScope,
)

logger = logging.getLogger("strata.database.postgres")

T = TypeVar("T")


class PostgresAdapter(BaseDatabaseAdapter):
    """
    Adapter for PostgreSQL.

    Migrations apply in strict order over a single connection, so the pool
    is pinned to one connection.
    """

    POOL_OPTIONS: Dict[str, Any] = {"min_size": 1, "max_size": 1}

    def __init__(self, connection_string: str, **kwargs):
        super().__init__(connection_string, **kwargs)
        self._database: Optional[Database] = None

    def _pool_options(self) -> Dict[str, Any]:
        return dict(self.POOL_OPTIONS)

    @property
    def database(self) -> Database:
        """
        The connected database handle.

        Raises:
            AdapterNotConnectedError: If connect() has not been called
        """
        if self._database is None or not self._database.is_connected:
            raise AdapterNotConnectedError(f"{type(self).__name__} is not connected")
        return self._database

    @property
    def is_connected(self) -> bool:
        return self._database is not None and self._database.is_connected

    async def connect(self) -> None:
        """
        Establish database connection.
        """
        if self.is_connected:
            return

        self._database = Database(self.connection_string, **self._pool_options())
        await self._database.connect()
        logger.info("Database connection established")

    async def disconnect(self) -> None:
        """
        Close database connection.
        """
        if self._database is None:
            return

        database, self._database = self._database, None
        if database.is_connected:
            await database.disconnect()
            logger.info("Database connection closed")

    async def test_connection(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        if not self.is_connected:
            logger.error("Connection test failed: database client not initialized")
            return False

        try:
            await self._database.fetch_val("SELECT 1")
            return True
        except Exception as e:
            logger.warning(f"Connection test failed: {e}")
            return False

    async def execute_raw(self, sql_text: str) -> Any:
        # asyncpg runs an argument-less execute() through the simple query
        # protocol, which accepts multi-statement scripts.
        async with self.database.connection() as connection:
            return await connection.raw_connection.execute(sql_text)

    async def query(self, query_text: str, params: QueryParams = None) -> List[Dict[str, Any]]:
        """
        Execute a single statement and return its rows.

        Args:
            query_text: SQL with $1..$n placeholders for positional params,
                or :name placeholders for a mapping of params
            params: Sequence bound positionally (lists bind as arrays, so
                `= ANY($1)` works), or a mapping bound by name
        """
        if isinstance(params, Mapping):
            rows = await self.database.fetch_all(query_text, values=dict(params))
            return [dict(row._mapping) for row in rows]

        async with self.database.connection() as connection:
            records = await connection.raw_connection.fetch(query_text, *(params or ()))
        return [dict(record) for record in records]

    async def table_exists(self, table_name: str, schema: str = BaseDatabaseAdapter.DEFAULT_SCHEMA) -> bool:
        query = """
        SELECT EXISTS (
            SELECT FROM information_schema.tables
            WHERE table_schema = :schema
            AND table_name = :table_name
        )
        """
        exists = await self.database.fetch_val(query, {"schema": schema, "table_name": table_name})
        return bool(exists)

    def _insert_record_query(self) -> str:
        return f"""
        INSERT INTO {self.qualified_tracking_table} (migration_name)
        VALUES (:migration_name)
        ON CONFLICT (migration_name) DO NOTHING
        """

    async def _insert_record(self, connection: Connection, migration_name: str) -> None:
        await connection.execute(self._insert_record_query(), {"migration_name": migration_name})

    async def transaction(self, work: Callable[[TransactionScope], Awaitable[T]]) -> T:
        async with self.database.connection() as connection:
            async with connection.transaction():
                scope = TransactionScope(
                    execute_raw=connection.raw_connection.execute,
                    insert_migration_record=lambda name: self._insert_record(connection, name),
                )
                try:
                    return await work(scope)
                finally:
                    scope.close()

    async def insert_migration_record(self, migration_name: str) -> None:
        async with self.database.connection() as connection:
            await self._insert_record(connection, migration_name)

    async def fetch_migration_records(self) -> List[MigrationRecord]:
        query = f"""
        SELECT migration_name, executed_at
        FROM {self.qualified_tracking_table}
        ORDER BY migration_name
        """
        rows = await self.database.fetch_all(query)
        return [
            MigrationRecord(migration_name=row["migration_name"], executed_at=row["executed_at"])
            for row in rows
        ]

    def is_missing_relation_error(self, error: BaseException) -> bool:
        return isinstance(error, asyncpg.exceptions.UndefinedTableError)


class SupabaseAdapter(PostgresAdapter):
    """
    Adapter for Supabase-hosted PostgreSQL, which only accepts TLS connections.
    """

    def _pool_options(self) -> Dict[str, Any]:
        options = super()._pool_options()
        options["ssl"] = "require"
        return options
