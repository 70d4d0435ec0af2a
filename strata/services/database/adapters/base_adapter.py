"""
Base Database Adapter

Capability interface every backend implements. The migration runner only
talks to this interface.
"""
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Sequence, TypeVar, Union
from strata.core.exceptions import TransactionClosedError
from strata.core.migrations.migration_models import MigrationRecord

T = TypeVar("T")

MISSING_RELATION = re.compile(r'relation "([^"]+)" does not exist')

QueryParams = Union[Sequence[Any], Mapping[str, Any], None]


class TransactionScope:
    """
    Capability handed to a transaction's unit of work.

    Exposes only what a migration needs inside its transaction. Closed as
    soon as the unit of work returns.
    """

    def __init__(
        self,
        execute_raw: Callable[[str], Awaitable[Any]],
        insert_migration_record: Callable[[str], Awaitable[None]],
    ):
        self._execute_raw = execute_raw
        self._insert_migration_record = insert_migration_record
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise TransactionClosedError("Transaction scope used after its transaction ended")

    async def execute_raw(self, sql_text: str) -> Any:
        self._ensure_open()
        return await self._execute_raw(sql_text)

    async def insert_migration_record(self, migration_name: str) -> None:
        self._ensure_open()
        await self._insert_migration_record(migration_name)


class BaseDatabaseAdapter(ABC):
    """
    Base class for all database adapters.

    An adapter owns exactly one connection handle. Backend errors are
    raised unchanged.
    """

    DEFAULT_TRACKING_TABLE = "schema_migrations"
    DEFAULT_SCHEMA = "public"

    def __init__(
        self,
        connection_string: str,
        tracking_table: str = DEFAULT_TRACKING_TABLE,
        schema: str = DEFAULT_SCHEMA,
    ):
        """
        Args:
            connection_string: Ready-to-use connection descriptor; not validated here
            tracking_table: Name of the table recording applied migrations
            schema: Schema holding the tracking table
        """
        self.connection_string = connection_string
        self.tracking_table = tracking_table
        self.schema = schema

    @property
    def qualified_tracking_table(self) -> str:
        return f"{self.quote_identifier(self.schema)}.{self.quote_identifier(self.tracking_table)}"

    @staticmethod
    def quote_identifier(name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    async def connect(self) -> None:
        """Establish the connection. A no-op when already connected."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the connection. Safe to call when not connected."""
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """
        Run a trivial round trip.

        Returns False (and logs why) instead of raising on connectivity failures.
        """
        pass

    @abstractmethod
    async def execute_raw(self, sql_text: str) -> Any:
        """Execute trusted, possibly multi-statement SQL without parameter binding."""
        pass

    @abstractmethod
    async def query(self, query_text: str, params: QueryParams = None) -> List[Dict[str, Any]]:
        """Execute one parameterized statement and return its rows as dicts."""
        pass

    @abstractmethod
    async def table_exists(self, table_name: str, schema: str = DEFAULT_SCHEMA) -> bool:
        pass

    @abstractmethod
    async def transaction(self, work: Callable[[TransactionScope], Awaitable[T]]) -> T:
        """
        Run work(scope) in one transaction.

        Commits when work returns, rolls back and re-raises when it raises.
        """
        pass

    @abstractmethod
    async def insert_migration_record(self, migration_name: str) -> None:
        """Record a migration. A no-op when the record already exists."""
        pass

    @abstractmethod
    async def fetch_migration_records(self) -> List[MigrationRecord]:
        """All tracking table rows, ordered by migration name."""
        pass

    def is_missing_relation_error(self, error: BaseException) -> bool:
        """
        Whether an error means the tracking table does not exist.

        Other "does not exist" errors (columns, functions, schemas) are not
        matched.
        """
        match = MISSING_RELATION.search(str(error))
        if match is None:
            return False
        return match.group(1).split(".")[-1] == self.tracking_table

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tracking_table={self.schema}.{self.tracking_table})"
