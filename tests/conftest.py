"""
Shared fixtures: an in-memory adapter and migration directories.
"""
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Set

import pytest

from strata.core.migrations.migration_models import MigrationRecord
from strata.services.database.adapters.base_adapter import BaseDatabaseAdapter, TransactionScope

BOOTSTRAP_SQL = """
-- tracking table
CREATE TABLE IF NOT EXISTS schema_migrations (
  id SERIAL PRIMARY KEY,
  migration_name TEXT NOT NULL UNIQUE,
  executed_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_schema_migrations_name ON schema_migrations(migration_name);
"""

CREATE_TABLE = re.compile(r"^CREATE TABLE (IF NOT EXISTS )?([\w.]+)", re.IGNORECASE)


class FakeSQLError(Exception):
    pass


class InMemoryAdapter(BaseDatabaseAdapter):
    """
    Adapter keeping tables and tracking records in memory.

    Understands CREATE TABLE and CREATE INDEX; anything else is a syntax
    error. Transactions restore the previous state when the work raises.
    """

    instances: List["InMemoryAdapter"] = []

    def __init__(self, connection_string: str = "memory://", **kwargs):
        super().__init__(connection_string, **kwargs)
        self.tables: Set[str] = set()
        self.records: Dict[str, datetime] = {}
        self.connected = False
        self.healthy = True
        self.fail_connect = False
        self.drop_tracking_before_query = False
        self.executed_sql: List[str] = []
        self.queries: List[Any] = []
        self.connect_calls = 0
        self.disconnect_calls = 0
        InMemoryAdapter.instances.append(self)

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connect:
            raise OSError("connection refused")
        self.connected = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    async def test_connection(self) -> bool:
        return self.connected and self.healthy

    def _missing(self) -> FakeSQLError:
        return FakeSQLError(f'relation "{self.schema}.{self.tracking_table}" does not exist')

    def _run_statement(self, statement: str) -> None:
        match = CREATE_TABLE.match(statement)
        if match:
            name = match.group(2).split(".")[-1].lower()
            if name in self.tables and not match.group(1):
                raise FakeSQLError(f'relation "{name}" already exists')
            self.tables.add(name)
            return
        if statement.upper().startswith("CREATE INDEX"):
            return
        raise FakeSQLError(f'syntax error at or near "{statement.split()[0]}"')

    async def execute_raw(self, sql_text: str) -> Any:
        self.executed_sql.append(sql_text)
        lines = [l for l in sql_text.splitlines() if not l.strip().startswith("--")]
        for statement in "\n".join(lines).split(";"):
            statement = " ".join(statement.split())
            if statement:
                self._run_statement(statement)

    async def query(self, query_text: str, params=None) -> List[Dict[str, Any]]:
        self.queries.append((query_text, params))
        if self.drop_tracking_before_query:
            self.drop_tracking_before_query = False
            self.tables.discard(self.tracking_table)
            self.records.clear()
        if self.tracking_table not in self.tables:
            raise self._missing()
        names = params[0]
        return [{"migration_name": n} for n in names if n in self.records]

    async def table_exists(self, table_name: str, schema: str = "public") -> bool:
        return table_name.lower() in self.tables

    async def insert_migration_record(self, migration_name: str) -> None:
        if self.tracking_table not in self.tables:
            raise self._missing()
        self.records.setdefault(migration_name, datetime.now(timezone.utc))

    async def transaction(self, work):
        snapshot = (set(self.tables), dict(self.records))
        scope = TransactionScope(self.execute_raw, self.insert_migration_record)
        try:
            return await work(scope)
        except Exception:
            self.tables, self.records = snapshot
            raise
        finally:
            scope.close()

    async def fetch_migration_records(self) -> List[MigrationRecord]:
        return [
            MigrationRecord(migration_name=name, executed_at=self.records[name])
            for name in sorted(self.records)
        ]


@pytest.fixture
def adapter():
    """Fresh, empty in-memory database."""
    return InMemoryAdapter()


@pytest.fixture
def write_migrations(tmp_path):
    """Write {file name: sql} into a migrations directory and return its path."""
    def _write(files: Dict[str, str]) -> str:
        directory = tmp_path / "migrations"
        directory.mkdir(exist_ok=True)
        for name, sql in files.items():
            (directory / name).write_text(sql, encoding="utf-8")
        return str(directory)
    return _write
