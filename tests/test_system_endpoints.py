"""
Tests for the system migration endpoints.
"""
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from strata.app import app
from strata.core.exceptions import (
    ConnectivityError,
    MigrationExecutionError,
    UnsupportedBackendError,
)
from strata.core.migrations.migration_models import RunResult
from strata.modules.config import DatabaseConfig
from tests.conftest import BOOTSTRAP_SQL, InMemoryAdapter

MODULE = "strata.modules.system_endpoints"


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def config():
    config = DatabaseConfig(backend="postgres", database_url="postgresql://app:pw@localhost/app")
    with patch(f"{MODULE}.load_config", return_value=config), \
            patch(f"{MODULE}.get_migration_dir", return_value="/migrations/postgres"):
        yield config


def test_migrate_returns_summary(client, config):
    result = RunResult(executed_names=["001_a.sql"], skipped_names=["000_migrations_table.sql"])
    with patch(f"{MODULE}.execute_migration_workflow", new_callable=AsyncMock, return_value=result) as workflow:
        response = client.post("/api/system/migrate")

    assert response.status_code == 200
    assert response.json() == {"status": "success", "executed": 1, "skipped": 1}
    workflow.assert_awaited_once_with("postgres", config.database_url, "/migrations/postgres")


@pytest.mark.parametrize("error, status_code", [
    (UnsupportedBackendError("mongo", ["postgres"]), 400),
    (ConnectivityError("Failed to connect to database"), 503),
    (MigrationExecutionError("002_bad.sql", RuntimeError("syntax error")), 500),
])
def test_migrate_maps_errors(client, config, error, status_code):
    with patch(f"{MODULE}.execute_migration_workflow", new_callable=AsyncMock, side_effect=error):
        response = client.post("/api/system/migrate")

    assert response.status_code == status_code
    assert str(error) in response.json()["detail"]


def test_list_migrations(client, config, write_migrations):
    source = write_migrations({
        "000_migrations_table.sql": BOOTSTRAP_SQL,
        "001_a.sql": "CREATE TABLE a (id INT);",
    })
    adapter = InMemoryAdapter()
    adapter.tables.add("schema_migrations")
    adapter.records["000_migrations_table.sql"] = None

    with patch(f"{MODULE}.get_migration_dir", return_value=source), \
            patch(f"{MODULE}.AdapterFactory.create", return_value=adapter):
        response = client.get("/api/system/migrations")

    assert response.status_code == 200
    assert response.json()["migrations"] == [
        {"name": "000_migrations_table.sql", "status": "applied", "executed_at": None},
        {"name": "001_a.sql", "status": "pending", "executed_at": None},
    ]
    assert not adapter.is_connected


def test_migrate_backend_name_is_case_insensitive(client, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://postgres.abc123:pw@aws-1-eu-central-2.pooler.supabase.com:6543/postgres")
    result = RunResult()
    with patch(f"{MODULE}.get_migration_dir", return_value="/migrations/supabase") as get_dir, \
            patch(f"{MODULE}.execute_migration_workflow", new_callable=AsyncMock, return_value=result) as workflow:
        response = client.post("/api/system/migrate", params={"backend": "Supabase"})

    assert response.status_code == 200
    get_dir.assert_called_once_with("supabase")
    assert workflow.await_args.args[0] == "supabase"
