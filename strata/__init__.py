"""
Strata

Database-agnostic schema migration runner.
"""
from strata.core.migrations.migration_models import RunResult
from strata.services.database.adapter_factory import AdapterFactory
from strata.services.database.migration_runner import MigrationRunner, execute_migration_workflow

__all__ = [
    "AdapterFactory",
    "MigrationRunner",
    "RunResult",
    "execute_migration_workflow",
]
