"""
Database Services

Adapters, the adapter factory and the migration runner.
"""

from .adapter_factory import AdapterFactory
from .migration_runner import MigrationRunner, execute_migration_workflow

__all__ = [
    "AdapterFactory",
    "MigrationRunner",
    "execute_migration_workflow",
]
