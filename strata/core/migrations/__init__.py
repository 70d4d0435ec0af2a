"""
Migration Core

Models, file discovery and tracking-table bookkeeping.
"""

from .migration_models import (
    MigrationFile,
    MigrationRecord,
    MigrationState,
    MigrationStatus,
    RunResult,
)
from .migration_registry import MigrationRegistry
from .migration_tracker import MigrationTracker

__all__ = [
    "MigrationFile",
    "MigrationRecord",
    "MigrationState",
    "MigrationStatus",
    "RunResult",
    "MigrationRegistry",
    "MigrationTracker",
]
