"""
Migration Tracker

Tracks which migrations have been applied to the database.
"""
import logging
from typing import Iterable, List, Optional, Set
from strata.core.exceptions import BootstrapMigrationMissingError, MigrationExecutionError
from strata.core.migrations.migration_models import MigrationFile, MigrationRecord
from strata.core.migrations.migration_registry import MigrationRegistry

logger = logging.getLogger("strata.migrations.tracker")


class MigrationTracker:
    """
    Tracks applied migrations in the tracking table.

    The tracking table is never created from built-in DDL: it comes from the
    bootstrap migration, which is the lexically-first file unless a name is
    given.
    """

    def __init__(self, adapter, registry: MigrationRegistry, bootstrap_migration: Optional[str] = None):
        """
        Initialize migration tracker.

        Args:
            adapter: Connected BaseDatabaseAdapter
            registry: Source of migration files
            bootstrap_migration: File name of the migration creating the tracking table
        """
        self.adapter = adapter
        self.registry = registry
        self.bootstrap_migration = bootstrap_migration

    async def tracking_table_exists(self) -> bool:
        return await self.adapter.table_exists(self.adapter.tracking_table, self.adapter.schema)

    def resolve_bootstrap_migration(self, migrations: Optional[List[MigrationFile]] = None) -> Optional[MigrationFile]:
        """
        Find the bootstrap migration among the discovered files.

        Returns:
            MigrationFile, or None if the source does not contain it
        """
        if migrations is None:
            migrations = self.registry.discover_migrations()

        if self.bootstrap_migration is None:
            return migrations[0] if migrations else None

        for migration in migrations:
            if migration.name == self.bootstrap_migration:
                return migration
        return None

    async def ensure_tracking_table(self) -> bool:
        """
        Create the tracking table from the bootstrap migration if it is missing.

        The bootstrap SQL and its own tracking record are written in one
        transaction.

        Returns:
            True if the bootstrap migration was applied by this call

        Raises:
            BootstrapMigrationMissingError: If the table is missing and the
                bootstrap file is not in the source, or the bootstrap ran
                without creating the table
            MigrationExecutionError: If the bootstrap SQL fails
        """
        if await self.tracking_table_exists():
            return False

        migration = self.resolve_bootstrap_migration()
        if migration is None:
            expected = self.bootstrap_migration or "the first migration file"
            raise BootstrapMigrationMissingError(
                f"Migrations table '{self.adapter.tracking_table}' does not exist and "
                f"{expected} was not found in {self.registry.migrations_dir}. "
                f"Add a migration that creates it."
            )

        logger.info(f"▶️ Creating migrations table from {migration.name}...")

        async def apply(scope):
            sql_content = self.registry.read_migration(migration)
            await scope.execute_raw(sql_content)
            await scope.insert_migration_record(migration.name)

        try:
            await self.adapter.transaction(apply)
        except Exception as e:
            logger.error(f"Bootstrap migration {migration.name} failed: {e}")
            raise MigrationExecutionError(migration.name, e) from e

        if not await self.tracking_table_exists():
            raise BootstrapMigrationMissingError(
                f"Bootstrap migration {migration.name} ran but table "
                f"'{self.adapter.schema}.{self.adapter.tracking_table}' still does not exist"
            )

        logger.info("✅ Migrations table created successfully")
        return True

    async def get_executed_migrations(self, migration_names: Iterable[str]) -> Set[str]:
        """
        Batch check which of the given migrations have tracking records.

        One query for the whole set, however many names are passed.

        Returns:
            Set of names that already have a record
        """
        names = list(migration_names)
        if not names:
            return set()

        query = f"""
        SELECT migration_name
        FROM {self.adapter.qualified_tracking_table}
        WHERE migration_name = ANY($1)
        """
        rows = await self.adapter.query(query, [names])
        return {row["migration_name"] for row in rows}

    async def list_records(self) -> List[MigrationRecord]:
        return await self.adapter.fetch_migration_records()
