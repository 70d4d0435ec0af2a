"""
Migration Runner

Executes database migrations in order.
"""
import logging
from typing import List, Optional, Set, Tuple
from strata.core.exceptions import ConnectivityError, MigrationExecutionError
from strata.core.migrations.migration_models import (
    MigrationFile,
    MigrationState,
    MigrationStatus,
    RunResult,
)
from strata.core.migrations.migration_registry import MigrationRegistry
from strata.core.migrations.migration_tracker import MigrationTracker
from strata.services.database.adapter_factory import AdapterFactory
from strata.services.database.adapters.base_adapter import BaseDatabaseAdapter

logger = logging.getLogger("strata.database.migrations")


class MigrationRunner:
    """
    Discovers and executes pending database migrations.

    Works with any adapter implementing BaseDatabaseAdapter. run() leaves
    the connection open; call cleanup() (or use the runner as an async
    context manager) to release it.
    """

    def __init__(
        self,
        adapter: BaseDatabaseAdapter,
        migrations_dir: str,
        bootstrap_migration: Optional[str] = None,
        registry: Optional[MigrationRegistry] = None,
    ):
        """
        Initialize migration runner.

        Args:
            adapter: Database adapter, connected or not
            migrations_dir: Path to the migrations directory
            bootstrap_migration: File name of the migration creating the
                tracking table. Defaults to the lexically-first file.
            registry: Optional registry overriding file discovery
        """
        self.adapter = adapter
        self.migrations_dir = migrations_dir
        self.registry = registry or MigrationRegistry(migrations_dir)
        self.tracker = MigrationTracker(adapter, self.registry, bootstrap_migration)

    async def __aenter__(self) -> "MigrationRunner":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    async def connect_to_database(self) -> None:
        """
        Connect to the database and verify the connection.

        Raises:
            ConnectivityError: If connecting fails or the round trip fails
        """
        logger.info("🔌 Connecting to database...")
        try:
            await self.adapter.connect()
        except Exception as e:
            raise ConnectivityError(f"Failed to connect to database: {e}") from e

        if not await self.adapter.test_connection():
            raise ConnectivityError("Failed to connect to database")

        logger.info("✅ Connected successfully")

    async def _get_executed_migrations(self, names: List[str]) -> Tuple[Set[str], bool]:
        """
        Run the batch check, recovering if the tracking table vanished.

        Returns:
            (executed names, whether the bootstrap migration was applied)
        """
        try:
            return await self.tracker.get_executed_migrations(names), False
        except Exception as e:
            if not self.adapter.is_missing_relation_error(e):
                raise
            logger.warning(f"Migrations table missing during batch check, bootstrapping again: {e}")
            bootstrapped = await self.tracker.ensure_tracking_table()
            return set(), bootstrapped

    async def execute_migration(self, migration: MigrationFile) -> None:
        """
        Execute a single migration and record it in one transaction.

        Raises:
            MigrationExecutionError: If the migration fails; nothing from it is committed
        """
        logger.info(f"▶️ Executing {migration.name}...")

        async def apply(scope):
            sql_content = self.registry.read_migration(migration)
            await scope.execute_raw(sql_content)
            await scope.insert_migration_record(migration.name)

        try:
            await self.adapter.transaction(apply)
        except Exception as e:
            logger.error(f"❌ Error executing {migration.name}: {e}")
            raise MigrationExecutionError(migration.name, e) from e

        logger.info(f"✅ Executed {migration.name} successfully")

    async def run(self) -> RunResult:
        """
        Run all pending migrations.

        1. Connect and verify the connection
        2. Ensure the tracking table exists
        3. Discover migration files
        4. Batch check which have already run
        5. Apply pending ones in name order, stopping at the first failure

        Returns:
            RunResult with executed and skipped migrations
        """
        logger.info("🚀 Starting migration process...")

        await self.connect_to_database()

        bootstrapped = await self.tracker.ensure_tracking_table()

        migrations = self.registry.discover_migrations()
        result = RunResult()

        if not migrations:
            logger.info("✅ No migration files found")
            return result

        logger.info(f"📝 Found {len(migrations)} migration file(s)")

        names = [m.name for m in migrations]
        executed_set, rebootstrapped = await self._get_executed_migrations(names)
        bootstrapped = bootstrapped or rebootstrapped
        logger.info(f"🔍 Found {len(executed_set)} already executed migration(s)")

        bootstrap = self.tracker.resolve_bootstrap_migration(migrations)

        for migration in migrations:
            if bootstrap is not None and migration.name == bootstrap.name:
                if bootstrapped:
                    # Applied and recorded while creating the tracking table
                    result.executed_names.append(migration.name)
                else:
                    logger.info(f"⏭️ Skipping {migration.name} (migrations table already exists)")
                    result.skipped_names.append(migration.name)
                continue

            if migration.name in executed_set:
                logger.info(f"⏭️ Skipping {migration.name} (already executed)")
                result.skipped_names.append(migration.name)
                continue

            await self.execute_migration(migration)
            result.executed_names.append(migration.name)

        logger.info(
            f"✅ Migration process completed. Executed: {result.executed}, Skipped: {result.skipped}"
        )
        return result

    async def status(self) -> List[MigrationState]:
        """
        Report every discovered migration as applied or pending.

        Read-only: never creates the tracking table.
        """
        await self.connect_to_database()

        migrations = self.registry.discover_migrations()
        states = [MigrationState(name=m.name) for m in migrations]

        if not await self.tracker.tracking_table_exists():
            return states

        records = {r.migration_name: r for r in await self.tracker.list_records()}
        for state in states:
            record = records.get(state.name)
            if record is not None:
                state.status = MigrationStatus.APPLIED
                state.executed_at = record.executed_at
        return states

    async def cleanup(self) -> None:
        """
        Close the database connection.
        """
        await self.adapter.disconnect()


async def execute_migration_workflow(
    backend: str,
    connection_string: str,
    migrations_dir: str,
    **options,
) -> RunResult:
    """
    Create the adapter, run migrations and release the connection.

    Args:
        backend: Backend identifier, e.g. 'postgres'
        connection_string: Database connection string
        migrations_dir: Directory containing migration files
        **options: Passed to the adapter (tracking_table, schema)
    """
    adapter = AdapterFactory.create(backend, connection_string, **options)

    async with MigrationRunner(adapter, migrations_dir) as runner:
        logger.info(f"Starting migrations for DB type: {backend}")
        result = await runner.run()
        logger.info(f"Migrations finished. Result: {result.to_dict()}")

    return result
