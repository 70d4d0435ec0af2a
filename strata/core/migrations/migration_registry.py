"""
Migration Registry

Discovers migrations from a migrations directory.
"""
import os
import logging
from typing import List, Optional
from strata.core.exceptions import MigrationSourceNotFoundError
from strata.core.migrations.migration_models import MigrationFile

logger = logging.getLogger("strata.migrations.registry")


class MigrationRegistry:
    """
    Discovers and reads migration files.
    """

    def __init__(self, migrations_dir: str, extension: str = ".sql", ignore_prefix: str = "_"):
        """
        Initialize migration registry.

        Args:
            migrations_dir: Path to the migrations directory
            extension: Extension a file must have to count as a migration
            ignore_prefix: Files starting with this prefix are private fragments and skipped
        """
        self.migrations_dir = migrations_dir
        self.extension = extension
        self.ignore_prefix = ignore_prefix

    def _is_migration(self, filename: str) -> bool:
        if not filename.endswith(self.extension):
            return False
        if self.ignore_prefix and filename.startswith(self.ignore_prefix):
            return False
        return os.path.isfile(os.path.join(self.migrations_dir, filename))

    def discover_migrations(self) -> List[MigrationFile]:
        """
        Discover all migration files in the migrations directory.

        Returns:
            List of MigrationFile objects, sorted ascending by file name.

        Raises:
            MigrationSourceNotFoundError: If the directory does not exist.
        """
        if not os.path.isdir(self.migrations_dir):
            raise MigrationSourceNotFoundError(self.migrations_dir)

        names = sorted(f for f in os.listdir(self.migrations_dir) if self._is_migration(f))

        migrations = [
            MigrationFile(name=name, path=os.path.join(self.migrations_dir, name), ordinal=i)
            for i, name in enumerate(names)
        ]

        logger.debug(f"Discovered {len(migrations)} migrations in {self.migrations_dir}")
        return migrations

    def get_migration(self, name: str) -> Optional[MigrationFile]:
        """
        Get a specific migration by file name.

        Returns:
            MigrationFile, or None if the source has no such file
        """
        for migration in self.discover_migrations():
            if migration.name == name:
                return migration
        return None

    def read_migration(self, migration: MigrationFile) -> str:
        """
        Read SQL content from a migration file.
        """
        with open(migration.path, "r", encoding="utf-8") as f:
            return f.read()
