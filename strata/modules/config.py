"""
Migration Configuration

Resolves the connection string and migrations directory for a backend.
"""
import logging
import os
import re
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel
from strata.core.exceptions import ConfigurationError, MigrationSourceNotFoundError
from strata.services.database.adapter_factory import AdapterFactory

load_dotenv()

logger = logging.getLogger("strata.config")

DEFAULT_BACKEND = "postgres"

# Expected: postgresql://postgres.{project_ref}:{password}@{host}.supabase.com:{port}/postgres
SUPABASE_URL_PATTERN = re.compile(
    r"^postgresql://postgres\.[a-zA-Z0-9]+:[^@]+@[a-zA-Z0-9\-.]+\.supabase\.com:\d+/postgres$"
)

PASSWORD_PATTERN = re.compile(r":([^:@/]+)@")


class DatabaseConfig(BaseModel):
    """
    Connection settings for one migrations folder.
    """
    backend: str = DEFAULT_BACKEND
    database_url: Optional[str] = None

    def validate_config(self) -> None:
        """
        Raises:
            ConfigurationError: If the connection string is missing or malformed
        """
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL is required in .env")

        if self.backend.lower() == "supabase" and not SUPABASE_URL_PATTERN.match(self.database_url):
            raise ConfigurationError(
                "Invalid DATABASE_URL format. Expected format:\n"
                "  postgresql://postgres.{project_ref}:{password}@{host}.supabase.com:{port}/postgres"
            )

    def masked_connection_string(self) -> str:
        """Connection string with the password replaced, for logging."""
        if not self.database_url:
            return ""
        return PASSWORD_PATTERN.sub(":****@", self.database_url, count=1)


def load_config(backend: Optional[str] = None) -> DatabaseConfig:
    """
    Build and validate the configuration for a backend from the environment.

    The backend is, in order: the argument, MIGRATIONS_BACKEND, the type
    detected from DATABASE_URL's scheme, then the default.
    """
    database_url = os.getenv("DATABASE_URL")
    backend = backend or os.getenv("MIGRATIONS_BACKEND")
    if not backend:
        backend = AdapterFactory.detect_type(database_url) if database_url else DEFAULT_BACKEND

    config = DatabaseConfig(backend=backend.strip().lower(), database_url=database_url)
    logger.info(f"📊 Database configuration: type={config.backend}")
    config.validate_config()
    return config


def default_migrations_root() -> str:
    root = os.getenv("MIGRATIONS_ROOT")
    if root:
        return root
    # migrations/ next to the strata package
    return str(Path(__file__).resolve().parent.parent.parent / "migrations")


def get_migration_dir(folder_name: str, root: Optional[str] = None) -> str:
    """
    Resolve the migrations directory for a folder name.

    Raises:
        MigrationSourceNotFoundError: If the directory does not exist
    """
    migrations_dir = os.path.join(root or default_migrations_root(), folder_name)
    if not os.path.isdir(migrations_dir):
        raise MigrationSourceNotFoundError(migrations_dir)
    return migrations_dir
