"""
Strata - Exceptions
"""
from typing import List, Optional


class MigrationError(Exception):
    """Base exception for migration engine errors"""
    pass


class ConfigurationError(MigrationError):
    """Raised for setup mistakes that no retry will fix"""
    pass


class UnsupportedBackendError(ConfigurationError):
    """Raised when no adapter is registered for a backend identifier"""

    def __init__(self, backend: str, supported: Optional[List[str]] = None):
        self.backend = backend
        self.supported = supported or []
        message = f"Unsupported database type: {backend!r}"
        if self.supported:
            message += f". Supported types are: {', '.join(self.supported)}"
        super().__init__(message)


class MigrationSourceNotFoundError(ConfigurationError):
    """Raised when the migrations directory does not exist"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Migrations directory not found: {path}")


class BootstrapMigrationMissingError(ConfigurationError):
    """Raised when the tracking table cannot be created from the source"""
    pass


class ConnectivityError(MigrationError):
    """Raised when the database connection cannot be established or verified"""
    pass


class AdapterNotConnectedError(MigrationError):
    """Raised when an adapter is used before connect()"""
    pass


class TransactionClosedError(MigrationError):
    """Raised when a transaction scope is used after its unit of work returned"""
    pass


class MigrationExecutionError(MigrationError):
    """Raised when a migration fails; its transaction has been rolled back"""

    def __init__(self, migration_name: str, original: BaseException):
        self.migration_name = migration_name
        self.original = original
        super().__init__(f"Migration {migration_name} failed: {original}")
