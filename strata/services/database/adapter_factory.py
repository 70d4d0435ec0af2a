"""
Database Adapter Factory

Creates the appropriate database adapter for a backend identifier.
"""
import logging
from typing import Dict, List, Type
from strata.core.exceptions import ConfigurationError, UnsupportedBackendError
from strata.services.database.adapters.base_adapter import BaseDatabaseAdapter
from strata.services.database.adapters.postgres_adapter import PostgresAdapter, SupabaseAdapter

logger = logging.getLogger("strata.database.factory")


class AdapterFactory:
    """
    Maps backend identifiers to adapter classes.

    Holds no connections and performs no I/O; callers connect the adapter.
    """

    _registry: Dict[str, Type[BaseDatabaseAdapter]] = {
        "postgres": PostgresAdapter,
        "postgresql": PostgresAdapter,
        "supabase": SupabaseAdapter,
    }

    # URL scheme prefixes recognised by detect_type(). Detection does not
    # mean an adapter is registered for the type.
    _scheme_prefixes = (
        (("postgresql://", "postgres://"), "postgres"),
        (("mysql://",), "mysql"),
        (("mongodb://", "mongodb+srv://"), "mongodb"),
    )

    @classmethod
    def create(cls, backend: str, connection_string: str, **options) -> BaseDatabaseAdapter:
        """
        Create a database adapter.

        Args:
            backend: Backend identifier, case-insensitive (e.g. 'postgres')
            connection_string: Database connection string
            **options: Passed to the adapter (tracking_table, schema)

        Raises:
            UnsupportedBackendError: If no adapter is registered for backend
        """
        adapter_cls = cls._registry.get((backend or "").strip().lower())
        if adapter_cls is None:
            raise UnsupportedBackendError(backend, cls.supported_backends())

        logger.debug(f"Creating {adapter_cls.__name__} for backend '{backend}'")
        return adapter_cls(connection_string, **options)

    @classmethod
    def register(cls, backend: str, adapter_cls: Type[BaseDatabaseAdapter]) -> None:
        """
        Register an adapter class for a backend identifier.
        """
        if not issubclass(adapter_cls, BaseDatabaseAdapter):
            raise TypeError(f"{adapter_cls!r} is not a BaseDatabaseAdapter")
        cls._registry[backend.strip().lower()] = adapter_cls

    @classmethod
    def supported_backends(cls) -> List[str]:
        return sorted(cls._registry)

    @classmethod
    def detect_type(cls, connection_string: str) -> str:
        """
        Detect the database type from a connection string's scheme.

        Raises:
            ConfigurationError: If the scheme is not recognised
        """
        for prefixes, db_type in cls._scheme_prefixes:
            if connection_string.startswith(prefixes):
                return db_type
        raise ConfigurationError("Could not detect database type from connection string")
