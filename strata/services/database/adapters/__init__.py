"""
Database Adapters

One adapter per backend, all implementing BaseDatabaseAdapter.
"""

from .base_adapter import BaseDatabaseAdapter, TransactionScope
from .postgres_adapter import PostgresAdapter, SupabaseAdapter

__all__ = [
    "BaseDatabaseAdapter",
    "TransactionScope",
    "PostgresAdapter",
    "SupabaseAdapter",
]
