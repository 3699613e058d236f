"""
Durable storage for TrackRecord.

Providers:
- MemoryStorageProvider: development and tests
- SQLStorageProvider: PostgreSQL (asyncpg) or SQLite (aiosqlite)

WriteBehindStore keeps them off the request path.
"""

from .memory_provider import MemoryStorageProvider
from .provider import AbstractStorageProvider, StorageConfig
from .sql_provider import SQLStorageProvider
from .write_behind import BackendHealth, WriteBehindStore


def create_storage_provider(config: StorageConfig):
    """Build the provider *config* names, or None for cache-only."""
    if config.backend == "memory":
        return MemoryStorageProvider(config)
    if config.backend == "sql":
        return SQLStorageProvider(config)
    return None


__all__ = [
    "AbstractStorageProvider",
    "StorageConfig",
    "MemoryStorageProvider",
    "SQLStorageProvider",
    "BackendHealth",
    "WriteBehindStore",
    "create_storage_provider",
]
