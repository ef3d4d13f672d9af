"""Database adapters package.

Provides the ``SchemaClient`` Protocol and the async HTTP adapter for
SurrealDB.

Usage:
    from surql_sync.adapters import SchemaClient, AsyncSurrealHttpAdapter
"""

from surql_sync.adapters.base import SchemaClient
from surql_sync.adapters.http import AsyncSurrealHttpAdapter, SurrealQueryError

__all__ = [
    "SchemaClient",
    "AsyncSurrealHttpAdapter",
    "SurrealQueryError",
]
