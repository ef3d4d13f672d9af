"""Database client protocol definition.

Defines the ``SchemaClient`` Protocol that the introspector and the
migration runner depend on. The engine only ever needs to run a query and
read back its results, and to apply a batch of statements atomically.

Usage:
    from surql_sync.adapters.base import SchemaClient

    async def show_tables(client: SchemaClient) -> None:
        [info] = await client.query("INFO FOR DB")
        print(sorted(info["tables"]))
        await client.close()
"""

from typing import Any, Protocol


class SchemaClient(Protocol):
    """Database client interface that all adapters must implement.

    All methods are async -- callers must ``await`` every operation.
    """

    async def query(self, sql: str) -> list[Any]:
        """Run SurrealQL and return one result per statement.

        Args:
            sql: One or more ``;``-separated statements.

        Returns:
            List with the result of each statement, in order.

        Raises:
            SurrealQueryError: If any statement fails.

        Example:
            [info] = await client.query("INFO FOR TABLE user")
            fields = info["fields"]
        """
        ...

    async def execute_batch(self, statements: list[str]) -> None:
        """Apply statements atomically inside a single transaction.

        Args:
            statements: ``;``-terminated DDL statements.

        Raises:
            SurrealQueryError: If any statement fails; nothing is applied.

        Example:
            await client.execute_batch([
                "DEFINE FIELD name ON TABLE user TYPE string;",
                "REMOVE INDEX idx_old ON TABLE user;",
            ])
        """
        ...

    async def close(self) -> None:
        """Release the underlying connection."""
        ...
