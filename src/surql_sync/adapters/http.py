"""SurrealDB adapter over the HTTP ``/sql`` endpoint.

Provides ``AsyncSurrealHttpAdapter``, an implementation of the
``SchemaClient`` protocol using ``httpx.AsyncClient``.

Usage:
    from surql_sync.adapters.http import AsyncSurrealHttpAdapter

    adapter = AsyncSurrealHttpAdapter(
        "http://localhost:8000",
        namespace="app",
        database="main",
        username="root",
        password="root",
    )

    [info] = await adapter.query("INFO FOR DB")
    await adapter.close()
"""

from typing import Any

import httpx


class SurrealQueryError(Exception):
    """Raised when the server rejects a request or a statement fails."""

    pass


def normalize_http_url(url: str) -> str:
    """Turn a connection URL into the HTTP base URL.

    ``ws://`` / ``wss://`` schemes become ``http://`` / ``https://`` and
    a trailing ``/rpc`` or ``/sql`` path is dropped.

    Example:
        >>> normalize_http_url("ws://localhost:8000/rpc")
        'http://localhost:8000'
    """
    if url.startswith("ws://"):
        url = "http://" + url[len("ws://"):]
    elif url.startswith("wss://"):
        url = "https://" + url[len("wss://"):]
    url = url.rstrip("/")
    for suffix in ("/rpc", "/sql"):
        if url.endswith(suffix):
            url = url[: -len(suffix)]
    return url


class AsyncSurrealHttpAdapter:
    """Async SurrealDB implementation of the ``SchemaClient`` protocol.

    Args:
        url: Server URL (``http(s)://`` or ``ws(s)://``).
        namespace: Namespace sent with every request.
        database: Database sent with every request.
        username: Optional user for HTTP basic auth.
        password: Optional password for HTTP basic auth.
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport (used by tests).
    """

    def __init__(
        self,
        url: str,
        namespace: str,
        database: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        auth = httpx.BasicAuth(username, password or "") if username else None
        self._client = httpx.AsyncClient(
            base_url=normalize_http_url(url),
            auth=auth,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "Surreal-NS": namespace,
                "Surreal-DB": database,
            },
        )

    async def query(self, sql: str) -> list[Any]:
        try:
            response = await self._client.post("/sql", content=sql.encode())
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SurrealQueryError(f"Request failed: {e}") from e

        payload = response.json()
        if not isinstance(payload, list):
            raise SurrealQueryError(f"Unexpected response: {payload!r}")

        results = []
        for statement in payload:
            if statement.get("status") != "OK":
                raise SurrealQueryError(str(statement.get("result") or statement.get("detail")))
            results.append(statement.get("result"))
        return results

    async def execute_batch(self, statements: list[str]) -> None:
        if not statements:
            return
        body = "\n".join(["BEGIN TRANSACTION;", *statements, "COMMIT TRANSACTION;"])
        await self.query(body)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncSurrealHttpAdapter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
