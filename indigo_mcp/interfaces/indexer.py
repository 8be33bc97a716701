"""Indexer protocol: keyed JSON queries."""
from typing import Any, Protocol


class Indexer(Protocol):
    """Abstract interface for the protocol analytics indexer."""

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any: ...

    async def post(self, path: str, payload: dict[str, Any]) -> Any: ...
