"""Indigo analytics indexer client."""
from __future__ import annotations

import logging
from typing import Any

from ..config import IndexerConfig
from ..http import request_json

logger = logging.getLogger(__name__)


class IndexerClient:
    """Keyed HTTP query interface over the Indigo analytics API."""

    def __init__(self, config: IndexerConfig) -> None:
        self.base_url = config.base_url.rstrip("/")
        self.timeout = config.timeout

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        logger.debug("GET %s params=%s", path, params)
        return await request_json(
            "GET", self._url(path), timeout=self.timeout, params=params
        )

    async def post(self, path: str, payload: dict[str, Any]) -> Any:
        logger.debug("POST %s", path)
        return await request_json(
            "POST", self._url(path), timeout=self.timeout, payload=payload
        )
