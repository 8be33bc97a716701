"""Process-scoped collaborators shared by every tool call."""
from __future__ import annotations

import logging
from typing import Callable

from ..chains.cardano.blockfrost import BlockfrostClient
from ..config import AppConfig
from ..indexer import IndexerClient
from ..interfaces import ChainBackend, Indexer, TxAssembler
from ..protocol.locator import StateLocator
from ..protocol.params import ParamsCache, params_loader
from .assembler import RemoteAssembler

logger = logging.getLogger(__name__)


class BackendHandle:
    """Chain backend built on first use and kept for the life of the process.

    A missing Blockfrost credential surfaces as ConfigurationError from
    ``get()``, so read-only tools keep working without it.
    """

    def __init__(
        self,
        config: AppConfig,
        factory: Callable[[], ChainBackend] | None = None,
    ) -> None:
        self._config = config
        self._factory = factory or self._blockfrost
        self._backend: ChainBackend | None = None

    def _blockfrost(self) -> ChainBackend:
        return BlockfrostClient(self._config.chain, self._config.blockfrost_url)

    def get(self) -> ChainBackend:
        if self._backend is None:
            self._backend = self._factory()
            logger.info("Chain backend ready (%s)", self._config.network)
        return self._backend

    def reset(self) -> None:
        self._backend = None


class Runtime:
    """Wires config into the indexer, params cache, chain backend and assembler."""

    def __init__(
        self,
        config: AppConfig,
        indexer: Indexer | None = None,
        params: ParamsCache | None = None,
        backend: BackendHandle | None = None,
        assembler: TxAssembler | None = None,
    ) -> None:
        self.config = config
        self.indexer = indexer or IndexerClient(config.indexer)
        self.params = params or ParamsCache(
            params_loader(config.protocol.system_params_url, config.indexer.timeout),
            ttl_seconds=config.protocol.params_ttl_seconds,
        )
        self.backend = backend or BackendHandle(config)
        self.assembler = assembler or RemoteAssembler(config.assembler)

    async def locator(self) -> StateLocator:
        """A locator over the current parameters; raises if no backend is configured."""
        backend = self.backend.get()
        params = await self.params.get()
        return StateLocator(backend, params, self.config.network)

    def reset(self) -> None:
        self.params.reset()
        self.backend.reset()
