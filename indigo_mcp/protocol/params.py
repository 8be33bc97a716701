"""Indigo system parameters and their process-wide TTL cache."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from ..errors import UpstreamError
from ..http import request_json
from ..models import AssetClass

logger = logging.getLogger(__name__)


def parse_asset_class(raw: Any) -> AssetClass:
    """Parse an asset class in either of the published JSON shapes.

    The params file uses ``[{"unCurrencySymbol": ...}, {"unTokenName": ...}]``
    with a text token name; the dict form carries hex fields directly.
    """
    if isinstance(raw, list) and len(raw) == 2:
        cs = raw[0].get("unCurrencySymbol", "")
        tn = raw[1].get("unTokenName", "")
        return AssetClass(cs, tn.encode().hex())
    if isinstance(raw, dict):
        return AssetClass(
            raw.get("currencySymbol", raw.get("currency_symbol", "")),
            raw.get("tokenName", raw.get("token_name", "")),
        )
    raise UpstreamError(f"Unrecognized asset class in system params: {raw!r}")


@dataclass(frozen=True)
class SystemParams:
    """The subset of the published system parameters the locator needs."""

    cdp_hash: str
    cdp_creator_hash: str
    collector_hash: str
    gov_hash: str
    treasury_hash: str
    stability_pool_hash: str
    staking_hash: str
    iasset_auth_token: AssetClass
    cdp_creator_nft: AssetClass
    gov_nft: AssetClass
    stability_pool_token: AssetClass
    staking_manager_nft: AssetClass

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> SystemParams:
        try:
            hashes = raw["validatorHashes"]
            return cls(
                cdp_hash=hashes["cdpHash"],
                cdp_creator_hash=hashes["cdpCreatorHash"],
                collector_hash=hashes["collectorHash"],
                gov_hash=hashes["govHash"],
                treasury_hash=hashes["treasuryHash"],
                stability_pool_hash=hashes["stabilityPoolHash"],
                staking_hash=hashes["stakingHash"],
                iasset_auth_token=parse_asset_class(raw["cdpParams"]["iAssetAuthToken"]),
                cdp_creator_nft=parse_asset_class(raw["cdpCreatorParams"]["cdpCreatorNft"]),
                gov_nft=parse_asset_class(raw["govParams"]["govNFT"]),
                stability_pool_token=parse_asset_class(
                    raw["stabilityPoolParams"]["stabilityPoolToken"]
                ),
                staking_manager_nft=parse_asset_class(
                    raw["stakingParams"]["stakingManagerNFT"]
                ),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise UpstreamError(f"Malformed system params: missing {e}") from e


def params_loader(url: str, timeout: float) -> Callable[[], Awaitable[SystemParams]]:
    """Build a loader that fetches and parses the params file at ``url``."""

    async def load() -> SystemParams:
        raw = await request_json("GET", url, timeout=timeout)
        if not isinstance(raw, dict):
            raise UpstreamError(f"System params at {url} are not a JSON object")
        return SystemParams.from_json(raw)

    return load


class ParamsCache:
    """Lazily loaded system parameters with TTL invalidation."""

    def __init__(
        self,
        loader: Callable[[], Awaitable[SystemParams]],
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._value: SystemParams | None = None
        self._loaded_at = 0.0
        self._lock = asyncio.Lock()

    def _fresh(self) -> bool:
        return self._value is not None and self._clock() - self._loaded_at < self._ttl

    async def get(self) -> SystemParams:
        if self._fresh():
            return self._value  # type: ignore[return-value]
        async with self._lock:
            if not self._fresh():
                logger.info("Loading Indigo system parameters")
                self._value = await self._loader()
                self._loaded_at = self._clock()
        return self._value  # type: ignore[return-value]

    def reset(self) -> None:
        self._value = None
        self._loaded_at = 0.0
