"""Read-only tools: indexer queries and CDP health analysis."""
from __future__ import annotations

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from ..chains.cardano.address import extract_payment_credential, normalize_owners
from ..errors import (
    ConfigurationError,
    InvalidInputError,
    NotFoundError,
    ProtocolIntegrityError,
    UpstreamError,
)
from ..models import PositionHealth
from ..protocol.datums import InterestOracleDatum
from ..protocol.health import classify
from ..protocol.interest import accrue
from ..protocol.locator import StateLocator
from .fanout import gather_all
from .inputs import validate_asset, validate_page, wallet_credential
from .runtime import Runtime

logger = logging.getLogger(__name__)

LOVELACE_PER_ADA = 1_000_000
TOKEN_UNIT = 1_000_000

HEALTH_NOTE = (
    "Collateral ratios are advisory. Accrued interest is estimated from the "
    "on-chain interest oracle when available and is zero otherwise."
)


def _to_int(value: Any) -> int:
    """Integer from an indexer number or numeric string, without float rounding."""
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError) as e:
        raise UpstreamError(f"Indexer returned a non-numeric amount: {value!r}") from e


def _find_asset(assets: list[dict[str, Any]], asset: str) -> dict[str, Any]:
    for entry in assets:
        if entry.get("name") == asset:
            return entry
    raise NotFoundError(f"Asset {asset} not found")


class ReadService:
    """Indexer-backed reads plus the health analysis that joins them."""

    def __init__(
        self, runtime: Runtime, clock: Callable[[], float] = time.time
    ) -> None:
        self.runtime = runtime
        self.indexer = runtime.indexer
        self._clock = clock

    @property
    def _assets(self) -> tuple[str, ...]:
        return self.runtime.config.protocol.assets

    # -----------------------------------------------------------------------
    # Assets and prices
    # -----------------------------------------------------------------------

    async def get_assets(self) -> Any:
        return await self.indexer.get("/assets/")

    async def get_asset(self, asset: str) -> dict[str, Any]:
        validate_asset(asset, self._assets)
        return _find_asset(await self.indexer.get("/assets/"), asset)

    async def get_asset_price(self, asset: str) -> dict[str, Any]:
        validate_asset(asset, self._assets)
        found = _find_asset(await self.indexer.get("/assets/"), asset)
        return {"asset": asset, **(found.get("price") or {})}

    async def get_ada_price(self) -> Any:
        return await self.indexer.get("/analytics/ada")

    async def get_indy_price(self) -> dict[str, float]:
        raw = await self.indexer.get("/analytics/indy")
        return {
            "ada": float(raw["ada"]),
            "usd": float(raw["usd"]),
            "timestamp": float(raw["timestamp"]),
        }

    # -----------------------------------------------------------------------
    # CDPs
    # -----------------------------------------------------------------------

    async def get_all_cdps(
        self, asset: str | None = None, limit: int = 50, offset: int = 0
    ) -> dict[str, Any]:
        validate_page(limit, offset)
        if asset is not None:
            validate_asset(asset, self._assets)
        loans = await self.indexer.get("/loans/")
        if asset is not None:
            loans = [loan for loan in loans if loan.get("asset") == asset]
        return {
            "cdps": loans[offset:offset + limit],
            "total": len(loans),
            "limit": limit,
            "offset": offset,
        }

    async def get_cdps_by_owner(self, owner: str) -> list[dict[str, Any]]:
        credential = extract_payment_credential(owner)
        loans = await self.indexer.get("/loans/")
        return [loan for loan in loans if loan.get("owner") == credential]

    async def get_cdps_by_address(self, address: str) -> list[dict[str, Any]]:
        credential = wallet_credential(address)
        loans = await self.indexer.get("/loans/")
        return [loan for loan in loans if loan.get("owner") == credential]

    async def analyze_cdp_health(self, owner: str) -> dict[str, Any]:
        """Collateral ratio and risk tier for every CDP of ``owner``."""
        credential = extract_payment_credential(owner)
        loans, assets = await gather_all(
            self.indexer.get("/loans/"),
            self.indexer.get("/assets/"),
        )
        mine = [loan for loan in loans if loan.get("owner") == credential]
        if not mine:
            return {
                "owner": credential,
                "status": "no_positions",
                "message": "No CDPs found for this owner",
                "cdps": [],
            }

        asset_map = {a.get("name"): a for a in assets}
        symbols = sorted({loan["asset"] for loan in mine if loan.get("asset") in asset_map})
        sources = await self._interest_sources(symbols)
        now_ms = int(self._clock() * 1000)

        return {
            "owner": credential,
            "status": "ok",
            "cdps": [
                self._position_health(loan, asset_map, sources, now_ms) for loan in mine
            ],
            "note": HEALTH_NOTE,
        }

    async def _interest_sources(
        self, symbols: list[str]
    ) -> dict[str, InterestOracleDatum | None]:
        if not symbols:
            return {}
        try:
            locator = await self.runtime.locator()
        except (ConfigurationError, UpstreamError) as e:
            logger.info("Interest oracles unavailable, reporting zero accrued interest: %s", e)
            return {symbol: None for symbol in symbols}

        found = await gather_all(
            *(self._interest_source(locator, symbol) for symbol in symbols)
        )
        return dict(zip(symbols, found))

    @staticmethod
    async def _interest_source(
        locator: StateLocator, symbol: str
    ) -> InterestOracleDatum | None:
        try:
            iasset = await locator.find_iasset(symbol)
            oracle = await locator.find_interest_oracle(iasset.datum)
        except (NotFoundError, ProtocolIntegrityError, UpstreamError) as e:
            logger.warning("No interest oracle for %s, assuming zero interest: %s", symbol, e)
            return None
        return oracle.datum

    def _position_health(
        self,
        loan: dict[str, Any],
        asset_map: dict[str, dict[str, Any]],
        sources: dict[str, InterestOracleDatum | None],
        now_ms: int,
    ) -> dict[str, Any]:
        asset = loan.get("asset")
        info = asset_map.get(asset)
        if info is None:
            return {**loan, "error": f"Asset {asset} not found"}

        collateral = _to_int(loan.get("collateralAmount", loan.get("collateral", 0)))
        minted = _to_int(loan.get("mintedAmount", loan.get("minted", 0)))
        price = float(info["price"]["price"])
        maintenance = float(info["interest"]["minRatio"])
        liquidation = float(info["interest"]["liquidation"])

        accrued = 0
        snapshot = loan.get("active_interest_tracking_unitary_interest_snapshot")
        last_settled = loan.get("active_interest_tracking_last_settled")
        if snapshot is not None and last_settled is not None:
            accrued = accrue(
                now_ms, _to_int(snapshot), minted, _to_int(last_settled), sources.get(asset)
            )

        health = classify(
            collateral,
            minted,
            price,
            accrued,
            maintenance,
            liquidation,
            self.runtime.config.health.safety_multiplier,
        )
        return PositionHealth(
            asset=asset,
            collateral_ada=collateral / LOVELACE_PER_ADA,
            minted_tokens=minted / TOKEN_UNIT,
            price_ada=price,
            accrued_interest=accrued,
            collateral_ratio=health.ratio_percent,
            maintenance_ratio=maintenance,
            liquidation_ratio=liquidation,
            status=health.tier,
        ).to_dict()

    # -----------------------------------------------------------------------
    # Stability pools, staking, redemptions
    # -----------------------------------------------------------------------

    async def get_stability_pools(self) -> Any:
        return await self.indexer.get("/stability-pools/")

    async def get_stability_pool_accounts(self, asset: str | None = None) -> Any:
        if asset is not None:
            validate_asset(asset, self._assets)
        accounts = await self.indexer.get("/stability-pools/accounts")
        if asset is not None:
            accounts = [a for a in accounts if a.get("asset") == asset]
        return accounts

    async def get_sp_accounts_by_owner(self, owners: list[str]) -> Any:
        return await self.indexer.post(
            "/stability-pools/accounts", {"owners": normalize_owners(owners)}
        )

    async def get_staking_info(self) -> Any:
        return await self.indexer.get("/staking/")

    async def get_staking_positions(self) -> Any:
        return await self.indexer.get("/staking/positions")

    async def get_staking_positions_by_owner(self, owners: list[str]) -> Any:
        return await self.indexer.post(
            "/staking/positions", {"owners": normalize_owners(owners)}
        )

    async def get_staking_position_by_address(self, address: str) -> Any:
        credential = wallet_credential(address)
        return await self.indexer.post("/staking/positions", {"owners": [credential]})

    async def get_order_book(
        self, asset: str | None = None, owners: list[str] | None = None
    ) -> Any:
        if asset is None and owners is None:
            return await self.indexer.get("/order-book/")
        payload: dict[str, Any] = {}
        if asset is not None:
            payload["asset"] = validate_asset(asset, self._assets)
        if owners is not None:
            payload["owners"] = normalize_owners(owners)
        return await self.indexer.post("/order-book/", payload)

    async def get_redemption_orders(
        self, timestamp: int | None = None, in_range: bool | None = None
    ) -> Any:
        if timestamp is None and in_range is None:
            return await self.indexer.get("/rewards/redemption-orders")
        payload: dict[str, Any] = {}
        if timestamp is not None:
            if timestamp < 0:
                raise InvalidInputError(
                    f"timestamp must be a non-negative Unix time in milliseconds, got {timestamp}"
                )
            payload["timestamp"] = timestamp
        if in_range is not None:
            payload["in_range"] = in_range
        return await self.indexer.post("/rewards/redemption-orders", payload)

    async def get_redemption_queue(self, asset: str) -> dict[str, Any]:
        """Open redemption positions for ``asset``, cheapest max price first."""
        validate_asset(asset, self._assets)
        entries = await self.indexer.post("/order-book/", {"asset": asset})
        ordered = sorted(entries, key=lambda e: e.get("maxPrice", 0))
        return {
            "asset": asset,
            "totalPositions": len(ordered),
            "totalLovelace": sum(e.get("lovelaceAmount", 0) for e in ordered),
            "entries": ordered,
        }

    # -----------------------------------------------------------------------
    # Protocol
    # -----------------------------------------------------------------------

    async def get_collector_utxos(self, length: int | None = None) -> Any:
        if length:
            return await self.indexer.post("/collector/utxos", {"length": length})
        return await self.indexer.get("/collector/utxos")

    async def get_protocol_params(self) -> Any:
        return await self.indexer.get("/protocol-params/")

    async def get_sync_status(self) -> Any:
        return await self.indexer.get("/sync/")

    async def get_polls(self) -> Any:
        return await self.indexer.get("/polls/")

    async def get_temperature_checks(self) -> Any:
        return await self.indexer.get("/polls/temperature-checks")

    async def get_tvl(self) -> Any:
        return await self.indexer.get("/analytics/tvl")

    async def get_apr_rewards(self) -> Any:
        return await self.indexer.get("/apr/")

    async def get_apr_by_key(self, key: str) -> Any:
        return await self.indexer.post("/apr/", {"key": key})

    async def get_protocol_stats(self) -> dict[str, Any]:
        assets, ada, tvl, staking = await gather_all(
            self.indexer.get("/assets/"),
            self.indexer.get("/analytics/ada"),
            self.indexer.get("/analytics/tvl"),
            self.indexer.get("/staking/"),
        )
        return {
            "assetCount": len(assets),
            "assets": [
                {"name": a.get("name"), "price": (a.get("price") or {}).get("price")}
                for a in assets
            ],
            "adaPrice": ada,
            "tvl": tvl[-1].get("tvl") if tvl else None,
            "totalStake": (staking or {}).get("totalStake"),
        }
