"""Blockfrost chain backend."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ...config import ChainConfig
from ...errors import ConfigurationError, UpstreamError
from ...http import request_json
from ...models import OutRef, ProtocolRecord

logger = logging.getLogger(__name__)


def parse_utxo(raw: dict[str, Any], tx_hash: str | None = None) -> ProtocolRecord:
    """Convert a Blockfrost UTxO/output object into a ProtocolRecord."""
    assets: dict[str, int] = {}
    for entry in raw.get("amount", []):
        unit = entry.get("unit", "")
        assets[unit] = assets.get(unit, 0) + int(entry.get("quantity", 0))

    return ProtocolRecord(
        out_ref=OutRef(
            tx_hash=raw.get("tx_hash") or tx_hash or "",
            output_index=int(raw.get("output_index", 0)),
        ),
        address=raw.get("address", ""),
        assets=assets,
        datum=raw.get("inline_datum"),
    )


class BlockfrostClient:
    """Cardano ledger access over the Blockfrost REST API."""

    PAGE_SIZE = 100

    def __init__(self, config: ChainConfig, base_url: str) -> None:
        if not config.blockfrost_project_id:
            raise ConfigurationError(
                "BLOCKFROST_API_KEY environment variable is required for write operations"
            )
        self.base_url = base_url.rstrip("/")
        self.timeout = config.timeout
        self._headers = {"project_id": config.blockfrost_project_id}

    async def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        allow_404: bool = True,
    ) -> Any:
        return await request_json(
            "GET",
            f"{self.base_url}{path}",
            timeout=self.timeout,
            headers=self._headers,
            params=params,
            allow_404=allow_404,
        )

    async def _paginate(self, path: str) -> list[dict[str, Any]]:
        """Collect every page of a list endpoint; a 404 means an empty list."""
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self._get(path, {"page": page, "count": self.PAGE_SIZE})
            if not data:
                break
            items.extend(data)
            if len(data) < self.PAGE_SIZE:
                break
            page += 1
        return items

    async def utxos_at(
        self, address: str, unit: str | None = None
    ) -> list[ProtocolRecord]:
        """Unspent outputs at ``address``, optionally only those holding ``unit``."""
        path = f"/addresses/{address}/utxos"
        if unit:
            path = f"{path}/{unit}"
        raw = await self._paginate(path)
        logger.debug("Fetched %d UTxOs at %s (unit=%s)", len(raw), address, unit)
        return [parse_utxo(u) for u in raw]

    async def utxos_by_unit(self, unit: str) -> list[ProtocolRecord]:
        """Every unspent output holding ``unit``, across all addresses."""
        holders = await self._paginate(f"/assets/{unit}/addresses")
        addresses = [h["address"] for h in holders if int(h.get("quantity", 0)) > 0]
        batches = await asyncio.gather(*(self.utxos_at(a, unit) for a in addresses))
        return [record for batch in batches for record in batch]

    async def utxo_by_out_ref(self, out_ref: OutRef) -> ProtocolRecord | None:
        """The output at ``out_ref`` if it exists and is unspent."""
        data = await self._get(f"/txs/{out_ref.tx_hash}/utxos")
        if not data:
            return None
        for output in data.get("outputs", []):
            if int(output.get("output_index", -1)) != out_ref.output_index:
                continue
            if output.get("collateral"):
                continue
            if output.get("consumed_by_tx"):
                logger.info("Output %s already spent by %s", out_ref, output["consumed_by_tx"])
                return None
            return parse_utxo(output, tx_hash=out_ref.tx_hash)
        return None

    async def current_slot(self) -> int:
        data = await self._get("/blocks/latest", allow_404=False)
        if not data or data.get("slot") is None:
            raise UpstreamError("Blockfrost returned no slot for the latest block")
        return int(data["slot"])
