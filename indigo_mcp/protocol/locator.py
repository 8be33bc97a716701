"""State locator: finds the live protocol records an operation depends on.

Records of one category share a script address, so each lookup fetches the
candidates at that address (optionally narrowed by an identifying token),
decodes them, and keeps the ones matching the selector. What happens with
zero or several matches depends on the category's RecordPolicy.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Sequence, TypeVar

from ..chains.cardano.address import script_address
from ..errors import (
    AmbiguousRecordError,
    DecodeError,
    DelistedAssetError,
    InvalidInputError,
    NotFoundError,
    ProtocolIntegrityError,
)
from ..interfaces import ChainBackend
from ..models import Located, OutRef, ProtocolRecord
from .datums import (
    CdpDatum,
    D,
    IAssetContent,
    IAssetDatum,
    InterestOracleDatum,
    PriceOracleDatum,
    StabilityPoolAccountDatum,
    decode,
    try_decode,
)
from .params import SystemParams

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordPolicy(str, Enum):
    SINGLETON = "singleton"
    PER_ASSET = "per-asset"
    POOL = "pool"


def select(candidates: Sequence[T], policy: RecordPolicy, what: str) -> T:
    """Apply ``policy`` to the matching candidates and return the chosen one."""
    if policy is RecordPolicy.POOL:
        if not candidates:
            raise NotFoundError(f"No {what} found")
        return candidates[0]

    if len(candidates) > 1:
        raise AmbiguousRecordError(
            f"Expected exactly one {what}, found {len(candidates)}", len(candidates)
        )
    if not candidates:
        if policy is RecordPolicy.SINGLETON:
            raise ProtocolIntegrityError(f"Protocol singleton {what} is missing")
        raise NotFoundError(f"{what} not found")
    return candidates[0]


class StateLocator:
    """Resolves protocol records against one snapshot of system parameters."""

    def __init__(
        self, backend: ChainBackend, params: SystemParams, network: str
    ) -> None:
        self.backend = backend
        self.params = params
        self.network = network

    def _address(self, validator_hash: str) -> str:
        return script_address(validator_hash, self.network)

    @staticmethod
    def _decode_matching(
        records: list[ProtocolRecord],
        kind: type[D],
        match: Callable[[D], bool] = lambda _: True,
    ) -> list[Located[D]]:
        found: list[Located[D]] = []
        for record in records:
            datum = try_decode(kind, record.datum)
            if datum is None:
                logger.debug("Skipping %s: not a %s", record.out_ref, kind.__name__)
                continue
            if match(datum):
                found.append(Located(record, datum))
        return found

    # -- per-asset ---------------------------------------------------------

    async def find_iasset(self, symbol: str) -> Located[IAssetContent]:
        records = await self.backend.utxos_at(
            self._address(self.params.cdp_hash), self.params.iasset_auth_token.unit
        )
        wanted = symbol.encode()
        matches = self._decode_matching(
            records, IAssetDatum, lambda d: d.content.asset_name == wanted
        )
        chosen = select(matches, RecordPolicy.PER_ASSET, f"iAsset {symbol}")
        return Located(chosen.record, chosen.datum.content)

    async def find_price_oracle(
        self, iasset: IAssetContent
    ) -> Located[PriceOracleDatum]:
        nft = iasset.price_oracle_nft()
        if nft is None:
            raise DelistedAssetError("iAsset is delisted, cannot perform CDP operations")
        records = await self.backend.utxos_by_unit(nft.unit)
        matches = self._decode_matching(records, PriceOracleDatum)
        return select(matches, RecordPolicy.PER_ASSET, f"price oracle for {iasset.symbol}")

    async def find_interest_oracle(
        self, iasset: IAssetContent
    ) -> Located[InterestOracleDatum]:
        nft = iasset.interest_oracle_nft.to_asset_class()
        records = await self.backend.utxos_by_unit(nft.unit)
        matches = self._decode_matching(records, InterestOracleDatum)
        return select(
            matches, RecordPolicy.PER_ASSET, f"interest oracle for {iasset.symbol}"
        )

    async def find_stability_pool(self, symbol: str) -> ProtocolRecord:
        unit = self.params.stability_pool_token.currency_symbol + symbol.encode().hex()
        records = await self.backend.utxos_at(
            self._address(self.params.stability_pool_hash), unit
        )
        held = [r for r in records if r.holds(unit)]
        return select(held, RecordPolicy.PER_ASSET, f"stability pool for {symbol}")

    # -- singletons --------------------------------------------------------

    async def find_governance(self) -> ProtocolRecord:
        unit = self.params.gov_nft.unit
        records = await self.backend.utxos_at(self._address(self.params.gov_hash), unit)
        held = [r for r in records if r.holds(unit)]
        return select(held, RecordPolicy.SINGLETON, "governance record")

    async def find_staking_manager(self) -> ProtocolRecord:
        unit = self.params.staking_manager_nft.unit
        records = await self.backend.utxos_at(
            self._address(self.params.staking_hash), unit
        )
        held = [r for r in records if r.holds(unit)]
        return select(held, RecordPolicy.SINGLETON, "staking manager")

    # -- pools -------------------------------------------------------------

    async def find_collector(self) -> ProtocolRecord:
        records = await self.backend.utxos_at(self._address(self.params.collector_hash))
        return select(records, RecordPolicy.POOL, "collector record")

    async def find_treasury(self) -> ProtocolRecord:
        records = await self.backend.utxos_at(self._address(self.params.treasury_hash))
        return select(records, RecordPolicy.POOL, "treasury record")

    async def find_cdp_creator(self) -> ProtocolRecord:
        unit = self.params.cdp_creator_nft.unit
        records = await self.backend.utxos_at(
            self._address(self.params.cdp_creator_hash), unit
        )
        held = [r for r in records if r.holds(unit)]
        return select(held, RecordPolicy.POOL, "CDP creator record")

    # -- by reference ------------------------------------------------------

    async def fetch(self, out_ref: OutRef) -> ProtocolRecord:
        """The unspent output at ``out_ref``; spent or missing is NotFound."""
        record = await self.backend.utxo_by_out_ref(out_ref)
        if record is None:
            raise NotFoundError(f"Output {out_ref} not found or already spent")
        return record

    def verify(
        self,
        record: ProtocolRecord,
        *,
        validator_hash: str | None = None,
        unit: str | None = None,
    ) -> None:
        """Reject a referenced output that sits outside the protocol's scripts."""
        if validator_hash is not None and record.address != self._address(validator_hash):
            raise InvalidInputError(
                f"Output {record.out_ref} is not at the expected protocol address"
            )
        if unit is not None and not record.holds(unit):
            raise InvalidInputError(
                f"Output {record.out_ref} does not hold the expected token {unit}"
            )

    async def fetch_decoded(
        self,
        out_ref: OutRef,
        kind: type[D],
        *,
        validator_hash: str | None = None,
        unit: str | None = None,
    ) -> Located[D]:
        record = await self.fetch(out_ref)
        self.verify(record, validator_hash=validator_hash, unit=unit)
        try:
            datum = decode(kind, record.datum)
        except DecodeError as e:
            raise InvalidInputError(
                f"Output {out_ref} does not hold a valid {kind.__name__}"
            ) from e
        return Located(record, datum)

    async def fetch_cdp(self, out_ref: OutRef) -> Located[CdpDatum]:
        return await self.fetch_decoded(
            out_ref, CdpDatum, validator_hash=self.params.cdp_hash
        )

    async def fetch_sp_account(
        self, out_ref: OutRef
    ) -> Located[StabilityPoolAccountDatum]:
        return await self.fetch_decoded(
            out_ref, StabilityPoolAccountDatum,
            validator_hash=self.params.stability_pool_hash,
        )

    async def fetch_iasset(self, out_ref: OutRef) -> Located[IAssetDatum]:
        return await self.fetch_decoded(
            out_ref,
            IAssetDatum,
            validator_hash=self.params.cdp_hash,
            unit=self.params.iasset_auth_token.unit,
        )

    async def fetch_price_oracle(
        self, out_ref: OutRef, iasset: IAssetContent
    ) -> Located[PriceOracleDatum]:
        """The referenced price oracle, which must carry the NFT named by ``iasset``."""
        nft = iasset.price_oracle_nft()
        if nft is None:
            raise DelistedAssetError("iAsset is delisted, cannot perform CDP operations")
        return await self.fetch_decoded(out_ref, PriceOracleDatum, unit=nft.unit)

    async def fetch_staking_position(self, out_ref: OutRef) -> ProtocolRecord:
        record = await self.fetch(out_ref)
        self.verify(record, validator_hash=self.params.staking_hash)
        return record
