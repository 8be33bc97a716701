"""Transaction orchestrator: resolves records, checks preconditions, drafts transactions.

Every operation follows the same shape. Tool inputs are validated before any
network call. Independent records are then resolved in one concurrent wave,
and records that depend on an earlier result (oracles referenced by the iAsset
entry) in a second. Domain preconditions are checked, and only then is the
assembler asked for a transaction. A failure at any step aborts the draft.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from ..errors import PreconditionFailedError
from ..models import (
    AssemblyRequest,
    Located,
    OutRef,
    ProtocolRecord,
    TxSummary,
    UnsignedTx,
)
from ..protocol.datums import (
    CdpDatum,
    IAssetContent,
    LrpDatum,
)
from ..protocol.locator import StateLocator
from .fanout import gather_all
from .inputs import make_out_ref, parse_amount, validate_asset, wallet_credential
from .runtime import Runtime

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


def _require_positive(value: int, name: str) -> None:
    if value <= 0:
        raise PreconditionFailedError(f"{name} must be positive, got {value}")


def _require_nonzero(value: int, name: str) -> None:
    if value == 0:
        raise PreconditionFailedError(f"{name} must not be zero")


def _require_owner(owner: str | None, credential: str, what: str) -> None:
    if owner != credential:
        raise PreconditionFailedError(f"{what} is not owned by this address")


def _require_asset(found: str, expected: str, what: str) -> None:
    if found != expected:
        raise PreconditionFailedError(f"{what} belongs to {found}, not {expected}")


def _require_active(cdp: CdpDatum) -> None:
    if cdp.content.is_frozen:
        raise PreconditionFailedError("CDP is frozen and can no longer be adjusted")


def _ref_inputs(prefix: str, out_ref: OutRef) -> dict[str, str]:
    return {
        f"{prefix}TxHash": out_ref.tx_hash,
        f"{prefix}OutputIndex": str(out_ref.output_index),
    }


class TransactionOrchestrator:
    """Drafts unsigned Indigo transactions for a wallet address."""

    def __init__(self, runtime: Runtime) -> None:
        self.runtime = runtime

    @property
    def _assets(self) -> tuple[str, ...]:
        return self.runtime.config.protocol.assets

    async def _oracles(
        self, locator: StateLocator, iasset: IAssetContent
    ) -> tuple[ProtocolRecord, ProtocolRecord]:
        price, interest = await gather_all(
            locator.find_price_oracle(iasset),
            locator.find_interest_oracle(iasset),
        )
        return price.record, interest.record

    async def _draft(
        self,
        operation: str,
        address: str,
        records: dict[str, ProtocolRecord | tuple[ProtocolRecord, ...]],
        params: dict[str, Any],
        slot: int,
        description: str,
        inputs: dict[str, str],
    ) -> UnsignedTx:
        request = AssemblyRequest(
            operation=operation,
            owner_address=address,
            records=records,
            params=params,
            current_slot=slot,
        )
        assembled = await self.runtime.assembler.complete(request)
        logger.info(
            "Drafted %s: tx %s, fee %d lovelace", operation, assembled.tx_hash, assembled.fee
        )
        return UnsignedTx(
            unsigned_tx=assembled.cbor_hex,
            tx_hash=assembled.tx_hash,
            fee=str(assembled.fee),
            summary=TxSummary(operation, description, {"address": address, **inputs}),
        )

    # -----------------------------------------------------------------------
    # CDP lifecycle
    # -----------------------------------------------------------------------

    async def open_cdp(
        self, address: str, asset: str, collateral_amount: str, mint_amount: str
    ) -> UnsignedTx:
        wallet_credential(address)
        validate_asset(asset, self._assets)
        collateral = parse_amount(collateral_amount, name="collateralAmount")
        mint = parse_amount(mint_amount, name="mintAmount")
        _require_positive(collateral, "collateralAmount")
        _require_positive(mint, "mintAmount")

        locator = await self.runtime.locator()
        iasset, creator, collector, slot = await gather_all(
            locator.find_iasset(asset),
            locator.find_cdp_creator(),
            locator.find_collector(),
            locator.backend.current_slot(),
        )
        price, interest = await self._oracles(locator, iasset.datum)

        return await self._draft(
            "open_cdp",
            address,
            {
                "iasset": iasset.record,
                "cdpCreator": creator,
                "collector": collector,
                "priceOracle": price,
                "interestOracle": interest,
            },
            {"asset": asset, "collateralAmount": str(collateral), "mintAmount": str(mint)},
            slot,
            f"Open {asset} CDP with {collateral} lovelace collateral, minting {mint}",
            {"asset": asset, "collateralAmount": str(collateral), "mintAmount": str(mint)},
        )

    async def _adjust_cdp(
        self,
        operation: str,
        address: str,
        asset: str,
        tx_hash: str,
        output_index: int,
        amount: int | None,
        description: str,
    ) -> UnsignedTx:
        credential = wallet_credential(address)
        validate_asset(asset, self._assets)
        out_ref = make_out_ref(tx_hash, output_index)
        if amount is not None:
            _require_positive(amount, "amount")

        locator = await self.runtime.locator()
        iasset, collector, gov, treasury, cdp, slot = await gather_all(
            locator.find_iasset(asset),
            locator.find_collector(),
            locator.find_governance(),
            locator.find_treasury(),
            locator.fetch_cdp(out_ref),
            locator.backend.current_slot(),
        )
        _require_asset(cdp.datum.content.asset_symbol, asset, "CDP")
        _require_owner(cdp.datum.content.owner_credential, credential, "CDP")
        _require_active(cdp.datum)
        price, interest = await self._oracles(locator, iasset.datum)

        params: dict[str, Any] = {"asset": asset, "cdp": out_ref.to_dict()}
        inputs = {"asset": asset, **_ref_inputs("cdp", out_ref)}
        if amount is not None:
            params["amount"] = str(amount)
            inputs["amount"] = str(amount)

        return await self._draft(
            operation,
            address,
            {
                "cdp": cdp.record,
                "iasset": iasset.record,
                "priceOracle": price,
                "interestOracle": interest,
                "collector": collector,
                "governance": gov,
                "treasury": treasury,
            },
            params,
            slot,
            description,
            inputs,
        )

    async def deposit_cdp(
        self, address: str, asset: str, tx_hash: str, output_index: int, amount: str
    ) -> UnsignedTx:
        value = parse_amount(amount)
        return await self._adjust_cdp(
            "deposit_cdp", address, asset, tx_hash, output_index, value,
            f"Deposit {value} lovelace into {asset} CDP",
        )

    async def withdraw_cdp(
        self, address: str, asset: str, tx_hash: str, output_index: int, amount: str
    ) -> UnsignedTx:
        value = parse_amount(amount)
        return await self._adjust_cdp(
            "withdraw_cdp", address, asset, tx_hash, output_index, value,
            f"Withdraw {value} lovelace from {asset} CDP",
        )

    async def mint_cdp(
        self, address: str, asset: str, tx_hash: str, output_index: int, amount: str
    ) -> UnsignedTx:
        value = parse_amount(amount)
        return await self._adjust_cdp(
            "mint_cdp", address, asset, tx_hash, output_index, value,
            f"Mint {value} {asset} from CDP",
        )

    async def burn_cdp(
        self, address: str, asset: str, tx_hash: str, output_index: int, amount: str
    ) -> UnsignedTx:
        value = parse_amount(amount)
        return await self._adjust_cdp(
            "burn_cdp", address, asset, tx_hash, output_index, value,
            f"Burn {value} {asset} to reduce CDP debt",
        )

    async def close_cdp(
        self, address: str, asset: str, tx_hash: str, output_index: int
    ) -> UnsignedTx:
        return await self._adjust_cdp(
            "close_cdp", address, asset, tx_hash, output_index, None,
            f"Close {asset} CDP and reclaim collateral",
        )

    # -----------------------------------------------------------------------
    # CDP maintenance: redemption, freezing, liquidation, merging
    # -----------------------------------------------------------------------

    async def redeem_cdp(
        self, address: str, asset: str, tx_hash: str, output_index: int, amount: str
    ) -> UnsignedTx:
        wallet_credential(address)
        validate_asset(asset, self._assets)
        out_ref = make_out_ref(tx_hash, output_index)
        value = parse_amount(amount)
        _require_positive(value, "amount")

        locator = await self.runtime.locator()
        iasset, collector, treasury, cdp, slot = await gather_all(
            locator.find_iasset(asset),
            locator.find_collector(),
            locator.find_treasury(),
            locator.fetch_cdp(out_ref),
            locator.backend.current_slot(),
        )
        _require_asset(cdp.datum.content.asset_symbol, asset, "CDP")
        _require_active(cdp.datum)
        price, interest = await self._oracles(locator, iasset.datum)

        return await self._draft(
            "redeem_cdp",
            address,
            {
                "cdp": cdp.record,
                "iasset": iasset.record,
                "priceOracle": price,
                "interestOracle": interest,
                "collector": collector,
                "treasury": treasury,
            },
            {"asset": asset, "cdp": out_ref.to_dict(), "amount": str(value)},
            slot,
            f"Redeem {value} {asset} from CDP",
            {"asset": asset, **_ref_inputs("cdp", out_ref), "amount": str(value)},
        )

    async def freeze_cdp(
        self, address: str, asset: str, tx_hash: str, output_index: int
    ) -> UnsignedTx:
        wallet_credential(address)
        validate_asset(asset, self._assets)
        out_ref = make_out_ref(tx_hash, output_index)

        locator = await self.runtime.locator()
        iasset, cdp, slot = await gather_all(
            locator.find_iasset(asset),
            locator.fetch_cdp(out_ref),
            locator.backend.current_slot(),
        )
        _require_asset(cdp.datum.content.asset_symbol, asset, "CDP")
        if cdp.datum.content.is_frozen:
            raise PreconditionFailedError("CDP is already frozen")
        price, interest = await self._oracles(locator, iasset.datum)

        return await self._draft(
            "freeze_cdp",
            address,
            {
                "cdp": cdp.record,
                "iasset": iasset.record,
                "priceOracle": price,
                "interestOracle": interest,
            },
            {"asset": asset, "cdp": out_ref.to_dict()},
            slot,
            f"Freeze {asset} CDP",
            {"asset": asset, **_ref_inputs("cdp", out_ref)},
        )

    async def liquidate_cdp(
        self, address: str, asset: str, tx_hash: str, output_index: int
    ) -> UnsignedTx:
        wallet_credential(address)
        validate_asset(asset, self._assets)
        out_ref = make_out_ref(tx_hash, output_index)

        locator = await self.runtime.locator()
        pool, collector, treasury, cdp, slot = await gather_all(
            locator.find_stability_pool(asset),
            locator.find_collector(),
            locator.find_treasury(),
            locator.fetch_cdp(out_ref),
            locator.backend.current_slot(),
        )
        _require_asset(cdp.datum.content.asset_symbol, asset, "CDP")
        if not cdp.datum.content.is_frozen:
            raise PreconditionFailedError("CDP must be frozen before it can be liquidated")

        return await self._draft(
            "liquidate_cdp",
            address,
            {
                "cdp": cdp.record,
                "stabilityPool": pool,
                "collector": collector,
                "treasury": treasury,
            },
            {"asset": asset, "cdp": out_ref.to_dict()},
            slot,
            f"Liquidate undercollateralized {asset} CDP",
            {"asset": asset, **_ref_inputs("cdp", out_ref)},
        )

    async def merge_cdps(
        self, address: str, refs: list[tuple[str, int]]
    ) -> UnsignedTx:
        wallet_credential(address)
        out_refs = [make_out_ref(h, i) for h, i in refs]
        if len(out_refs) < 2:
            raise PreconditionFailedError("At least two CDPs are required to merge")
        if len(set(out_refs)) != len(out_refs):
            raise PreconditionFailedError("Duplicate CDP references in merge")

        locator = await self.runtime.locator()
        *cdps, slot = await gather_all(
            *(locator.fetch_cdp(r) for r in out_refs),
            locator.backend.current_slot(),
        )
        assets = {c.datum.content.asset_symbol for c in cdps}
        if len(assets) != 1:
            raise PreconditionFailedError(
                f"Merged CDPs must share one iAsset, found {', '.join(sorted(assets))}"
            )
        asset = assets.pop()
        validate_asset(asset, self._assets)
        for cdp in cdps:
            if not cdp.datum.content.is_frozen:
                raise PreconditionFailedError("Only frozen CDPs can be merged")

        iasset = await locator.find_iasset(asset)
        price, interest = await self._oracles(locator, iasset.datum)

        ref_list = [r.to_dict() for r in out_refs]
        return await self._draft(
            "merge_cdps",
            address,
            {
                "cdps": tuple(c.record for c in cdps),
                "iasset": iasset.record,
                "priceOracle": price,
                "interestOracle": interest,
            },
            {"asset": asset, "cdps": ref_list},
            slot,
            f"Merge {len(out_refs)} CDPs into one",
            {"cdpOutRefs": json.dumps(ref_list)},
        )

    # -----------------------------------------------------------------------
    # Stability pool
    # -----------------------------------------------------------------------

    async def create_sp_account(
        self, address: str, asset: str, amount: str
    ) -> UnsignedTx:
        wallet_credential(address)
        validate_asset(asset, self._assets)
        value = parse_amount(amount)
        _require_positive(value, "amount")

        locator = await self.runtime.locator()
        pool, iasset, slot = await gather_all(
            locator.find_stability_pool(asset),
            locator.find_iasset(asset),
            locator.backend.current_slot(),
        )

        return await self._draft(
            "create_sp_account",
            address,
            {"stabilityPool": pool, "iasset": iasset.record},
            {"asset": asset, "amount": str(value)},
            slot,
            f"Create stability pool account for {asset}",
            {"asset": asset, "amount": str(value)},
        )

    async def adjust_sp_account(
        self, address: str, asset: str, tx_hash: str, output_index: int, amount: str
    ) -> UnsignedTx:
        credential = wallet_credential(address)
        validate_asset(asset, self._assets)
        out_ref = make_out_ref(tx_hash, output_index)
        value = parse_amount(amount, signed=True)
        _require_nonzero(value, "amount")

        locator = await self.runtime.locator()
        account, pool, slot = await gather_all(
            locator.fetch_sp_account(out_ref),
            locator.find_stability_pool(asset),
            locator.backend.current_slot(),
        )
        _require_asset(account.datum.asset_symbol, asset, "Stability pool account")
        _require_owner(account.datum.owner_credential, credential, "Stability pool account")

        return await self._draft(
            "adjust_sp_account",
            address,
            {"account": account.record, "stabilityPool": pool},
            {"asset": asset, "account": out_ref.to_dict(), "amount": str(value)},
            slot,
            f"Adjust stability pool account for {asset}",
            {"asset": asset, "amount": str(value), **_ref_inputs("account", out_ref)},
        )

    async def close_sp_account(
        self, address: str, tx_hash: str, output_index: int
    ) -> UnsignedTx:
        credential = wallet_credential(address)
        out_ref = make_out_ref(tx_hash, output_index)

        locator = await self.runtime.locator()
        account, slot = await gather_all(
            locator.fetch_sp_account(out_ref),
            locator.backend.current_slot(),
        )
        _require_owner(account.datum.owner_credential, credential, "Stability pool account")
        pool = await locator.find_stability_pool(account.datum.asset_symbol)

        return await self._draft(
            "close_sp_account",
            address,
            {"account": account.record, "stabilityPool": pool},
            {"asset": account.datum.asset_symbol, "account": out_ref.to_dict()},
            slot,
            "Close stability pool account and withdraw all funds",
            _ref_inputs("account", out_ref),
        )

    async def process_sp_request(
        self, address: str, asset: str, tx_hash: str, output_index: int
    ) -> UnsignedTx:
        wallet_credential(address)
        validate_asset(asset, self._assets)
        out_ref = make_out_ref(tx_hash, output_index)

        locator = await self.runtime.locator()
        account, pool, gov, iasset, collector, slot = await gather_all(
            locator.fetch_sp_account(out_ref),
            locator.find_stability_pool(asset),
            locator.find_governance(),
            locator.find_iasset(asset),
            locator.find_collector(),
            locator.backend.current_slot(),
        )
        _require_asset(account.datum.asset_symbol, asset, "Stability pool account")

        return await self._draft(
            "process_sp_request",
            address,
            {
                "account": account.record,
                "stabilityPool": pool,
                "governance": gov,
                "iasset": iasset.record,
                "collector": collector,
            },
            {"asset": asset, "account": out_ref.to_dict()},
            slot,
            f"Process stability pool request for {asset}",
            {"asset": asset, **_ref_inputs("account", out_ref)},
        )

    async def annul_sp_request(
        self, address: str, tx_hash: str, output_index: int
    ) -> UnsignedTx:
        credential = wallet_credential(address)
        out_ref = make_out_ref(tx_hash, output_index)

        locator = await self.runtime.locator()
        account, slot = await gather_all(
            locator.fetch_sp_account(out_ref),
            locator.backend.current_slot(),
        )
        _require_owner(account.datum.owner_credential, credential, "Stability pool account")

        return await self._draft(
            "annul_sp_request",
            address,
            {"account": account.record},
            {"account": out_ref.to_dict()},
            slot,
            "Cancel pending stability pool request",
            _ref_inputs("account", out_ref),
        )

    # -----------------------------------------------------------------------
    # INDY staking
    # -----------------------------------------------------------------------

    async def open_staking_position(self, address: str, amount: str) -> UnsignedTx:
        wallet_credential(address)
        value = parse_amount(amount)
        _require_positive(value, "amount")

        locator = await self.runtime.locator()
        manager, slot = await gather_all(
            locator.find_staking_manager(),
            locator.backend.current_slot(),
        )

        return await self._draft(
            "open_staking_position",
            address,
            {"stakingManager": manager},
            {"amount": str(value)},
            slot,
            "Create a new INDY staking position",
            {"amount": str(value)},
        )

    async def adjust_staking_position(
        self, address: str, tx_hash: str, output_index: int, amount: str
    ) -> UnsignedTx:
        wallet_credential(address)
        out_ref = make_out_ref(tx_hash, output_index)
        value = parse_amount(amount, signed=True)
        _require_nonzero(value, "amount")

        locator = await self.runtime.locator()
        manager, position, slot = await gather_all(
            locator.find_staking_manager(),
            locator.fetch_staking_position(out_ref),
            locator.backend.current_slot(),
        )

        return await self._draft(
            "adjust_staking_position",
            address,
            {"stakingManager": manager, "position": position},
            {"position": out_ref.to_dict(), "amount": str(value)},
            slot,
            "Adjust an existing INDY staking position",
            {"amount": str(value), **_ref_inputs("position", out_ref)},
        )

    async def close_staking_position(
        self, address: str, tx_hash: str, output_index: int
    ) -> UnsignedTx:
        wallet_credential(address)
        out_ref = make_out_ref(tx_hash, output_index)

        locator = await self.runtime.locator()
        manager, position, slot = await gather_all(
            locator.find_staking_manager(),
            locator.fetch_staking_position(out_ref),
            locator.backend.current_slot(),
        )

        return await self._draft(
            "close_staking_position",
            address,
            {"stakingManager": manager, "position": position},
            {"position": out_ref.to_dict()},
            slot,
            "Close an INDY staking position and unstake all INDY",
            _ref_inputs("position", out_ref),
        )

    # -----------------------------------------------------------------------
    # Limited redemption positions
    # -----------------------------------------------------------------------

    async def open_lrp(
        self, address: str, asset: str, lovelaces_amount: str, max_price: str
    ) -> UnsignedTx:
        wallet_credential(address)
        validate_asset(asset, self._assets)
        lovelaces = parse_amount(lovelaces_amount, name="lovelacesAmount")
        price = parse_amount(max_price, name="maxPrice")
        _require_positive(lovelaces, "lovelacesAmount")
        _require_positive(price, "maxPrice")

        locator = await self.runtime.locator()
        iasset, slot = await gather_all(
            locator.find_iasset(asset),
            locator.backend.current_slot(),
        )

        return await self._draft(
            "open_lrp",
            address,
            {"iasset": iasset.record},
            {"asset": asset, "lovelacesAmount": str(lovelaces), "maxPrice": str(price)},
            slot,
            f"Open {asset} LRP with {lovelaces} lovelace",
            {"asset": asset, "lovelacesAmount": str(lovelaces), "maxPrice": str(price)},
        )

    async def _owned_lrp(
        self, locator: StateLocator, out_ref: OutRef, credential: str
    ) -> tuple[Located[LrpDatum], int]:
        lrp, slot = await gather_all(
            locator.fetch_decoded(out_ref, LrpDatum),
            locator.backend.current_slot(),
        )
        _require_owner(lrp.datum.owner_credential, credential, "LRP")
        return lrp, slot

    async def cancel_lrp(
        self, address: str, tx_hash: str, output_index: int
    ) -> UnsignedTx:
        credential = wallet_credential(address)
        out_ref = make_out_ref(tx_hash, output_index)
        locator = await self.runtime.locator()
        lrp, slot = await self._owned_lrp(locator, out_ref, credential)

        return await self._draft(
            "cancel_lrp",
            address,
            {"lrp": lrp.record},
            {"lrp": out_ref.to_dict()},
            slot,
            "Cancel an LRP position",
            _ref_inputs("lrp", out_ref),
        )

    async def claim_lrp(
        self, address: str, tx_hash: str, output_index: int
    ) -> UnsignedTx:
        credential = wallet_credential(address)
        out_ref = make_out_ref(tx_hash, output_index)
        locator = await self.runtime.locator()
        lrp, slot = await self._owned_lrp(locator, out_ref, credential)

        return await self._draft(
            "claim_lrp",
            address,
            {"lrp": lrp.record},
            {"lrp": out_ref.to_dict()},
            slot,
            "Claim iAssets from an LRP position",
            _ref_inputs("lrp", out_ref),
        )

    async def adjust_lrp(
        self,
        address: str,
        tx_hash: str,
        output_index: int,
        lovelaces_adjust_amount: str,
        new_max_price: str | None = None,
    ) -> UnsignedTx:
        credential = wallet_credential(address)
        out_ref = make_out_ref(tx_hash, output_index)
        adjust = parse_amount(
            lovelaces_adjust_amount, signed=True, name="lovelacesAdjustAmount"
        )
        new_price = None
        if new_max_price is not None:
            new_price = parse_amount(new_max_price, name="newMaxPrice")
            _require_positive(new_price, "newMaxPrice")
        if adjust == 0 and new_price is None:
            raise PreconditionFailedError(
                "Nothing to adjust: give a non-zero lovelace amount or a new max price"
            )

        locator = await self.runtime.locator()
        lrp, slot = await self._owned_lrp(locator, out_ref, credential)

        params: dict[str, Any] = {
            "lrp": out_ref.to_dict(),
            "lovelacesAdjustAmount": str(adjust),
        }
        inputs = {**_ref_inputs("lrp", out_ref), "lovelacesAdjustAmount": str(adjust)}
        if new_price is not None:
            params["newMaxPrice"] = str(new_price)
            inputs["newMaxPrice"] = str(new_price)

        return await self._draft(
            "adjust_lrp",
            address,
            {"lrp": lrp.record},
            params,
            slot,
            f"Adjust LRP by {adjust} lovelace",
            inputs,
        )

    async def redeem_lrp(
        self,
        address: str,
        redemptions: list[tuple[str, int, str]],
        price_oracle_ref: tuple[str, int],
        iasset_ref: tuple[str, int],
    ) -> UnsignedTx:
        wallet_credential(address)
        if not redemptions:
            raise PreconditionFailedError("At least one LRP is required to redeem against")
        lrp_refs: list[OutRef] = []
        amounts: list[int] = []
        for tx_hash, output_index, amount in redemptions:
            lrp_refs.append(make_out_ref(tx_hash, output_index))
            value = parse_amount(amount, name="iAssetAmount")
            _require_positive(value, "iAssetAmount")
            amounts.append(value)
        oracle_ref = make_out_ref(*price_oracle_ref)
        iasset_out_ref = make_out_ref(*iasset_ref)

        locator = await self.runtime.locator()
        *lrps, iasset, slot = await gather_all(
            *(locator.fetch_decoded(r, LrpDatum) for r in lrp_refs),
            locator.fetch_iasset(iasset_out_ref),
            locator.backend.current_slot(),
        )
        symbol = iasset.datum.content.symbol
        for lrp in lrps:
            _require_asset(lrp.datum.asset_symbol, symbol, "LRP")
        oracle = await locator.fetch_price_oracle(oracle_ref, iasset.datum.content)

        entries = [
            {**r.to_dict(), "iAssetAmount": str(a)} for r, a in zip(lrp_refs, amounts)
        ]
        return await self._draft(
            "redeem_lrp",
            address,
            {
                "lrps": tuple(lrp.record for lrp in lrps),
                "priceOracle": oracle.record,
                "iasset": iasset.record,
            },
            {
                "asset": symbol,
                "redemptions": entries,
                "priceOracle": oracle_ref.to_dict(),
                "iasset": iasset_out_ref.to_dict(),
            },
            slot,
            f"Redeem iAssets against {len(lrps)} LRP position(s)",
            {
                "redemptionLrps": json.dumps(entries),
                **_ref_inputs("priceOracle", oracle_ref),
                **_ref_inputs("iasset", iasset_out_ref),
            },
        )
