"""MCP tool surface over the read service and the transaction orchestrator."""
from __future__ import annotations

import functools
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, Field

from .errors import IndigoError
from .models import UnsignedTx
from .services import ReadService, Runtime, TransactionOrchestrator

logger = logging.getLogger(__name__)

ASSET_HELP = "iAsset symbol, e.g. iUSD, iBTC, iETH or iSOL"
ADDRESS_HELP = "Wallet bech32 address (addr1... or addr_test1...)"
OWNER_HELP = "Owner payment key hash (56-char hex) or bech32 address"
UNSIGNED_NOTE = " Returns an unsigned transaction (CBOR hex) for client-side signing."


class OutRefInput(BaseModel):
    tx_hash: str = Field(..., description="Transaction hash of the output")
    output_index: int = Field(..., ge=0, description="Output index within the transaction")


class LrpRedemptionInput(BaseModel):
    tx_hash: str = Field(..., description="Transaction hash of the LRP output")
    output_index: int = Field(..., ge=0, description="Output index of the LRP output")
    iasset_amount: str = Field(..., description="iAsset amount to redeem against this LRP")


def render(payload: Any) -> str:
    if isinstance(payload, UnsignedTx):
        payload = payload.to_dict()
    return json.dumps(payload, indent=2, default=str)


def error_result(action: str, error: Exception) -> dict[str, Any]:
    return {"isError": True, "message": f"Error {action}: {error}"}


def tool_boundary(action: str) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[str]]]:
    """Turn a tool coroutine's result or failure into a JSON text payload.

    Domain errors are reported as ``{"isError": true, "message": ...}``;
    anything unexpected is logged with its traceback and reported the same way.
    """

    def decorate(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[str]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> str:
            try:
                result = await func(*args, **kwargs)
            except IndigoError as e:
                logger.warning("Tool failed while %s: %s", action, e)
                return render(error_result(action, e))
            except Exception as e:
                logger.exception("Unexpected error while %s", action)
                return render(error_result(action, e))
            return render(result)

        return wrapper

    return decorate


def build_server(runtime: Runtime) -> FastMCP:
    """Create the FastMCP server and register every Indigo tool."""
    cfg = runtime.config.server
    server = FastMCP(cfg.name, host=cfg.host, port=cfg.port)
    reads = ReadService(runtime)
    txs = TransactionOrchestrator(runtime)

    # -----------------------------------------------------------------------
    # Assets and prices
    # -----------------------------------------------------------------------

    @server.tool(name="get_assets", description="Get all Indigo iAssets with prices and interest data")
    @tool_boundary("fetching assets")
    async def get_assets():
        return await reads.get_assets()

    @server.tool(name="get_asset", description="Get details for a specific Indigo iAsset")
    @tool_boundary("fetching asset")
    async def get_asset(asset: str = Field(..., description=ASSET_HELP)):
        return await reads.get_asset(asset)

    @server.tool(name="get_asset_price", description="Get the current price for a specific Indigo iAsset")
    @tool_boundary("fetching asset price")
    async def get_asset_price(asset: str = Field(..., description=ASSET_HELP)):
        return await reads.get_asset_price(asset)

    @server.tool(name="get_ada_price", description="Get the current ADA price in USD")
    @tool_boundary("fetching ADA price")
    async def get_ada_price():
        return await reads.get_ada_price()

    @server.tool(name="get_indy_price", description="Get the current INDY token price in ADA and USD")
    @tool_boundary("fetching INDY price")
    async def get_indy_price():
        return await reads.get_indy_price()

    # -----------------------------------------------------------------------
    # CDP reads and health
    # -----------------------------------------------------------------------

    @server.tool(name="get_all_cdps", description="Get all CDPs, optionally filtered by iAsset, paginated")
    @tool_boundary("fetching CDPs")
    async def get_all_cdps(
        asset: Optional[str] = Field(None, description=ASSET_HELP),
        limit: int = Field(50, description="Page size (1-500)"),
        offset: int = Field(0, description="Number of CDPs to skip"),
    ):
        return await reads.get_all_cdps(asset, limit, offset)

    @server.tool(name="get_cdps_by_owner", description="Get all CDPs for an owner (payment key hash or bech32 address)")
    @tool_boundary("fetching CDPs by owner")
    async def get_cdps_by_owner(owner: str = Field(..., description=OWNER_HELP)):
        return await reads.get_cdps_by_owner(owner)

    @server.tool(name="get_cdps_by_address", description="Get all CDPs for a Cardano bech32 address")
    @tool_boundary("fetching CDPs by address")
    async def get_cdps_by_address(address: str = Field(..., description=ADDRESS_HELP)):
        return await reads.get_cdps_by_address(address)

    @server.tool(
        name="analyze_cdp_health",
        description="Analyze collateral ratios and risk tiers (safe, warning, at-risk, liquidatable) of an owner's CDPs",
    )
    @tool_boundary("analyzing CDP health")
    async def analyze_cdp_health(owner: str = Field(..., description=OWNER_HELP)):
        return await reads.analyze_cdp_health(owner)

    # -----------------------------------------------------------------------
    # Stability pools, staking, redemptions
    # -----------------------------------------------------------------------

    @server.tool(name="get_stability_pools", description="Get the latest stability pool state for each iAsset")
    @tool_boundary("fetching stability pools")
    async def get_stability_pools():
        return await reads.get_stability_pools()

    @server.tool(
        name="get_stability_pool_accounts",
        description="Get all open stability pool accounts, optionally filtered by iAsset",
    )
    @tool_boundary("fetching stability pool accounts")
    async def get_stability_pool_accounts(asset: Optional[str] = Field(None, description=ASSET_HELP)):
        return await reads.get_stability_pool_accounts(asset)

    @server.tool(name="get_sp_accounts_by_owner", description="Get stability pool accounts for specific owners")
    @tool_boundary("fetching SP accounts by owner")
    async def get_sp_accounts_by_owner(owners: list[str] = Field(..., description="Payment key hashes or bech32 addresses")):
        return await reads.get_sp_accounts_by_owner(owners)

    @server.tool(name="get_staking_info", description="Get the current INDY staking manager state")
    @tool_boundary("fetching staking info")
    async def get_staking_info():
        return await reads.get_staking_info()

    @server.tool(name="get_staking_positions", description="Get all open INDY staking positions")
    @tool_boundary("fetching staking positions")
    async def get_staking_positions():
        return await reads.get_staking_positions()

    @server.tool(name="get_staking_positions_by_owner", description="Get INDY staking positions for specific owners")
    @tool_boundary("fetching staking positions by owner")
    async def get_staking_positions_by_owner(owners: list[str] = Field(..., description="Payment key hashes or bech32 addresses")):
        return await reads.get_staking_positions_by_owner(owners)

    @server.tool(name="get_staking_position_by_address", description="Get INDY staking positions for one Cardano address")
    @tool_boundary("fetching staking position by address")
    async def get_staking_position_by_address(address: str = Field(..., description=ADDRESS_HELP)):
        return await reads.get_staking_position_by_address(address)

    @server.tool(
        name="get_order_book",
        description="Get open limited redemption positions from the order book, optionally filtered by iAsset or owners",
    )
    @tool_boundary("fetching order book")
    async def get_order_book(
        asset: Optional[str] = Field(None, description=ASSET_HELP),
        owners: Optional[list[str]] = Field(None, description="Payment key hashes or bech32 addresses"),
    ):
        return await reads.get_order_book(asset, owners)

    @server.tool(
        name="get_redemption_orders",
        description="Get redemption orders, optionally filtered by timestamp or price range",
    )
    @tool_boundary("fetching redemption orders")
    async def get_redemption_orders(
        timestamp: Optional[int] = Field(None, description="Unix timestamp in milliseconds"),
        in_range: Optional[bool] = Field(None, description="Filter by price range"),
    ):
        return await reads.get_redemption_orders(timestamp, in_range)

    @server.tool(
        name="get_redemption_queue",
        description="Get the redemption queue for an iAsset, sorted by max price ascending",
    )
    @tool_boundary("fetching redemption queue")
    async def get_redemption_queue(asset: str = Field(..., description=ASSET_HELP)):
        return await reads.get_redemption_queue(asset)

    # -----------------------------------------------------------------------
    # Protocol
    # -----------------------------------------------------------------------

    @server.tool(name="get_collector_utxos", description="Get collector UTxOs for fee distribution")
    @tool_boundary("fetching collector UTxOs")
    async def get_collector_utxos(length: Optional[int] = Field(None, description="Maximum number of UTxOs to return")):
        return await reads.get_collector_utxos(length)

    @server.tool(name="get_protocol_params", description="Get the latest governance protocol parameters")
    @tool_boundary("fetching protocol params")
    async def get_protocol_params():
        return await reads.get_protocol_params()

    @server.tool(name="get_sync_status", description="Get indexer sync status")
    @tool_boundary("fetching sync status")
    async def get_sync_status():
        return await reads.get_sync_status()

    @server.tool(name="get_polls", description="Get all governance polls")
    @tool_boundary("fetching polls")
    async def get_polls():
        return await reads.get_polls()

    @server.tool(name="get_temperature_checks", description="Get temperature check polls")
    @tool_boundary("fetching temperature checks")
    async def get_temperature_checks():
        return await reads.get_temperature_checks()

    @server.tool(name="get_tvl", description="Get historical TVL data")
    @tool_boundary("fetching TVL")
    async def get_tvl():
        return await reads.get_tvl()

    @server.tool(name="get_apr_rewards", description="Get all APR reward records")
    @tool_boundary("fetching APR rewards")
    async def get_apr_rewards():
        return await reads.get_apr_rewards()

    @server.tool(name="get_apr_by_key", description="Get APR for one key, e.g. sp_iUSD_indy or stake_ada")
    @tool_boundary("fetching APR by key")
    async def get_apr_by_key(key: str = Field(..., description="APR key")):
        return await reads.get_apr_by_key(key)

    @server.tool(name="get_protocol_stats", description="Get aggregated protocol statistics")
    @tool_boundary("fetching protocol stats")
    async def get_protocol_stats():
        return await reads.get_protocol_stats()

    # -----------------------------------------------------------------------
    # CDP transactions
    # -----------------------------------------------------------------------

    @server.tool(name="open_cdp", description="Open a new CDP by depositing ADA and minting an iAsset." + UNSIGNED_NOTE)
    @tool_boundary("opening CDP")
    async def open_cdp(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        collateral_amount: str = Field(..., description="Collateral in lovelace"),
        mint_amount: str = Field(..., description="iAsset amount to mint in smallest unit"),
    ):
        return await txs.open_cdp(address, asset, collateral_amount, mint_amount)

    @server.tool(name="deposit_cdp", description="Deposit ADA collateral into a CDP." + UNSIGNED_NOTE)
    @tool_boundary("depositing to CDP")
    async def deposit_cdp(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        cdp_tx_hash: str = Field(..., description="Transaction hash of the CDP output"),
        cdp_output_index: int = Field(..., description="Output index of the CDP output"),
        amount: str = Field(..., description="Lovelace amount to deposit"),
    ):
        return await txs.deposit_cdp(address, asset, cdp_tx_hash, cdp_output_index, amount)

    @server.tool(name="withdraw_cdp", description="Withdraw ADA collateral from a CDP." + UNSIGNED_NOTE)
    @tool_boundary("withdrawing from CDP")
    async def withdraw_cdp(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        cdp_tx_hash: str = Field(..., description="Transaction hash of the CDP output"),
        cdp_output_index: int = Field(..., description="Output index of the CDP output"),
        amount: str = Field(..., description="Lovelace amount to withdraw"),
    ):
        return await txs.withdraw_cdp(address, asset, cdp_tx_hash, cdp_output_index, amount)

    @server.tool(name="mint_cdp", description="Mint more iAsset against an existing CDP." + UNSIGNED_NOTE)
    @tool_boundary("minting from CDP")
    async def mint_cdp(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        cdp_tx_hash: str = Field(..., description="Transaction hash of the CDP output"),
        cdp_output_index: int = Field(..., description="Output index of the CDP output"),
        amount: str = Field(..., description="iAsset amount to mint in smallest unit"),
    ):
        return await txs.mint_cdp(address, asset, cdp_tx_hash, cdp_output_index, amount)

    @server.tool(name="burn_cdp", description="Burn iAsset to reduce CDP debt." + UNSIGNED_NOTE)
    @tool_boundary("burning to CDP")
    async def burn_cdp(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        cdp_tx_hash: str = Field(..., description="Transaction hash of the CDP output"),
        cdp_output_index: int = Field(..., description="Output index of the CDP output"),
        amount: str = Field(..., description="iAsset amount to burn in smallest unit"),
    ):
        return await txs.burn_cdp(address, asset, cdp_tx_hash, cdp_output_index, amount)

    @server.tool(name="close_cdp", description="Close a CDP and reclaim its collateral." + UNSIGNED_NOTE)
    @tool_boundary("closing CDP")
    async def close_cdp(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        cdp_tx_hash: str = Field(..., description="Transaction hash of the CDP output"),
        cdp_output_index: int = Field(..., description="Output index of the CDP output"),
    ):
        return await txs.close_cdp(address, asset, cdp_tx_hash, cdp_output_index)

    @server.tool(name="redeem_cdp", description="Redeem iAssets against a CDP for its collateral." + UNSIGNED_NOTE)
    @tool_boundary("redeeming CDP")
    async def redeem_cdp(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        cdp_tx_hash: str = Field(..., description="Transaction hash of the CDP output"),
        cdp_output_index: int = Field(..., description="Output index of the CDP output"),
        amount: str = Field(..., description="iAsset amount to redeem in smallest unit"),
    ):
        return await txs.redeem_cdp(address, asset, cdp_tx_hash, cdp_output_index, amount)

    @server.tool(name="freeze_cdp", description="Freeze an undercollateralized CDP ahead of liquidation." + UNSIGNED_NOTE)
    @tool_boundary("freezing CDP")
    async def freeze_cdp(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        cdp_tx_hash: str = Field(..., description="Transaction hash of the CDP output"),
        cdp_output_index: int = Field(..., description="Output index of the CDP output"),
    ):
        return await txs.freeze_cdp(address, asset, cdp_tx_hash, cdp_output_index)

    @server.tool(name="liquidate_cdp", description="Liquidate a frozen CDP through the stability pool." + UNSIGNED_NOTE)
    @tool_boundary("liquidating CDP")
    async def liquidate_cdp(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        cdp_tx_hash: str = Field(..., description="Transaction hash of the CDP output"),
        cdp_output_index: int = Field(..., description="Output index of the CDP output"),
    ):
        return await txs.liquidate_cdp(address, asset, cdp_tx_hash, cdp_output_index)

    @server.tool(name="merge_cdps", description="Merge two or more frozen CDPs of one iAsset." + UNSIGNED_NOTE)
    @tool_boundary("merging CDPs")
    async def merge_cdps(
        address: str = Field(..., description=ADDRESS_HELP),
        cdp_out_refs: list[OutRefInput] = Field(..., description="CDP outputs to merge"),
    ):
        return await txs.merge_cdps(address, [(r.tx_hash, r.output_index) for r in cdp_out_refs])

    # -----------------------------------------------------------------------
    # Stability pool transactions
    # -----------------------------------------------------------------------

    @server.tool(name="create_sp_account", description="Create a stability pool account with an iAsset deposit." + UNSIGNED_NOTE)
    @tool_boundary("creating SP account")
    async def create_sp_account(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        amount: str = Field(..., description="iAsset amount to deposit in smallest unit"),
    ):
        return await txs.create_sp_account(address, asset, amount)

    @server.tool(name="adjust_sp_account", description="Deposit into or withdraw from a stability pool account." + UNSIGNED_NOTE)
    @tool_boundary("adjusting SP account")
    async def adjust_sp_account(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        account_tx_hash: str = Field(..., description="Transaction hash of the account output"),
        account_output_index: int = Field(..., description="Output index of the account output"),
        amount: str = Field(..., description="Positive to deposit, negative to withdraw, in smallest unit"),
    ):
        return await txs.adjust_sp_account(address, asset, account_tx_hash, account_output_index, amount)

    @server.tool(name="close_sp_account", description="Close a stability pool account and withdraw all funds." + UNSIGNED_NOTE)
    @tool_boundary("closing SP account")
    async def close_sp_account(
        address: str = Field(..., description=ADDRESS_HELP),
        account_tx_hash: str = Field(..., description="Transaction hash of the account output"),
        account_output_index: int = Field(..., description="Output index of the account output"),
    ):
        return await txs.close_sp_account(address, account_tx_hash, account_output_index)

    @server.tool(name="process_sp_request", description="Process a pending stability pool request." + UNSIGNED_NOTE)
    @tool_boundary("processing SP request")
    async def process_sp_request(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        account_tx_hash: str = Field(..., description="Transaction hash of the account output"),
        account_output_index: int = Field(..., description="Output index of the account output"),
    ):
        return await txs.process_sp_request(address, asset, account_tx_hash, account_output_index)

    @server.tool(name="annul_sp_request", description="Cancel a pending stability pool request." + UNSIGNED_NOTE)
    @tool_boundary("annulling SP request")
    async def annul_sp_request(
        address: str = Field(..., description=ADDRESS_HELP),
        account_tx_hash: str = Field(..., description="Transaction hash of the account output"),
        account_output_index: int = Field(..., description="Output index of the account output"),
    ):
        return await txs.annul_sp_request(address, account_tx_hash, account_output_index)

    # -----------------------------------------------------------------------
    # Staking transactions
    # -----------------------------------------------------------------------

    @server.tool(name="open_staking_position", description="Stake INDY in a new staking position." + UNSIGNED_NOTE)
    @tool_boundary("opening staking position")
    async def open_staking_position(
        address: str = Field(..., description=ADDRESS_HELP),
        amount: str = Field(..., description="INDY amount to stake in smallest unit"),
    ):
        return await txs.open_staking_position(address, amount)

    @server.tool(name="adjust_staking_position", description="Stake more INDY or unstake part of a position." + UNSIGNED_NOTE)
    @tool_boundary("adjusting staking position")
    async def adjust_staking_position(
        address: str = Field(..., description=ADDRESS_HELP),
        position_tx_hash: str = Field(..., description="Transaction hash of the staking position output"),
        position_output_index: int = Field(..., description="Output index of the staking position output"),
        amount: str = Field(..., description="Positive to stake more, negative to unstake"),
    ):
        return await txs.adjust_staking_position(address, position_tx_hash, position_output_index, amount)

    @server.tool(name="close_staking_position", description="Close a staking position and unstake all INDY." + UNSIGNED_NOTE)
    @tool_boundary("closing staking position")
    async def close_staking_position(
        address: str = Field(..., description=ADDRESS_HELP),
        position_tx_hash: str = Field(..., description="Transaction hash of the staking position output"),
        position_output_index: int = Field(..., description="Output index of the staking position output"),
    ):
        return await txs.close_staking_position(address, position_tx_hash, position_output_index)

    # -----------------------------------------------------------------------
    # Limited redemption position transactions
    # -----------------------------------------------------------------------

    @server.tool(name="open_lrp", description="Open a limited redemption position with ADA." + UNSIGNED_NOTE)
    @tool_boundary("opening LRP")
    async def open_lrp(
        address: str = Field(..., description=ADDRESS_HELP),
        asset: str = Field(..., description=ASSET_HELP),
        lovelaces_amount: str = Field(..., description="ADA in lovelace to deposit"),
        max_price: str = Field(..., description="Max price as an on-chain integer (value x 10^6)"),
    ):
        return await txs.open_lrp(address, asset, lovelaces_amount, max_price)

    @server.tool(name="cancel_lrp", description="Cancel a limited redemption position." + UNSIGNED_NOTE)
    @tool_boundary("cancelling LRP")
    async def cancel_lrp(
        address: str = Field(..., description=ADDRESS_HELP),
        lrp_tx_hash: str = Field(..., description="Transaction hash of the LRP output"),
        lrp_output_index: int = Field(..., description="Output index of the LRP output"),
    ):
        return await txs.cancel_lrp(address, lrp_tx_hash, lrp_output_index)

    @server.tool(name="adjust_lrp", description="Add or remove ADA from an LRP, optionally changing its max price." + UNSIGNED_NOTE)
    @tool_boundary("adjusting LRP")
    async def adjust_lrp(
        address: str = Field(..., description=ADDRESS_HELP),
        lrp_tx_hash: str = Field(..., description="Transaction hash of the LRP output"),
        lrp_output_index: int = Field(..., description="Output index of the LRP output"),
        lovelaces_adjust_amount: str = Field(..., description="Positive to add, negative to remove"),
        new_max_price: Optional[str] = Field(None, description="New max price as an on-chain integer"),
    ):
        return await txs.adjust_lrp(
            address, lrp_tx_hash, lrp_output_index, lovelaces_adjust_amount, new_max_price
        )

    @server.tool(name="claim_lrp", description="Claim iAssets received by a limited redemption position." + UNSIGNED_NOTE)
    @tool_boundary("claiming LRP")
    async def claim_lrp(
        address: str = Field(..., description=ADDRESS_HELP),
        lrp_tx_hash: str = Field(..., description="Transaction hash of the LRP output"),
        lrp_output_index: int = Field(..., description="Output index of the LRP output"),
    ):
        return await txs.claim_lrp(address, lrp_tx_hash, lrp_output_index)

    @server.tool(name="redeem_lrp", description="Redeem iAssets against one or more limited redemption positions." + UNSIGNED_NOTE)
    @tool_boundary("redeeming LRP")
    async def redeem_lrp(
        address: str = Field(..., description=ADDRESS_HELP),
        redemption_lrps: list[LrpRedemptionInput] = Field(..., description="LRP outputs and amounts"),
        price_oracle_tx_hash: str = Field(..., description="Transaction hash of the price oracle output"),
        price_oracle_output_index: int = Field(..., description="Output index of the price oracle output"),
        iasset_tx_hash: str = Field(..., description="Transaction hash of the iAsset output"),
        iasset_output_index: int = Field(..., description="Output index of the iAsset output"),
    ):
        return await txs.redeem_lrp(
            address,
            [(r.tx_hash, r.output_index, r.iasset_amount) for r in redemption_lrps],
            (price_oracle_tx_hash, price_oracle_output_index),
            (iasset_tx_hash, iasset_output_index),
        )

    logger.info("Registered Indigo tools on %s", cfg.name)
    return server
