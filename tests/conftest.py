"""Shared test fixtures and sample data."""
from __future__ import annotations

import asyncio
import textwrap
from pathlib import Path

import pytest
from pycardano import Address, Network, VerificationKeyHash

from indigo_mcp.chains.cardano.address import script_address
from indigo_mcp.config import AppConfig, AssemblerConfig, ChainConfig
from indigo_mcp.models import (
    LOVELACE,
    AssembledTx,
    AssemblyRequest,
    AssetClass,
    OutRef,
    ProtocolRecord,
)
from indigo_mcp.protocol.datums import (
    AccountContent,
    AccountSnapshot,
    ActiveInterestTracking,
    CdpContent,
    CdpDatum,
    Delisted,
    FrozenAccumulatedFees,
    IAssetContent,
    IAssetDatum,
    InterestOracleDatum,
    LrpDatum,
    Nothing,
    OnChainDecimal,
    Oracle,
    OracleNft,
    PlutusAssetClass,
    PriceOracleDatum,
    SomeBytes,
    StabilityPoolAccountDatum,
)
from indigo_mcp.protocol.params import ParamsCache, SystemParams
from indigo_mcp.services.runtime import BackendHandle, Runtime

# ---------------------------------------------------------------------------
# Identities
# ---------------------------------------------------------------------------

OWNER_PKH = "ab" * 28
OTHER_PKH = "cd" * 28
OWNER_ADDRESS = Address(
    payment_part=VerificationKeyHash(bytes.fromhex(OWNER_PKH)), network=Network.MAINNET
).encode()
OTHER_ADDRESS = Address(
    payment_part=VerificationKeyHash(bytes.fromhex(OTHER_PKH)), network=Network.MAINNET
).encode()

PRICE_ORACLE_POLICY = "c1" * 28
INTEREST_ORACLE_POLICY = "c2" * 28

SYSTEM_PARAMS = SystemParams(
    cdp_hash="a1" * 28,
    cdp_creator_hash="a2" * 28,
    collector_hash="a3" * 28,
    gov_hash="a4" * 28,
    treasury_hash="a5" * 28,
    stability_pool_hash="a6" * 28,
    staking_hash="a7" * 28,
    iasset_auth_token=AssetClass("b1" * 28, "494153534554"),
    cdp_creator_nft=AssetClass("b2" * 28, "43445043524541544f52"),
    gov_nft=AssetClass("b3" * 28, "474f56"),
    stability_pool_token=AssetClass("b4" * 28, ""),
    staking_manager_nft=AssetClass("b5" * 28, "5354414b494e47"),
)

NOW_MS = 1_700_000_000_000


def tx_hash(n: int) -> str:
    return f"{n:064x}"


def address_of(validator_hash: str) -> str:
    return script_address(validator_hash, "mainnet")


def price_nft(symbol: str) -> AssetClass:
    return AssetClass(PRICE_ORACLE_POLICY, symbol.encode().hex())


def interest_nft(symbol: str) -> AssetClass:
    return AssetClass(INTEREST_ORACLE_POLICY, symbol.encode().hex())


def _plutus_class(ac: AssetClass) -> PlutusAssetClass:
    return PlutusAssetClass(bytes.fromhex(ac.currency_symbol), bytes.fromhex(ac.token_name))


def _ocd(value: int) -> OnChainDecimal:
    return OnChainDecimal(value)


# ---------------------------------------------------------------------------
# Datum builders
# ---------------------------------------------------------------------------


def iasset_content(symbol: str = "iUSD", delisted: bool = False) -> IAssetContent:
    if delisted:
        price = Delisted(_ocd(1_500_000))
    else:
        price = Oracle(OracleNft(_plutus_class(price_nft(symbol))))
    return IAssetContent(
        asset_name=symbol.encode(),
        price=price,
        interest_oracle_nft=_plutus_class(interest_nft(symbol)),
        redemption_ratio=_ocd(200_000_000),
        maintenance_ratio=_ocd(150_000_000),
        liquidation_ratio=_ocd(110_000_000),
        debt_minting_fee=_ocd(5_000),
        liquidation_processing_fee=_ocd(20_000),
        stability_pool_withdrawal_fee=_ocd(5_000),
        redemption_reimbursement=_ocd(10_000),
        redemption_processing_fee=_ocd(10_000),
        interest_collector_portion=_ocd(100_000),
        next_iasset=Nothing(),
    )


def cdp_datum(
    owner: str | None = OWNER_PKH,
    asset: str = "iUSD",
    minted: int = 100_000_000,
    frozen: bool = False,
) -> CdpDatum:
    if frozen:
        fees = FrozenAccumulatedFees(1_000, 2_000)
    else:
        fees = ActiveInterestTracking(NOW_MS - 86_400_000, 10**18)
    return CdpDatum(
        CdpContent(
            owner=SomeBytes(bytes.fromhex(owner)) if owner else Nothing(),
            iasset=asset.encode(),
            minted_amount=minted,
            fees=fees,
        )
    )


def interest_oracle_datum(
    unitary_interest: int = 2 * 10**18,
    rate: int = 50_000,
    last_updated: int = NOW_MS - 3_600_000,
) -> InterestOracleDatum:
    return InterestOracleDatum(unitary_interest, _ocd(rate), last_updated)


def sp_account_datum(owner: str = OWNER_PKH, asset: str = "iUSD") -> StabilityPoolAccountDatum:
    return StabilityPoolAccountDatum(
        AccountContent(
            owner=bytes.fromhex(owner),
            asset=asset.encode(),
            snapshot=AccountSnapshot(10**18, 5_000_000, 0, 0, 0),
        )
    )


def lrp_datum(owner: str = OWNER_PKH, asset: str = "iUSD") -> LrpDatum:
    return LrpDatum(
        owner=bytes.fromhex(owner),
        iasset=asset.encode(),
        max_price=_ocd(1_200_000),
        lovelaces_to_spend=50_000_000,
    )


def record(
    n: int,
    address: str,
    assets: dict[str, int] | None = None,
    datum: str | None = None,
    index: int = 0,
) -> ProtocolRecord:
    return ProtocolRecord(
        out_ref=OutRef(tx_hash(n), index),
        address=address,
        assets={LOVELACE: 2_000_000, **(assets or {})},
        datum=datum,
    )


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeBackend:
    """In-memory ChainBackend; ``delay`` makes every call take that long."""

    def __init__(
        self, records: list[ProtocolRecord], slot: int = 123_456, delay: float = 0.0
    ) -> None:
        self.records = list(records)
        self.slot = slot
        self.delay = delay
        self.calls: list[str] = []

    async def _wait(self, call: str) -> None:
        self.calls.append(call)
        if self.delay:
            await asyncio.sleep(self.delay)

    async def utxos_at(
        self, address: str, unit: str | None = None
    ) -> list[ProtocolRecord]:
        await self._wait("utxos_at")
        return [
            r for r in self.records
            if r.address == address and (unit is None or r.holds(unit))
        ]

    async def utxos_by_unit(self, unit: str) -> list[ProtocolRecord]:
        await self._wait("utxos_by_unit")
        return [r for r in self.records if r.holds(unit)]

    async def utxo_by_out_ref(self, out_ref: OutRef) -> ProtocolRecord | None:
        await self._wait("utxo_by_out_ref")
        for r in self.records:
            if r.out_ref == out_ref:
                return r
        return None

    async def current_slot(self) -> int:
        await self._wait("current_slot")
        return self.slot


class RecordingAssembler:
    """TxAssembler that records every request and returns a canned draft."""

    def __init__(self, error: Exception | None = None) -> None:
        self.requests: list[AssemblyRequest] = []
        self.error = error

    async def complete(self, request: AssemblyRequest) -> AssembledTx:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return AssembledTx(cbor_hex="84a400", tx_hash="ee" * 32, fee=180_000)


class FakeIndexer:
    """Indexer that serves canned JSON per path and records POST payloads."""

    def __init__(self, responses: dict[str, object] | None = None) -> None:
        self.responses = responses or {}
        self.gets: list[tuple[str, dict | None]] = []
        self.posts: list[tuple[str, dict]] = []

    async def get(self, path: str, params: dict | None = None) -> object:
        self.gets.append((path, params))
        return self.responses[path]

    async def post(self, path: str, payload: dict) -> object:
        self.posts.append((path, payload))
        return self.responses[path]


# ---------------------------------------------------------------------------
# Protocol state fixtures
# ---------------------------------------------------------------------------

# Output references of the records in ``protocol_records``.
CDP_REF = OutRef(tx_hash(10), 0)
FROZEN_CDP_REF = OutRef(tx_hash(11), 0)
FROZEN_CDP_REF_2 = OutRef(tx_hash(12), 0)
SP_ACCOUNT_REF = OutRef(tx_hash(20), 0)
LRP_REF = OutRef(tx_hash(30), 0)
STAKING_POSITION_REF = OutRef(tx_hash(40), 0)
IASSET_REF = OutRef(tx_hash(1), 0)
PRICE_ORACLE_REF = OutRef(tx_hash(2), 0)
IBTC_IASSET_REF = OutRef(tx_hash(14), 0)


def protocol_records(symbol: str = "iUSD", delisted: bool = False) -> list[ProtocolRecord]:
    p = SYSTEM_PARAMS
    cdp_address = address_of(p.cdp_hash)
    sp_unit = p.stability_pool_token.currency_symbol + symbol.encode().hex()
    return [
        record(1, cdp_address, {p.iasset_auth_token.unit: 1},
               IAssetDatum(iasset_content(symbol, delisted)).to_cbor_hex()),
        record(14, cdp_address, {p.iasset_auth_token.unit: 1},
               IAssetDatum(iasset_content("iBTC")).to_cbor_hex()),
        record(2, "addr1oracle", {price_nft(symbol).unit: 1},
               PriceOracleDatum(_ocd(1_100_000), NOW_MS + 600_000).to_cbor_hex()),
        record(3, "addr1oracle", {interest_nft(symbol).unit: 1},
               interest_oracle_datum().to_cbor_hex()),
        record(4, address_of(p.collector_hash)),
        record(5, address_of(p.collector_hash)),
        record(6, address_of(p.treasury_hash)),
        record(7, address_of(p.gov_hash), {p.gov_nft.unit: 1}),
        record(8, address_of(p.cdp_creator_hash), {p.cdp_creator_nft.unit: 1}),
        record(9, address_of(p.stability_pool_hash), {sp_unit: 1}),
        record(13, address_of(p.staking_hash), {p.staking_manager_nft.unit: 1}),
        record(10, cdp_address, {LOVELACE: 300_000_000}, cdp_datum().to_cbor_hex()),
        record(11, cdp_address, {LOVELACE: 90_000_000},
               cdp_datum(owner=None, frozen=True).to_cbor_hex()),
        record(12, cdp_address, {LOVELACE: 80_000_000},
               cdp_datum(owner=None, frozen=True).to_cbor_hex()),
        record(20, address_of(p.stability_pool_hash), {}, sp_account_datum().to_cbor_hex()),
        record(30, "addr1lrp", {LOVELACE: 50_000_000}, lrp_datum().to_cbor_hex()),
        record(40, address_of(p.staking_hash)),
    ]


@pytest.fixture()
def app_config() -> AppConfig:
    return AppConfig(
        chain=ChainConfig(blockfrost_project_id="mainnetTESTKEY"),
        assembler=AssemblerConfig(url="https://assembler.example.com"),
    )


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend(protocol_records())


@pytest.fixture()
def assembler() -> RecordingAssembler:
    return RecordingAssembler()


@pytest.fixture()
def indexer() -> FakeIndexer:
    return FakeIndexer()


def make_runtime(
    config: AppConfig,
    backend: FakeBackend,
    assembler: RecordingAssembler,
    indexer: FakeIndexer | None = None,
) -> Runtime:
    async def load() -> SystemParams:
        return SYSTEM_PARAMS

    return Runtime(
        config,
        indexer=indexer or FakeIndexer(),
        params=ParamsCache(load),
        backend=BackendHandle(config, factory=lambda: backend),
        assembler=assembler,
    )


@pytest.fixture()
def runtime(
    app_config: AppConfig,
    backend: FakeBackend,
    assembler: RecordingAssembler,
    indexer: FakeIndexer,
) -> Runtime:
    return make_runtime(app_config, backend, assembler, indexer)


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    network: preprod
    indexer:
      base_url: "https://indexer.example.com/api/v1/"
      timeout: 10
    chain:
      blockfrost_project_id: "${TEST_BLOCKFROST_KEY}"
    protocol:
      params_ttl_seconds: 60
      assets: [iUSD, iBTC]
    assembler:
      url: "https://assembler.example.com"
    health:
      safety_multiplier: 2.0
    server:
      transport: streamable-http
      port: 9000
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
