"""Indigo on-chain datum schemas and the decode / decode-or-skip helpers.

Every schema is a pycardano ``PlutusData`` dataclass; constructor indices
follow the deployed Indigo v2 validators. ``decode`` is strict and raises
DecodeError for anything that is not the requested schema. Scans use
``try_decode``, which turns a DecodeError (and only a DecodeError) into None.
"""
from dataclasses import dataclass
from typing import TypeVar, Union

from pycardano import PlutusData
from pycardano.exception import DeserializeException

from ..errors import DecodeError
from ..models import AssetClass

D = TypeVar("D", bound=PlutusData)

DECIMAL_UNIT = 10**6

# ---------------------------------------------------------------------------
# Shared primitives
# ---------------------------------------------------------------------------


@dataclass
class OnChainDecimal(PlutusData):
    """Fixed-point decimal stored as value x 10^6."""

    CONSTR_ID = 0
    value: int

    def to_float(self) -> float:
        return self.value / DECIMAL_UNIT


@dataclass
class PlutusAssetClass(PlutusData):
    CONSTR_ID = 0
    currency_symbol: bytes
    token_name: bytes

    def to_asset_class(self) -> AssetClass:
        return AssetClass(self.currency_symbol.hex(), self.token_name.hex())


@dataclass
class SomeBytes(PlutusData):
    CONSTR_ID = 0
    value: bytes


@dataclass
class Nothing(PlutusData):
    CONSTR_ID = 1


MaybeBytes = Union[SomeBytes, Nothing]


def maybe_value(maybe: MaybeBytes) -> bytes | None:
    return maybe.value if isinstance(maybe, SomeBytes) else None


# ---------------------------------------------------------------------------
# CDP address: CDP positions and iAsset registry entries
# ---------------------------------------------------------------------------


@dataclass
class ActiveInterestTracking(PlutusData):
    CONSTR_ID = 0
    last_settled: int
    unitary_interest_snapshot: int


@dataclass
class FrozenAccumulatedFees(PlutusData):
    CONSTR_ID = 1
    lovelaces_treasury: int
    lovelaces_indy_stakers: int


@dataclass
class CdpContent(PlutusData):
    CONSTR_ID = 0
    owner: MaybeBytes
    iasset: bytes
    minted_amount: int
    fees: Union[ActiveInterestTracking, FrozenAccumulatedFees]

    @property
    def owner_credential(self) -> str | None:
        owner = maybe_value(self.owner)
        return owner.hex() if owner is not None else None

    @property
    def asset_symbol(self) -> str:
        return self.iasset.decode()

    @property
    def is_frozen(self) -> bool:
        return isinstance(self.fees, FrozenAccumulatedFees)


@dataclass
class CdpDatum(PlutusData):
    CONSTR_ID = 0
    content: CdpContent


@dataclass
class Delisted(PlutusData):
    CONSTR_ID = 0
    last_price: OnChainDecimal


@dataclass
class OracleNft(PlutusData):
    CONSTR_ID = 0
    asset_class: PlutusAssetClass


@dataclass
class Oracle(PlutusData):
    CONSTR_ID = 1
    nft: OracleNft


@dataclass
class IAssetContent(PlutusData):
    CONSTR_ID = 0
    asset_name: bytes
    price: Union[Delisted, Oracle]
    interest_oracle_nft: PlutusAssetClass
    redemption_ratio: OnChainDecimal
    maintenance_ratio: OnChainDecimal
    liquidation_ratio: OnChainDecimal
    debt_minting_fee: OnChainDecimal
    liquidation_processing_fee: OnChainDecimal
    stability_pool_withdrawal_fee: OnChainDecimal
    redemption_reimbursement: OnChainDecimal
    redemption_processing_fee: OnChainDecimal
    interest_collector_portion: OnChainDecimal
    next_iasset: MaybeBytes

    @property
    def symbol(self) -> str:
        return self.asset_name.decode()

    @property
    def is_delisted(self) -> bool:
        return isinstance(self.price, Delisted)

    def price_oracle_nft(self) -> AssetClass | None:
        """Oracle NFT for a listed asset, None when delisted."""
        if isinstance(self.price, Oracle):
            return self.price.nft.asset_class.to_asset_class()
        return None


@dataclass
class IAssetDatum(PlutusData):
    CONSTR_ID = 1
    content: IAssetContent


# ---------------------------------------------------------------------------
# Oracles
# ---------------------------------------------------------------------------


@dataclass
class InterestOracleDatum(PlutusData):
    CONSTR_ID = 0
    unitary_interest: int
    interest_rate: OnChainDecimal
    last_updated: int


@dataclass
class PriceOracleDatum(PlutusData):
    CONSTR_ID = 0
    price: OnChainDecimal
    expiration: int


# ---------------------------------------------------------------------------
# Stability pool accounts and redemption positions
# ---------------------------------------------------------------------------


@dataclass
class AccountSnapshot(PlutusData):
    CONSTR_ID = 0
    product: int
    deposit: int
    sum: int
    epoch: int
    scale: int


@dataclass
class AccountContent(PlutusData):
    CONSTR_ID = 0
    owner: bytes
    asset: bytes
    snapshot: AccountSnapshot


@dataclass
class StabilityPoolAccountDatum(PlutusData):
    CONSTR_ID = 1
    content: AccountContent

    @property
    def owner_credential(self) -> str:
        return self.content.owner.hex()

    @property
    def asset_symbol(self) -> str:
        return self.content.asset.decode()


@dataclass
class LrpDatum(PlutusData):
    CONSTR_ID = 0
    owner: bytes
    iasset: bytes
    max_price: OnChainDecimal
    lovelaces_to_spend: int

    @property
    def owner_credential(self) -> str:
        return self.owner.hex()

    @property
    def asset_symbol(self) -> str:
        return self.iasset.decode()


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def decode(kind: type[D], raw: str | bytes | None) -> D:
    """Decode ``raw`` CBOR as ``kind`` or raise DecodeError."""
    if raw is None or raw == "" or raw == b"":
        raise DecodeError(f"No datum to decode as {kind.__name__}")
    try:
        return kind.from_cbor(raw)
    except (DeserializeException, ValueError, TypeError) as e:
        raise DecodeError(f"Datum is not a valid {kind.__name__}: {e}") from e


def try_decode(kind: type[D], raw: str | bytes | None) -> D | None:
    """Decode-or-skip for record scans."""
    try:
        return decode(kind, raw)
    except DecodeError:
        return None
