"""Data models, all frozen."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

LOVELACE = "lovelace"

T = TypeVar("T")


@dataclass(frozen=True)
class OutRef:
    """Reference to a single ledger output."""

    tx_hash: str
    output_index: int

    def __str__(self) -> str:
        return f"{self.tx_hash}#{self.output_index}"

    def to_dict(self) -> dict[str, Any]:
        return {"txHash": self.tx_hash, "outputIndex": self.output_index}


@dataclass(frozen=True)
class AssetClass:
    """Token class identified by policy id and token name, both hex."""

    currency_symbol: str
    token_name: str

    @property
    def unit(self) -> str:
        return self.currency_symbol + self.token_name


@dataclass(frozen=True)
class ProtocolRecord:
    """Point-in-time snapshot of a ledger output."""

    out_ref: OutRef
    address: str
    assets: dict[str, int] = field(default_factory=dict)
    datum: str | None = None

    def quantity(self, unit: str) -> int:
        return self.assets.get(unit, 0)

    def holds(self, unit: str) -> bool:
        return self.quantity(unit) > 0

    @property
    def lovelace(self) -> int:
        return self.quantity(LOVELACE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "txHash": self.out_ref.tx_hash,
            "outputIndex": self.out_ref.output_index,
            "address": self.address,
            "assets": {unit: str(qty) for unit, qty in self.assets.items()},
            "datum": self.datum,
        }


@dataclass(frozen=True)
class Located(Generic[T]):
    """A record together with its decoded datum."""

    record: ProtocolRecord
    datum: T


@dataclass(frozen=True)
class TxSummary:
    """Auditable description of a drafted transaction."""

    type: str
    description: str
    inputs: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "inputs": dict(self.inputs),
        }


@dataclass(frozen=True)
class AssemblyRequest:
    """Everything the assembly primitive needs to build one transaction."""

    operation: str
    owner_address: str
    records: dict[str, ProtocolRecord | tuple[ProtocolRecord, ...]]
    params: dict[str, Any]
    current_slot: int

    def to_dict(self) -> dict[str, Any]:
        records: dict[str, Any] = {}
        for role, value in self.records.items():
            if isinstance(value, tuple):
                records[role] = [r.to_dict() for r in value]
            else:
                records[role] = value.to_dict()
        return {
            "operation": self.operation,
            "ownerAddress": self.owner_address,
            "records": records,
            "params": self.params,
            "currentSlot": self.current_slot,
        }


@dataclass(frozen=True)
class AssembledTx:
    """Fee-computed transaction body returned by the assembly primitive."""

    cbor_hex: str
    tx_hash: str
    fee: int


@dataclass(frozen=True)
class UnsignedTx:
    """Unsigned artifact handed back to the caller for client-side signing."""

    unsigned_tx: str
    tx_hash: str
    fee: str
    summary: TxSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "unsignedTx": self.unsigned_tx,
            "txHash": self.tx_hash,
            "fee": self.fee,
            "summary": self.summary.to_dict(),
        }


class HealthTier(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    AT_RISK = "at-risk"
    LIQUIDATABLE = "liquidatable"


@dataclass(frozen=True)
class HealthClassification:
    ratio_percent: float
    tier: HealthTier


@dataclass(frozen=True)
class PositionHealth:
    """Health of a single CDP as reported by the analytics tool."""

    asset: str
    collateral_ada: float
    minted_tokens: float
    price_ada: float
    accrued_interest: int
    collateral_ratio: float
    maintenance_ratio: float
    liquidation_ratio: float
    status: HealthTier

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset": self.asset,
            "collateralAda": self.collateral_ada,
            "mintedTokens": self.minted_tokens,
            "priceAda": self.price_ada,
            "accruedInterest": self.accrued_interest,
            "collateralRatio": round(self.collateral_ratio, 2),
            "maintenanceRatio": self.maintenance_ratio,
            "liquidationRatio": self.liquidation_ratio,
            "status": self.status.value,
        }
