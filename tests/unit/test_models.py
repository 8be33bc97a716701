"""Unit tests for data models."""
from __future__ import annotations

import pytest

from indigo_mcp.models import (
    LOVELACE,
    AssemblyRequest,
    AssetClass,
    HealthTier,
    OutRef,
    PositionHealth,
    ProtocolRecord,
    TxSummary,
    UnsignedTx,
)

TX = "0f" * 32


class TestOutRef:
    def test_str(self) -> None:
        assert str(OutRef(TX, 2)) == f"{TX}#2"

    def test_hashable_and_equal(self) -> None:
        assert len({OutRef(TX, 0), OutRef(TX, 0), OutRef(TX, 1)}) == 2

    def test_frozen(self) -> None:
        ref = OutRef(TX, 0)
        with pytest.raises(AttributeError):
            ref.output_index = 1  # type: ignore[misc]


class TestProtocolRecord:
    def test_quantities(self) -> None:
        record = ProtocolRecord(OutRef(TX, 0), "addr1x", {LOVELACE: 5, "aa01": 1})
        assert record.lovelace == 5
        assert record.holds("aa01")
        assert not record.holds("bb02")
        assert record.quantity("bb02") == 0

    def test_to_dict_renders_quantities_as_strings(self) -> None:
        record = ProtocolRecord(OutRef(TX, 1), "addr1x", {LOVELACE: 10**20})
        data = record.to_dict()
        assert data["assets"] == {LOVELACE: str(10**20)}
        assert data["outputIndex"] == 1
        assert data["datum"] is None


class TestAssetClass:
    def test_unit_concatenates(self) -> None:
        assert AssetClass("ab" * 28, "6955534").unit == "ab" * 28 + "6955534"


class TestAssemblyRequest:
    def test_to_dict_flattens_record_roles(self) -> None:
        one = ProtocolRecord(OutRef(TX, 0), "addr1a")
        two = ProtocolRecord(OutRef(TX, 1), "addr1b")
        request = AssemblyRequest(
            operation="merge_cdps",
            owner_address="addr1owner",
            records={"iasset": one, "cdps": (one, two)},
            params={"asset": "iUSD"},
            current_slot=42,
        )
        data = request.to_dict()
        assert data["ownerAddress"] == "addr1owner"
        assert data["currentSlot"] == 42
        assert data["records"]["iasset"]["address"] == "addr1a"
        assert [r["outputIndex"] for r in data["records"]["cdps"]] == [0, 1]


class TestUnsignedTx:
    def test_to_dict(self) -> None:
        tx = UnsignedTx(
            unsigned_tx="84a4",
            tx_hash="ee" * 32,
            fee="170000",
            summary=TxSummary("open_cdp", "Open iUSD CDP", {"asset": "iUSD"}),
        )
        assert tx.to_dict() == {
            "unsignedTx": "84a4",
            "txHash": "ee" * 32,
            "fee": "170000",
            "summary": {
                "type": "open_cdp",
                "description": "Open iUSD CDP",
                "inputs": {"asset": "iUSD"},
            },
        }


class TestPositionHealth:
    def test_to_dict_rounds_ratio(self) -> None:
        health = PositionHealth(
            asset="iUSD",
            collateral_ada=300.0,
            minted_tokens=100.0,
            price_ada=1.0,
            accrued_interest=0,
            collateral_ratio=299.99999,
            maintenance_ratio=150.0,
            liquidation_ratio=110.0,
            status=HealthTier.SAFE,
        )
        data = health.to_dict()
        assert data["collateralRatio"] == 300.0
        assert data["status"] == "safe"
