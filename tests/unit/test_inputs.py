"""Unit tests for tool input parsing."""
from __future__ import annotations

import pytest

from conftest import OWNER_ADDRESS, OWNER_PKH

from indigo_mcp.errors import InvalidInputError, InvalidSelectorError, NotFoundError
from indigo_mcp.models import OutRef
from indigo_mcp.services.inputs import (
    make_out_ref,
    parse_amount,
    validate_asset,
    validate_page,
    wallet_credential,
)


class TestParseAmount:
    def test_unsigned(self) -> None:
        assert parse_amount("1500000") == 1_500_000

    def test_beyond_float_precision(self) -> None:
        assert parse_amount("123456789012345678901234567890") == 123456789012345678901234567890

    def test_signed_negative(self) -> None:
        assert parse_amount("-250", signed=True) == -250

    def test_signed_plus(self) -> None:
        assert parse_amount("+7", signed=True) == 7

    @pytest.mark.parametrize("value", ["-1", "1.5", "1e6", "", "abc", " "])
    def test_unsigned_rejects(self, value: str) -> None:
        with pytest.raises(InvalidInputError):
            parse_amount(value)

    @pytest.mark.parametrize("value", ["١٢٣", "１２", "1٣", "১"])
    @pytest.mark.parametrize("signed", [False, True])
    def test_non_ascii_digits_rejected(self, value: str, signed: bool) -> None:
        with pytest.raises(InvalidInputError):
            parse_amount(value, signed=signed)

    def test_error_names_the_field(self) -> None:
        with pytest.raises(InvalidInputError, match="mintAmount"):
            parse_amount("x", name="mintAmount")


class TestMakeOutRef:
    def test_lowercases_hash(self) -> None:
        assert make_out_ref("AB" * 32, 3) == OutRef("ab" * 32, 3)

    @pytest.mark.parametrize("tx_hash", ["", "ab" * 31, "zz" * 32])
    def test_bad_hash(self, tx_hash: str) -> None:
        with pytest.raises(InvalidInputError):
            make_out_ref(tx_hash, 0)

    def test_negative_index(self) -> None:
        with pytest.raises(InvalidInputError):
            make_out_ref("ab" * 32, -1)


class TestValidateAsset:
    def test_known(self) -> None:
        assert validate_asset("iUSD", ("iUSD", "iBTC")) == "iUSD"

    def test_unknown(self) -> None:
        with pytest.raises(NotFoundError, match="Asset iDOGE not found"):
            validate_asset("iDOGE", ("iUSD",))


class TestWalletCredential:
    def test_address(self) -> None:
        assert wallet_credential(OWNER_ADDRESS) == OWNER_PKH

    def test_raw_hash_not_accepted(self) -> None:
        with pytest.raises(InvalidSelectorError):
            wallet_credential(OWNER_PKH)


class TestValidatePage:
    @pytest.mark.parametrize(("limit", "offset"), [(1, 0), (500, 10)])
    def test_valid(self, limit: int, offset: int) -> None:
        validate_page(limit, offset)

    @pytest.mark.parametrize(("limit", "offset"), [(0, 0), (501, 0), (10, -1)])
    def test_invalid(self, limit: int, offset: int) -> None:
        with pytest.raises(InvalidInputError):
            validate_page(limit, offset)
