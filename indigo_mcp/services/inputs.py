"""Tool input parsing: amounts, output references, asset symbols, wallet addresses."""
from __future__ import annotations

import re
from typing import Iterable

from ..chains.cardano.address import extract_payment_credential
from ..errors import InvalidInputError, InvalidSelectorError, NotFoundError
from ..models import OutRef

_AMOUNT_RE = re.compile(r"^[+-]?[0-9]+$")
_UNSIGNED_RE = re.compile(r"^[0-9]+$")
_TX_HASH_RE = re.compile(r"^[0-9a-fA-F]{64}$")

MAX_PAGE_SIZE = 500


def parse_amount(value: str, *, signed: bool = False, name: str = "amount") -> int:
    """Parse a decimal-string integer without going through float."""
    text = str(value).strip()
    pattern = _AMOUNT_RE if signed else _UNSIGNED_RE
    if not pattern.match(text):
        kind = "a signed" if signed else "an unsigned"
        raise InvalidInputError(f"{name} must be {kind} integer string, got {value!r}")
    return int(text)


def make_out_ref(tx_hash: str, output_index: int) -> OutRef:
    if not _TX_HASH_RE.match(tx_hash or ""):
        raise InvalidInputError(f"Invalid transaction hash: {tx_hash!r}")
    if output_index < 0:
        raise InvalidInputError(f"Output index must be non-negative, got {output_index}")
    return OutRef(tx_hash.lower(), output_index)


def validate_asset(asset: str, known: Iterable[str]) -> str:
    if asset not in tuple(known):
        raise NotFoundError(f"Asset {asset} not found")
    return asset


def wallet_credential(address: str) -> str:
    """Payment credential of a wallet address; raw key hashes are not accepted here."""
    if not address.strip().startswith(("addr1", "addr_test1")):
        raise InvalidSelectorError(
            f"A bech32 wallet address (addr1... or addr_test1...) is required, got {address!r}"
        )
    return extract_payment_credential(address)


def validate_page(limit: int, offset: int) -> None:
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_SIZE}, got {limit}")
    if offset < 0:
        raise InvalidInputError(f"offset must be non-negative, got {offset}")
