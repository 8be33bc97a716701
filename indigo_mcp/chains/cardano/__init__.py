"""Cardano chain access."""
from .address import extract_payment_credential, normalize_owners, script_address
from .blockfrost import BlockfrostClient

__all__ = [
    "BlockfrostClient",
    "extract_payment_credential",
    "normalize_owners",
    "script_address",
]
