"""Owner credential normalization and validator address derivation."""
from __future__ import annotations

import re

from pycardano import Address, Network, ScriptHash
from pycardano.exception import PyCardanoException

from ...errors import InvalidSelectorError

_CREDENTIAL_RE = re.compile(r"^[0-9a-fA-F]{56}$")
_ADDRESS_PREFIXES = ("addr1", "addr_test1")


def extract_payment_credential(value: str) -> str:
    """Return the canonical 56-hex payment credential for ``value``.

    Accepts a raw credential (any case) or a Shelley bech32 address
    (``addr1...`` / ``addr_test1...``). Both forms normalize to lowercase hex.
    """
    value = value.strip()
    if _CREDENTIAL_RE.match(value):
        return value.lower()

    if value.startswith(_ADDRESS_PREFIXES):
        try:
            address = Address.decode(value)
        except (PyCardanoException, ValueError, TypeError) as e:
            raise InvalidSelectorError(
                f"Invalid address or payment key hash: {value}"
            ) from e
        if address.payment_part is None:
            raise InvalidSelectorError(f"Address has no payment credential: {value}")
        return address.payment_part.payload.hex()

    raise InvalidSelectorError(f"Invalid address or payment key hash: {value}")


def normalize_owners(values: list[str]) -> list[str]:
    """Normalize a list of owner selectors; any invalid entry rejects the list."""
    return [extract_payment_credential(v) for v in values]


def pycardano_network(network: str) -> Network:
    return Network.MAINNET if network == "mainnet" else Network.TESTNET


def script_address(validator_hash: str, network: str) -> str:
    """Enterprise address of a Plutus validator on ``network``."""
    address = Address(
        payment_part=ScriptHash(bytes.fromhex(validator_hash)),
        network=pycardano_network(network),
    )
    return address.encode()
