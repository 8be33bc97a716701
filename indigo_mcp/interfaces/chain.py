"""Chain backend protocol for ledger record access."""
from typing import Protocol

from ..models import OutRef, ProtocolRecord


class ChainBackend(Protocol):
    """Abstract interface for reading ledger outputs."""

    async def utxos_at(
        self, address: str, unit: str | None = None
    ) -> list[ProtocolRecord]: ...

    async def utxos_by_unit(self, unit: str) -> list[ProtocolRecord]: ...

    async def utxo_by_out_ref(self, out_ref: OutRef) -> ProtocolRecord | None: ...

    async def current_slot(self) -> int: ...
