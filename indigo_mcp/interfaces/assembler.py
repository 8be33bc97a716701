"""Transaction assembler protocol: opaque build-and-balance capability."""
from typing import Protocol

from ..models import AssembledTx, AssemblyRequest


class TxAssembler(Protocol):
    """Builds a fee-computed, unsigned transaction from resolved records."""

    async def complete(self, request: AssemblyRequest) -> AssembledTx: ...
