"""Protocol interfaces for the Indigo tool server."""
from .assembler import TxAssembler
from .chain import ChainBackend
from .indexer import Indexer

__all__ = ["ChainBackend", "Indexer", "TxAssembler"]
