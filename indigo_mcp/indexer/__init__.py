"""Indigo analytics indexer access."""
from .client import IndexerClient

__all__ = ["IndexerClient"]
