"""Service modules"""
from .orchestrator import TransactionOrchestrator
from .reads import ReadService
from .runtime import BackendHandle, Runtime

__all__ = ["BackendHandle", "ReadService", "Runtime", "TransactionOrchestrator"]
