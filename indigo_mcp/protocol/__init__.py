"""Indigo protocol state: datums, parameters, record location, interest and health."""
from .health import classify
from .interest import accrue
from .locator import RecordPolicy, StateLocator
from .params import ParamsCache, SystemParams

__all__ = [
    "ParamsCache",
    "RecordPolicy",
    "StateLocator",
    "SystemParams",
    "accrue",
    "classify",
]
