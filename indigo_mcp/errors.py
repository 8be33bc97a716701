"""Error taxonomy shared by the locator, orchestrator and tool boundary."""
from __future__ import annotations


class IndigoError(Exception):
    """Base class for every error reported to tool callers."""


class NotFoundError(IndigoError):
    """A selector matched zero records (unknown asset, no position, spent ref)."""


class ProtocolIntegrityError(IndigoError):
    """On-chain state violates a protocol invariant (e.g. missing singleton)."""


class AmbiguousRecordError(ProtocolIntegrityError):
    """A singleton or per-asset selector matched more than one record."""

    def __init__(self, message: str, found: int) -> None:
        super().__init__(message)
        self.found = found


class InvalidInputError(IndigoError):
    """Malformed tool input, rejected before any network call."""


class InvalidSelectorError(InvalidInputError):
    """Credential or address that fails canonicalization."""


class PreconditionFailedError(IndigoError):
    """A domain rule blocks the requested mutation."""


class DelistedAssetError(PreconditionFailedError):
    """The iAsset price source is Delisted; CDP mutations are forbidden."""


class UpstreamError(IndigoError):
    """The indexer or chain backend failed."""


class UpstreamTimeoutError(UpstreamError):
    """The indexer or chain backend exceeded its time budget."""


class ConfigurationError(IndigoError):
    """A required credential or endpoint is not configured."""


class AssemblyError(IndigoError):
    """The transaction assembly primitive rejected the request."""


class DecodeError(IndigoError):
    """Structured data does not match the requested datum schema."""
