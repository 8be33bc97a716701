"""Remote transaction assembly service client."""
from __future__ import annotations

import json
import logging
from typing import Any

from ..config import AssemblerConfig
from ..errors import AssemblyError, ConfigurationError
from ..http import request_text
from ..models import AssembledTx, AssemblyRequest

logger = logging.getLogger(__name__)


def _parse_body(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


class RemoteAssembler:
    """Posts resolved record sets to an assembly service and reads back the draft.

    The service answers ``{"cbor" | "unsignedTx", "txHash", "fee"}`` on success
    and ``{"error" | "message": ...}`` with a non-2xx status on failure.
    """

    def __init__(self, config: AssemblerConfig) -> None:
        self.url = config.url.rstrip("/")
        self.timeout = config.timeout

    async def complete(self, request: AssemblyRequest) -> AssembledTx:
        if not self.url:
            raise ConfigurationError(
                "INDIGO_ASSEMBLER_URL environment variable is required for write operations"
            )

        logger.info("Assembling %s for %s", request.operation, request.owner_address)
        status, text = await request_text(
            "POST",
            f"{self.url}/complete",
            timeout=self.timeout,
            payload=request.to_dict(),
        )

        body = _parse_body(text)
        if status >= 400:
            message = None
            if isinstance(body, dict):
                message = body.get("error") or body.get("message")
            raise AssemblyError(message or text or f"Assembly failed with HTTP {status}")

        try:
            return AssembledTx(
                cbor_hex=body.get("cbor") or body["unsignedTx"],
                tx_hash=body["txHash"],
                fee=int(body["fee"]),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise AssemblyError(f"Malformed assembly response: {body!r}") from e
