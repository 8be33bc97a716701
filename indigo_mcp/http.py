"""Shared aiohttp request helpers with a time bound and no automatic retries."""
from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any, Awaitable, Callable

import aiohttp
import certifi

from .errors import UpstreamError, UpstreamTimeoutError

logger = logging.getLogger(__name__)


async def _send(
    method: str,
    url: str,
    read: Callable[[aiohttp.ClientResponse], Awaitable[Any]],
    *,
    timeout: float,
    headers: dict[str, str] | None,
    params: dict[str, Any] | None,
    payload: Any,
) -> Any:
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(ssl=ssl_context)

    try:
        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                return await read(response)
    except asyncio.TimeoutError as e:
        raise UpstreamTimeoutError(
            f"Request to {url} timed out after {timeout}s"
        ) from e
    except aiohttp.ClientError as e:
        raise UpstreamError(f"Request to {url} failed: {e}") from e


async def request_json(
    method: str,
    url: str,
    *,
    timeout: float,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    payload: Any = None,
    allow_404: bool = False,
) -> Any:
    """Perform one HTTP request and return the decoded JSON body.

    Returns ``None`` for a 404 when ``allow_404`` is set. Any other non-2xx
    status raises UpstreamError carrying the upstream body; a timeout raises
    UpstreamTimeoutError.
    """

    async def read(response: aiohttp.ClientResponse) -> Any:
        if response.status == 404 and allow_404:
            logger.debug("%s %s -> 404", method, url)
            return None
        if response.status >= 400:
            body = await response.text()
            raise UpstreamError(f"HTTP {response.status} from {url}: {body[:500]}")
        return await response.json(content_type=None)

    return await _send(
        method, url, read, timeout=timeout, headers=headers, params=params, payload=payload
    )


async def request_text(
    method: str,
    url: str,
    *,
    timeout: float,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    payload: Any = None,
) -> tuple[int, str]:
    """Perform one HTTP request and return ``(status, body)`` whatever the status.

    Callers that interpret error bodies themselves use this; transport failures
    and timeouts still raise UpstreamError and UpstreamTimeoutError.
    """

    async def read(response: aiohttp.ClientResponse) -> tuple[int, str]:
        return response.status, await response.text()

    return await _send(
        method, url, read, timeout=timeout, headers=headers, params=params, payload=payload
    )
