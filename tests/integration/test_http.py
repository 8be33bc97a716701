"""Integration tests for the shared HTTP helper, with a mocked aiohttp session."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from indigo_mcp.errors import UpstreamError, UpstreamTimeoutError
from indigo_mcp.http import request_json, request_text

URL = "https://indexer.example.com/api/v1/assets/"


def _mock_session(
    status: int = 200,
    data: object = None,
    text: str = "",
    error: Exception | None = None,
):
    """Create a mock aiohttp session whose request() yields the given response."""
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=data)
    mock_response.text = AsyncMock(return_value=text)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = AsyncMock()
    if error:
        mock_session.request = MagicMock(side_effect=error)
    else:
        mock_session.request = MagicMock(return_value=mock_response)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)

    return mock_session


async def _call(session, **kwargs):
    with patch("indigo_mcp.http.aiohttp.ClientSession", return_value=session):
        with patch("indigo_mcp.http.aiohttp.TCPConnector"):
            return await request_json("GET", URL, timeout=5, **kwargs)


class TestRequestJson:
    @pytest.mark.asyncio
    async def test_returns_json_body(self) -> None:
        session = _mock_session(data=[{"name": "iUSD"}])
        assert await _call(session) == [{"name": "iUSD"}]

    @pytest.mark.asyncio
    async def test_passes_payload_and_headers(self) -> None:
        session = _mock_session(data={})
        await _call(session, headers={"project_id": "k"}, payload={"owners": []})

        args, kwargs = session.request.call_args
        assert args == ("GET", URL)
        assert kwargs["headers"] == {"project_id": "k"}
        assert kwargs["json"] == {"owners": []}

    @pytest.mark.asyncio
    async def test_404_allowed(self) -> None:
        session = _mock_session(status=404, text="not found")
        assert await _call(session, allow_404=True) is None

    @pytest.mark.asyncio
    async def test_404_not_allowed_raises(self) -> None:
        session = _mock_session(status=404, text="not found")
        with pytest.raises(UpstreamError, match="HTTP 404"):
            await _call(session)

    @pytest.mark.asyncio
    async def test_server_error_carries_body(self) -> None:
        session = _mock_session(status=502, text="bad gateway")
        with pytest.raises(UpstreamError, match="bad gateway"):
            await _call(session)

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        session = _mock_session(error=asyncio.TimeoutError())
        with pytest.raises(UpstreamTimeoutError, match="timed out"):
            await _call(session)

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        session = _mock_session(error=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(UpstreamError, match="refused"):
            await _call(session)


async def _call_text(session, **kwargs):
    with patch("indigo_mcp.http.aiohttp.ClientSession", return_value=session):
        with patch("indigo_mcp.http.aiohttp.TCPConnector"):
            return await request_text("POST", URL, timeout=5, **kwargs)


class TestRequestText:
    @pytest.mark.asyncio
    async def test_returns_status_and_body(self) -> None:
        session = _mock_session(text='{"txHash": "ee"}')
        assert await _call_text(session, payload={"operation": "x"}) == (200, '{"txHash": "ee"}')
        _, kwargs = session.request.call_args
        assert kwargs["json"] == {"operation": "x"}

    @pytest.mark.asyncio
    async def test_error_status_is_returned_not_raised(self) -> None:
        session = _mock_session(status=422, text='{"error": "Insufficient funds"}')
        status, body = await _call_text(session)
        assert status == 422
        assert "Insufficient funds" in body

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        session = _mock_session(error=asyncio.TimeoutError())
        with pytest.raises(UpstreamTimeoutError, match="timed out after 5s"):
            await _call_text(session)

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        session = _mock_session(error=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(UpstreamError, match="refused"):
            await _call_text(session)
