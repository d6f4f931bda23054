"""
Tests for dataverse_client.transport module.

Tests cover:
- Successful exchanges and response mapping
- Timeout and connection failures
- Per-request timeout overrides
- Session ownership and closing
"""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from dataverse_client.errors import NetworkError, RequestTimeoutError
from dataverse_client.transport import AiohttpTransport
from dataverse_client.types import HttpRequest

URL = "https://contoso.crm.dynamics.com/api/data/v9.2/contacts"


def _mock_session(status=200, body=b"{}", headers=None):
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.headers = headers or {"Content-Type": "application/json"}
    mock_response.read = AsyncMock(return_value=body)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = AsyncMock()
    mock_session.closed = False
    mock_session.request = MagicMock(return_value=mock_response)
    return mock_session


def _request(**kwargs):
    return HttpRequest(method="GET", url=URL, headers={"Accept": "application/json"}, **kwargs)


class TestSend:
    """Tests for AiohttpTransport.send."""

    async def test_successful_exchange(self):
        session = _mock_session(
            status=200, body=b'{"value": []}', headers={"OData-Version": "4.0"}
        )
        transport = AiohttpTransport(session=session)

        response = await transport.send(_request())

        assert response.status == 200
        assert response.body == b'{"value": []}'
        assert response.header("odata-version") == "4.0"

        session.request.assert_called_once()
        args, kwargs = session.request.call_args
        assert args == ("GET", URL)
        assert kwargs["headers"] == {"Accept": "application/json"}
        assert kwargs["data"] is None
        assert kwargs["timeout"].total == 120

    async def test_error_status_is_returned_not_raised(self):
        session = _mock_session(status=404, body=b'{"error": {}}')
        transport = AiohttpTransport(session=session)

        response = await transport.send(_request())

        assert response.status == 404
        assert not response.ok

    async def test_body_is_sent(self):
        session = _mock_session(status=204, body=b"")
        transport = AiohttpTransport(session=session)

        await transport.send(
            HttpRequest(method="POST", url=URL, headers={}, body=b'{"a": 1}')
        )

        assert session.request.call_args[1]["data"] == b'{"a": 1}'

    async def test_timeout_override(self):
        session = _mock_session()
        transport = AiohttpTransport(timeout_seconds=30, session=session)

        await transport.send(_request())
        await transport.send(_request(), timeout=5)

        first, second = session.request.call_args_list
        assert first[1]["timeout"].total == 30
        assert second[1]["timeout"].total == 5

    async def test_timeout_raises_request_timeout_error(self):
        session = _mock_session()
        session.request = MagicMock(side_effect=TimeoutError())
        transport = AiohttpTransport(session=session)

        with pytest.raises(RequestTimeoutError, match="Timeout after 7s") as exc_info:
            await transport.send(_request(), timeout=7)

        assert exc_info.value.context["timeout_seconds"] == 7
        assert exc_info.value.is_retryable

    async def test_connection_error_raises_network_error(self):
        session = _mock_session()
        session.request = MagicMock(
            side_effect=aiohttp.ClientConnectionError("Connection refused")
        )
        transport = AiohttpTransport(session=session)

        with pytest.raises(NetworkError, match="Connection error") as exc_info:
            await transport.send(_request())

        assert not isinstance(exc_info.value, RequestTimeoutError)
        assert isinstance(exc_info.value.cause, aiohttp.ClientConnectionError)


class TestLifecycle:
    """Tests for session ownership and closing."""

    async def test_external_session_not_closed(self):
        session = _mock_session()
        transport = AiohttpTransport(session=session)

        await transport.close()

        session.close.assert_not_called()
        assert transport.closed

    async def test_send_after_close_fails(self):
        transport = AiohttpTransport(session=_mock_session())
        await transport.close()

        with pytest.raises(NetworkError, match="closed"):
            await transport.send(_request())

    async def test_owned_session_created_and_closed(self):
        async with AiohttpTransport(max_connections=5) as transport:
            session = transport._session
            assert isinstance(session, aiohttp.ClientSession)
            assert session.connector.limit == 5
            assert session.connector.limit_per_host == 5

        assert session.closed
        assert transport.closed
