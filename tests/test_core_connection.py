"""
Tests for mcp_discovery._core.connection module.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from mcp import types as mcp_types

from mcp_discovery._core.connection import ConnectionMap, McpConnection
from mcp_discovery._core.transport import Transport
from mcp_discovery.protocol import ListToolsResponse, McpRequest
from mcp_discovery.types import TransportKind


@pytest.fixture
def sessions():
    """Patch ClientSession with a fake; yields created sessions and knobs."""
    created = []
    behavior = {"initialize": None}

    class FakeSession:
        def __init__(self, read_stream, write_stream, **kwargs):
            self.streams = (read_stream, write_stream)
            self.kwargs = kwargs
            self.initialize = AsyncMock(side_effect=behavior["initialize"])
            self.send_request = AsyncMock(return_value=MagicMock(name="response"))
            created.append(self)

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc_info):
            return False

    with patch("mcp_discovery._core.connection.ClientSession", FakeSession):
        yield SimpleNamespace(created=created, behavior=behavior)


@pytest.fixture
def transport_events():
    return []


@pytest.fixture
def transport(transport_events):
    @asynccontextmanager
    async def opener():
        transport_events.append("open")
        try:
            yield "read", "write"
        finally:
            transport_events.append("closed")

    return Transport(kind=TransportKind.STDIO, server_name="files", target="srv", opener=opener)


class TestConnect:
    """Tests for McpConnection.connect."""

    @pytest.mark.asyncio
    async def test_connect_and_close(self, sessions, transport, transport_events):
        connection = McpConnection("files", transport)
        await connection.connect(timeout=5.0)

        assert connection.is_connected
        session = sessions.created[0]
        session.initialize.assert_awaited_once()
        assert session.streams == ("read", "write")
        assert session.kwargs["read_timeout_seconds"] == timedelta(seconds=5.0)
        assert session.kwargs["client_info"].name == "mcp-discovery-client"
        assert connection.session is session

        await connection.close()

        assert connection.is_closed
        assert not connection.is_connected
        assert connection.session is None
        assert transport_events == ["open", "closed"]

    @pytest.mark.asyncio
    async def test_handshake_failure(self, sessions, transport, transport_events):
        sessions.behavior["initialize"] = ConnectionError("server exited")
        connection = McpConnection("files", transport)

        with pytest.raises(ConnectionError, match="server exited"):
            await connection.connect(timeout=5.0)

        assert connection.is_closed
        assert transport_events == ["open", "closed"]

    @pytest.mark.asyncio
    async def test_handshake_timeout(self, sessions, transport, transport_events):
        async def hang():
            await asyncio.Event().wait()

        sessions.behavior["initialize"] = hang
        connection = McpConnection("files", transport)

        with pytest.raises(asyncio.TimeoutError):
            await connection.connect(timeout=0.05)

        assert connection.is_closed
        assert transport_events == ["open", "closed"]

    @pytest.mark.asyncio
    async def test_closed_connection_cannot_reconnect(self, sessions, transport):
        connection = McpConnection("files", transport)
        await connection.connect(timeout=5.0)
        await connection.close()

        with pytest.raises(RuntimeError, match="cannot be reused"):
            await connection.connect(timeout=5.0)

    @pytest.mark.asyncio
    async def test_connect_twice(self, sessions, transport):
        connection = McpConnection("files", transport)
        await connection.connect(timeout=5.0)
        try:
            with pytest.raises(RuntimeError, match="already open"):
                await connection.connect(timeout=5.0)
        finally:
            await connection.close()


class TestRequest:
    """Tests for McpConnection.request."""

    @pytest.mark.asyncio
    async def test_request_before_connect(self, transport):
        connection = McpConnection("files", transport)
        with pytest.raises(RuntimeError, match="not open"):
            await connection.request("tools/list", None, ListToolsResponse)

    @pytest.mark.asyncio
    async def test_request_forwards_to_session(self, sessions, transport):
        connection = McpConnection("files", transport)
        await connection.connect(timeout=5.0)
        try:
            result = await connection.request("tools/list", None, ListToolsResponse)
            session = sessions.created[0]
            assert result is session.send_request.return_value
            session.send_request.assert_awaited_once_with(
                McpRequest(method="tools/list", params=None),
                ListToolsResponse,
                request_read_timeout_seconds=None,
            )
        finally:
            await connection.close()

    @pytest.mark.asyncio
    async def test_request_timeout(self, sessions, transport):
        connection = McpConnection("files", transport)
        await connection.connect(timeout=5.0)
        try:
            await connection.request("tools/call", {"name": "x"}, ListToolsResponse, timeout=2.0)
            _, kwargs = sessions.created[0].send_request.call_args
            assert kwargs["request_read_timeout_seconds"] == timedelta(seconds=2.0)
        finally:
            await connection.close()


class TestMessageHandling:
    """Tests for transport errors and server notifications."""

    @pytest.mark.asyncio
    async def test_exception_goes_to_error_handler(self, transport):
        connection = McpConnection("files", transport)
        handler = MagicMock()
        connection.set_error_handler(handler)

        error = ValueError("stream broke")
        await connection._handle_message(error)

        handler.assert_called_once_with(error)

    @pytest.mark.asyncio
    async def test_exception_without_handler_is_logged(self, transport, caplog):
        connection = McpConnection("files", transport)
        with caplog.at_level(logging.WARNING, logger="mcp_discovery._core.connection"):
            await connection._handle_message(ValueError("stream broke"))
        assert "stream broke" in caplog.text

    @pytest.mark.asyncio
    async def test_notification_routed_by_method(self, transport):
        connection = McpConnection("files", transport)
        handler = MagicMock()
        other = MagicMock()
        connection.set_notification_handler("notifications/message", handler)
        connection.set_notification_handler("notifications/progress", other)

        params = mcp_types.LoggingMessageNotificationParams(level="info", data="hello")
        notification = mcp_types.ServerNotification(
            mcp_types.LoggingMessageNotification(method="notifications/message", params=params)
        )
        await connection._handle_message(notification)

        handler.assert_called_once_with(params)
        other.assert_not_called()


class TestClose:
    """Tests for McpConnection.close."""

    @pytest.mark.asyncio
    async def test_close_never_connected(self, transport):
        connection = McpConnection("files", transport)
        await connection.close()
        assert connection.is_closed

    @pytest.mark.asyncio
    async def test_close_idempotent(self, sessions, transport, transport_events):
        connection = McpConnection("files", transport)
        await connection.connect(timeout=5.0)
        await connection.close()
        await connection.close()
        assert transport_events == ["open", "closed"]

    @pytest.mark.asyncio
    async def test_close_from_another_task(self, sessions, transport, transport_events):
        connection = McpConnection("files", transport)
        await connection.connect(timeout=5.0)

        await asyncio.create_task(connection.close())

        assert transport_events == ["open", "closed"]


class TestConnectionMap:
    """Tests for ConnectionMap."""

    def test_set_get_pop(self):
        connections = ConnectionMap()
        connection = MagicMock()
        connections.set("files", connection)

        assert connections.get("files") is connection
        assert "files" in connections
        assert len(connections) == 1
        assert connections.names() == ["files"]

        assert connections.pop("files") is connection
        assert connections.get("files") is None
        assert connections.pop("files") is None
        assert len(connections) == 0
