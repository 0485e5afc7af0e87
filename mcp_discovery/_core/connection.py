"""
Live connection to one server.

McpConnection wraps an MCP SDK ClientSession opened over a Transport. The
transport and session contexts are entered and exited by one owner task per
connection, so a connection opened during discovery can later be used and
closed from any other task.

Usage:
    connection = McpConnection("files", select_transport("files", config))
    await connection.connect(timeout=30.0)
    tools = await connection.request("tools/list", None, ListToolsResponse)
    await connection.close()
"""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from mcp import ClientSession
from mcp import types as mcp_types
from pydantic import BaseModel

from mcp_discovery._core.transport import Transport
from mcp_discovery._core.version import CLIENT_NAME, CLIENT_VERSION
from mcp_discovery.protocol import McpRequest

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

ErrorHandler = Callable[[BaseException], None]
NotificationHandler = Callable[[Any], None]

# How long close() waits for the owner task to unwind before cancelling it
CLOSE_TIMEOUT = 5.0


class McpConnection:
    """
    Connection handle for one server.

    Handles:
    - Opening the transport and the initialize handshake
    - Typed requests validated against a pydantic response shape
    - Transport error and server notification callbacks
    - Terminal close (a closed connection is never reused)

    Attributes:
        server_name: Server this connection belongs to
        transport: Transport the connection was opened over
    """

    def __init__(self, server_name: str, transport: Transport) -> None:
        self.server_name = server_name
        self.transport = transport

        self._session: Optional[ClientSession] = None
        self._owner_task: Optional[asyncio.Task] = None
        self._ready: Optional[asyncio.Future] = None
        self._stop: Optional[asyncio.Event] = None
        self._closed = False

        self._error_handler: Optional[ErrorHandler] = None
        self._notification_handlers: Dict[str, NotificationHandler] = {}

    async def connect(self, timeout: float) -> None:
        """
        Open the transport and initialize the session.

        Args:
            timeout: Seconds allowed for the whole connect, also used as the
                session's default request timeout

        Raises:
            RuntimeError: If the connection was already connected or closed
            asyncio.TimeoutError: If the handshake does not finish in time
            Exception: Whatever the transport or handshake raised
        """
        if self._closed:
            raise RuntimeError(f"Connection to '{self.server_name}' is closed and cannot be reused")
        if self._owner_task is not None:
            raise RuntimeError(f"Connection to '{self.server_name}' is already open")

        ready = self._ready = asyncio.get_running_loop().create_future()
        stop = self._stop = asyncio.Event()
        self._owner_task = asyncio.create_task(
            self._run(timeout, ready, stop), name=f"mcp-connection-{self.server_name}"
        )

        try:
            await asyncio.wait_for(asyncio.shield(ready), timeout=timeout)
        except BaseException:
            await self.close()
            raise

        logger.debug(f"Connected to '{self.server_name}' over {self.transport.kind.value}")

    async def _run(self, timeout: float, ready: asyncio.Future, stop: asyncio.Event) -> None:
        """Owner task - hold the transport and session open until close()."""
        try:
            async with self.transport.open() as (read_stream, write_stream):
                async with ClientSession(
                    read_stream,
                    write_stream,
                    read_timeout_seconds=timedelta(seconds=timeout),
                    message_handler=self._handle_message,
                    client_info=mcp_types.Implementation(name=CLIENT_NAME, version=CLIENT_VERSION),
                ) as session:
                    await session.initialize()
                    self._session = session
                    ready.set_result(None)
                    await stop.wait()
        except asyncio.CancelledError:
            if not ready.done():
                ready.cancel()
            raise
        except Exception as e:
            if not ready.done():
                ready.set_exception(e)
            elif not stop.is_set():
                self._report_error(e)
        finally:
            self._session = None

    async def _handle_message(self, message: Any) -> None:
        """Session message hook - route errors and notifications."""
        if isinstance(message, Exception):
            self._report_error(message)
            return

        if isinstance(message, mcp_types.ServerNotification):
            notification = message.root
            handler = self._notification_handlers.get(notification.method)
            if handler is not None:
                handler(notification.params)

    def _report_error(self, error: BaseException) -> None:
        if self._error_handler is not None:
            self._error_handler(error)
        else:
            logger.warning(f"Unhandled transport error from '{self.server_name}': {error}")

    def set_error_handler(self, handler: Optional[ErrorHandler]) -> None:
        """Register the callback invoked on transport errors after connect."""
        self._error_handler = handler

    def set_notification_handler(self, method: str, handler: NotificationHandler) -> None:
        """Register the callback invoked with the params of ``method`` notifications."""
        self._notification_handlers[method] = handler

    async def request(
        self,
        method: str,
        params: Optional[Dict[str, Any]],
        response_shape: Type[ResponseT],
        timeout: Optional[float] = None,
    ) -> ResponseT:
        """
        Send a request and validate its result.

        Args:
            method: JSON-RPC method, e.g. "tools/list"
            params: Request params (omitted when None)
            response_shape: Pydantic model the result is validated against
            timeout: Per-request timeout in seconds (default: connect timeout)

        Returns:
            Validated response

        Raises:
            RuntimeError: If not connected
            McpError: If the server answers with an error
            pydantic.ValidationError: If the result does not match the shape
        """
        session = self._session
        if session is None:
            raise RuntimeError(f"Connection to '{self.server_name}' is not open")

        read_timeout = timedelta(seconds=timeout) if timeout is not None else None
        return await session.send_request(
            McpRequest(method=method, params=params),  # type: ignore[arg-type]
            response_shape,
            request_read_timeout_seconds=read_timeout,
        )

    async def close(self) -> None:
        """Close the session and transport. Safe to call multiple times."""
        self._closed = True
        task = self._owner_task
        if task is None or task.done():
            return

        if self._stop is not None:
            self._stop.set()

        if self._ready is not None and not self._ready.done():
            # Still handshaking, nothing to unwind gracefully
            task.cancel()

        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=CLOSE_TIMEOUT)
        except asyncio.TimeoutError:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

        logger.debug(f"Connection to '{self.server_name}' closed")

    @property
    def session(self) -> Optional[ClientSession]:
        """Underlying SDK session, for wrapping into model-callable tools."""
        return self._session

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._closed

    @property
    def is_closed(self) -> bool:
        return self._closed


class ConnectionMap:
    """
    Live connections keyed by server name.

    Each server's entry is written only by that server's own discovery
    branch; readers (the request dispatcher) may run on any task or thread.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, McpConnection] = {}
        self._lock = threading.Lock()

    def get(self, server_name: str) -> Optional[McpConnection]:
        with self._lock:
            return self._connections.get(server_name)

    def set(self, server_name: str, connection: McpConnection) -> None:
        with self._lock:
            self._connections[server_name] = connection

    def pop(self, server_name: str) -> Optional[McpConnection]:
        with self._lock:
            return self._connections.pop(server_name, None)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._connections)

    def __contains__(self, server_name: object) -> bool:
        with self._lock:
            return server_name in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
