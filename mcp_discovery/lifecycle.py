"""
Connection lifecycle for one server.

Per-server state machine:

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED
                        |                          ^
                        +------ connect failed ----+

A failure is terminal for the pass: there is no automatic retry. Calling
connect_and_discover() again starts a fresh attempt. Every failure is
logged and contained; nothing propagates to sibling servers.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Optional, Protocol

from mcp_discovery._core.connection import ConnectionMap, McpConnection
from mcp_discovery._core.transport import select_transport
from mcp_discovery.config import ServerConfig
from mcp_discovery.discovery import discover_tools_and_prompts
from mcp_discovery.errors import ServerConnectionError
from mcp_discovery.registry import PromptRegistry, ToolRegistry
from mcp_discovery.status import StatusRegistry
from mcp_discovery.types import ConnectionState

logger = logging.getLogger(__name__)

# Server whose notifications drive the host's active-file context
IDE_SERVER_NAME = "_ide_server"
ACTIVE_FILE_NOTIFICATION = "ide/activeFileNotification"


class ActiveFileContext(Protocol):
    """Host-side holder of the active file reported by the IDE server."""

    def set_active_file_context(self, params: Any) -> None: ...

    def clear_active_file_context(self) -> None: ...


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


async def connect_to_server(
    server_name: str,
    config: ServerConfig,
    debug: bool = False,
) -> McpConnection:
    """
    Select a transport and connect to a server within its timeout.

    A connection that fails to come up is closed before the error is
    raised.

    Args:
        server_name: Server name
        config: Server configuration
        debug: Log the server's stderr (stdio only)

    Returns:
        Connected McpConnection

    Raises:
        ConfigurationError: If the config names no transport
        ServerConnectionError: If the transport fails to start or connect
    """
    transport = select_transport(server_name, config, debug=debug)
    connection = McpConnection(server_name, transport)
    try:
        await connection.connect(config.effective_timeout)
    except Exception as e:
        # args, env and headers stay out of the message
        message = (
            f"failed to start or connect to MCP server '{server_name}' "
            f"{json.dumps(config.safe_dict())}; \n{_describe(e)}"
        )
        if os.environ.get("SANDBOX"):
            message += "\nMake sure it is available in the sandbox"
        raise ServerConnectionError(server_name, message) from e
    return connection


class ServerConnector:
    """
    Connects to one server at a time, discovers its capabilities and
    registers them.

    Attributes:
        tool_registry: Where discovered tools are registered
        prompt_registry: Where discovered prompts are registered
        status: Status registry updated on every transition
        connections: Live connections kept for later requests
        debug: Log subprocess stderr
        active_context: Optional host collaborator for the IDE server
    """

    def __init__(
        self,
        tool_registry: ToolRegistry,
        prompt_registry: PromptRegistry,
        status: StatusRegistry,
        connections: ConnectionMap,
        debug: bool = False,
        active_context: Optional[ActiveFileContext] = None,
    ) -> None:
        self.tool_registry = tool_registry
        self.prompt_registry = prompt_registry
        self.status = status
        self.connections = connections
        self.debug = debug
        self.active_context = active_context

    async def connect_and_discover(self, server_name: str, config: ServerConfig) -> None:
        """
        Run the full lifecycle for one server.

        1. Publish CONNECTING
        2. Connect; on failure publish DISCONNECTED and return
        3. Publish CONNECTED and watch for transport errors
        4. Discover; on failure (including nothing to register) close,
           publish DISCONNECTED and return
        5. Register results and keep the connection open

        Cancellation closes any open connection, registers nothing,
        publishes DISCONNECTED and re-raises.
        """
        previous = self.connections.pop(server_name)
        if previous is not None:
            await self._close_quietly(server_name, previous)

        self.status.set_status(server_name, ConnectionState.CONNECTING)

        try:
            connection = await connect_to_server(server_name, config, debug=self.debug)
        except asyncio.CancelledError:
            self.status.set_status(server_name, ConnectionState.DISCONNECTED)
            raise
        except Exception as e:
            # ConfigurationError, ServerConnectionError, or anything unexpected
            logger.error(f"Error connecting to MCP server '{server_name}': {_describe(e)}")
            self.status.set_status(server_name, ConnectionState.DISCONNECTED)
            return

        self.connections.set(server_name, connection)
        self.status.set_status(server_name, ConnectionState.CONNECTED)

        connection.set_error_handler(
            lambda error: self._on_transport_error(server_name, error)
        )
        if server_name == IDE_SERVER_NAME and self.active_context is not None:
            connection.set_notification_handler(
                ACTIVE_FILE_NOTIFICATION, self.active_context.set_active_file_context
            )

        try:
            result = await discover_tools_and_prompts(server_name, config, connection)
        except asyncio.CancelledError:
            await self._reclaim(server_name, connection)
            raise
        except Exception as e:
            # DiscoveryError also covers a server with nothing to register
            logger.debug(f"Could not discover tools or prompts from '{server_name}': {e}")
            await self._reclaim(server_name, connection)
            return

        for tool in result.tools:
            self.tool_registry.register_tool(tool)
        for prompt in result.prompts:
            self.prompt_registry.register_prompt(prompt)

        logger.info(
            f"Discovered {len(result.tools)} tools and {len(result.prompts)} prompts "
            f"from MCP server '{server_name}'"
        )

    def _on_transport_error(self, server_name: str, error: BaseException) -> None:
        logger.error(f"MCP ERROR ({server_name}): {_describe(error)}")
        self.status.set_status(server_name, ConnectionState.DISCONNECTED)
        if server_name == IDE_SERVER_NAME and self.active_context is not None:
            self.active_context.clear_active_file_context()

    async def _reclaim(self, server_name: str, connection: McpConnection) -> None:
        """Close a connection opened by this branch and publish DISCONNECTED."""
        if self.connections.get(server_name) is connection:
            self.connections.pop(server_name)
        await self._close_quietly(server_name, connection)
        self.status.set_status(server_name, ConnectionState.DISCONNECTED)

    async def _close_quietly(self, server_name: str, connection: McpConnection) -> None:
        try:
            await connection.close()
        except Exception as e:
            logger.debug(f"Error closing connection to '{server_name}': {_describe(e)}")
