"""
Discovery across every configured server.

The orchestrator owns all per-run state (statuses, live connections,
registries) and fans the connection lifecycle out over every server
concurrently. One failing server never affects the others, and the run
always ends in DiscoveryState.COMPLETED.

Usage:
    from mcp_discovery import DiscoveryOrchestrator, load_server_configs

    orchestrator = DiscoveryOrchestrator()
    await orchestrator.discover_all(
        load_server_configs(settings["mcpServers"]),
        server_command=args.mcp_server_command,
    )

    for tool in orchestrator.tool_registry.get_all_tools():
        print(tool.name, tool.description)

    result = await orchestrator.request("docs", "prompts/get", params, GetPromptResponse)
    await orchestrator.close_all()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel

from mcp_discovery._core.connection import ConnectionMap
from mcp_discovery.config import (
    ServerConfig,
    debug_enabled_from_env,
    populate_server_command,
)
from mcp_discovery.dispatcher import RequestDispatcher, RequestResult
from mcp_discovery.lifecycle import ActiveFileContext, ServerConnector
from mcp_discovery.registry import PromptRegistry, ToolRegistry
from mcp_discovery.status import StatusRegistry
from mcp_discovery.types import ConnectionState, DiscoveryState

logger = logging.getLogger(__name__)


class DiscoveryOrchestrator:
    """
    Runs one discovery pass over a set of servers.

    Create one orchestrator per discovery run. Individual servers can be
    retried afterwards through ``connector.connect_and_discover``.

    Attributes:
        tool_registry: Registered tools from every server
        prompt_registry: Registered prompts from every server
        status: Per-server connection status
        connections: Live connections kept after discovery
        connector: Per-server connection lifecycle
        dispatcher: Ad-hoc requests against live connections
    """

    def __init__(
        self,
        tool_registry: Optional[ToolRegistry] = None,
        prompt_registry: Optional[PromptRegistry] = None,
        status: Optional[StatusRegistry] = None,
        debug: Optional[bool] = None,
        active_context: Optional[ActiveFileContext] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            tool_registry: Registry to populate (default: new ToolRegistry)
            prompt_registry: Registry to populate (default: new PromptRegistry)
            status: Status registry to publish to (default: new StatusRegistry)
            debug: Log subprocess stderr (default: MCP_DISCOVERY_DEBUG)
            active_context: Host collaborator for the IDE server's active file
        """
        self.tool_registry = tool_registry or ToolRegistry()
        self.prompt_registry = prompt_registry or PromptRegistry()
        self.status = status or StatusRegistry()
        self.connections = ConnectionMap()
        self.debug = debug_enabled_from_env() if debug is None else debug

        self.connector = ServerConnector(
            tool_registry=self.tool_registry,
            prompt_registry=self.prompt_registry,
            status=self.status,
            connections=self.connections,
            debug=self.debug,
            active_context=active_context,
        )
        self.dispatcher = RequestDispatcher(self.connections)

        self._discovery_state = DiscoveryState.NOT_STARTED

    @property
    def discovery_state(self) -> DiscoveryState:
        return self._discovery_state

    async def discover_all(
        self,
        servers: Mapping[str, ServerConfig],
        server_command: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        """
        Connect to every server and register what each one exposes.

        Args:
            servers: Server configurations by name
            server_command: Ad-hoc server command line, registered as "mcp"
            cancel_event: Setting this event cancels every unfinished server

        Raises:
            ConfigurationError: If ``server_command`` cannot be parsed; no
                server is contacted in that case
            RuntimeError: If this orchestrator already ran discovery
        """
        if self._discovery_state is not DiscoveryState.NOT_STARTED:
            raise RuntimeError(
                "Discovery already ran on this orchestrator; create a new one for a fresh pass"
            )

        self._discovery_state = DiscoveryState.IN_PROGRESS
        try:
            configs = populate_server_command(servers, server_command)
            await self._fan_out(configs, cancel_event)
        finally:
            self._discovery_state = DiscoveryState.COMPLETED

    async def _fan_out(
        self,
        configs: Dict[str, ServerConfig],
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        names = list(configs)
        tasks = [
            asyncio.create_task(
                self.connector.connect_and_discover(name, configs[name]),
                name=f"mcp-discovery-{name}",
            )
            for name in names
        ]

        watcher: Optional[asyncio.Task] = None
        if cancel_event is not None:
            watcher = asyncio.create_task(self._cancel_when_set(cancel_event, tasks))

        try:
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            if watcher is not None:
                watcher.cancel()

        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                logger.info(f"Discovery of MCP server '{name}' was cancelled")
            elif isinstance(outcome, BaseException):
                # connect_and_discover contains its own errors; this is a bug
                logger.error(f"Unexpected error discovering MCP server '{name}': {outcome!r}")

        connected = sum(
            1 for name in names if self.status.get(name) == ConnectionState.CONNECTED
        )
        logger.info(f"MCP discovery completed: {connected}/{len(names)} servers connected")

    @staticmethod
    async def _cancel_when_set(cancel_event: asyncio.Event, tasks: List[asyncio.Task]) -> None:
        await cancel_event.wait()
        for task in tasks:
            if not task.done():
                task.cancel()

    async def request(
        self,
        server_name: str,
        method: str,
        params: Optional[Dict[str, Any]],
        response_shape: Type[BaseModel],
        timeout: Optional[float] = None,
    ) -> RequestResult:
        """Send an ad-hoc request; see RequestDispatcher.request."""
        return await self.dispatcher.request(
            server_name, method, params, response_shape, timeout=timeout
        )

    async def close_all(self) -> None:
        """Close every live connection and publish DISCONNECTED for each."""
        for name in self.connections.names():
            connection = self.connections.pop(name)
            if connection is None:
                continue
            try:
                await connection.close()
            except Exception as e:
                logger.warning(f"Error closing connection to MCP server '{name}': {e}")
            self.status.set_status(name, ConnectionState.DISCONNECTED)
