"""
mcp-discovery: Connect to MCP servers and discover their tools and prompts.

This package provides:
- Transport selection for streamable HTTP, SSE and stdio servers
- Per-server connection lifecycle with status notifications
- Tool and prompt discovery with include/exclude filtering
- Concurrent discovery across many servers with per-server failure isolation
- Ad-hoc requests against connected servers returning tagged results

Installation:
    pip install mcp-discovery
    pip install mcp-discovery[dev]   # With test tooling

Quickstart:
    from mcp_discovery import DiscoveryOrchestrator, load_server_configs

    orchestrator = DiscoveryOrchestrator()
    await orchestrator.discover_all(load_server_configs({
        "files": {"command": "npx", "args": ["-y", "@acme/fs-server"]},
        "search": {"httpUrl": "https://search.example.com/mcp"},
    }))

    for tool in orchestrator.tool_registry.get_all_tools():
        print(tool.name)  # e.g. files__read_file

Quickstart (status changes):
    unsubscribe = orchestrator.status.add_listener(
        lambda name, state: print(f"{name}: {state.value}")
    )
"""

from mcp_discovery.types import (
    ConnectionState,
    DiscoveryState,
    TransportKind,
    DiscoveredTool,
    DiscoveredPrompt,
    PromptParameter,
    DiscoveryResult,
)
from mcp_discovery.errors import (
    McpDiscoveryError,
    ConfigurationError,
    ServerConnectionError,
    DiscoveryError,
    RequestError,
)
from mcp_discovery.config import (
    ServerConfig,
    DEFAULT_TIMEOUT,
    ADHOC_SERVER_NAME,
    load_server_configs,
    parse_server_command,
    populate_server_command,
)
from mcp_discovery.protocol import (
    ListToolsResponse,
    ListPromptsResponse,
    GetPromptResponse,
)
from mcp_discovery.discovery import (
    discover_tools_and_prompts,
    is_enabled,
    generate_valid_name,
)
from mcp_discovery.status import StatusRegistry, StatusChangeListener
from mcp_discovery.registry import ToolRegistry, PromptRegistry
from mcp_discovery.lifecycle import (
    ServerConnector,
    connect_to_server,
    IDE_SERVER_NAME,
)
from mcp_discovery.dispatcher import (
    RequestDispatcher,
    RequestResult,
    RequestSuccess,
    RequestFailure,
)
from mcp_discovery.orchestrator import DiscoveryOrchestrator
from mcp_discovery._core.transport import Transport, select_transport
from mcp_discovery._core.version import PACKAGE_VERSION

__version__ = PACKAGE_VERSION

__all__ = [
    # Version
    "__version__",
    # Types
    "ConnectionState",
    "DiscoveryState",
    "TransportKind",
    "DiscoveredTool",
    "DiscoveredPrompt",
    "PromptParameter",
    "DiscoveryResult",
    # Errors
    "McpDiscoveryError",
    "ConfigurationError",
    "ServerConnectionError",
    "DiscoveryError",
    "RequestError",
    # Config
    "ServerConfig",
    "DEFAULT_TIMEOUT",
    "ADHOC_SERVER_NAME",
    "load_server_configs",
    "parse_server_command",
    "populate_server_command",
    # Protocol shapes
    "ListToolsResponse",
    "ListPromptsResponse",
    "GetPromptResponse",
    # Transport
    "Transport",
    "select_transport",
    # Discovery
    "discover_tools_and_prompts",
    "is_enabled",
    "generate_valid_name",
    # Status
    "StatusRegistry",
    "StatusChangeListener",
    # Registries
    "ToolRegistry",
    "PromptRegistry",
    # Lifecycle
    "ServerConnector",
    "connect_to_server",
    "IDE_SERVER_NAME",
    # Dispatcher
    "RequestDispatcher",
    "RequestResult",
    "RequestSuccess",
    "RequestFailure",
    # Orchestrator
    "DiscoveryOrchestrator",
]
