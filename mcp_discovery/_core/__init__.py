"""
Wire-level plumbing for mcp-discovery.

This module handles:
- Transport selection (streamable HTTP, SSE, stdio)
- Subprocess stderr capture
- Connection handles wrapping the MCP SDK session
"""

from mcp_discovery._core.version import (
    PACKAGE_VERSION,
    CLIENT_NAME,
    CLIENT_VERSION,
)
from mcp_discovery._core.transport import (
    Transport,
    select_transport,
    build_subprocess_env,
)
from mcp_discovery._core.stderr import StderrTap
from mcp_discovery._core.connection import (
    McpConnection,
    ConnectionMap,
)

__all__ = [
    # Version
    "PACKAGE_VERSION",
    "CLIENT_NAME",
    "CLIENT_VERSION",
    # Transport
    "Transport",
    "select_transport",
    "build_subprocess_env",
    "StderrTap",
    # Connection
    "McpConnection",
    "ConnectionMap",
]
