"""
Type definitions for mcp-discovery.

Defines enums and dataclasses used across the package for:
- Per-server connection state and global discovery state
- Transport kinds
- Discovered capabilities (tools and prompts)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# State Types
# =============================================================================


class ConnectionState(str, Enum):
    """
    Connectivity state of one server.

    - DISCONNECTED: Not connected, failed, or reclaimed after discovery
    - CONNECTING: Transport is being opened
    - CONNECTED: Session initialized and usable
    """
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class DiscoveryState(str, Enum):
    """
    Overall discovery progress.

    Only ever advances NOT_STARTED -> IN_PROGRESS -> COMPLETED.
    COMPLETED is reached whether or not individual servers failed.
    """
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TransportKind(str, Enum):
    """Wire transport used to reach a server."""
    STREAMABLE_HTTP = "streamable_http"  # httpUrl
    SSE = "sse"                          # url
    STDIO = "stdio"                      # command


# =============================================================================
# Discovered Capabilities
# =============================================================================


@dataclass(frozen=True)
class DiscoveredTool:
    """
    A tool exposed by a server, ready for registration.

    Attributes:
        name: Registered name, ``<server>__<sanitized raw name>``
        server_tool_name: Name the server knows the tool by
        description: Tool description (may be empty)
        input_schema: JSON schema of the tool's arguments
        server_name: Owning server
        timeout: Effective call timeout in seconds
        trust: Whether calls bypass user confirmation
    """
    name: str
    server_tool_name: str
    description: str
    input_schema: Dict[str, Any]
    server_name: str
    timeout: float
    trust: bool = False


@dataclass(frozen=True)
class PromptParameter:
    """Type and description of one prompt parameter."""
    type: str = "string"
    description: str = ""


@dataclass(frozen=True)
class DiscoveredPrompt:
    """
    A prompt template exposed by a server.

    Only prompts that carry a template are ever built.
    """
    name: str
    description: str
    template: str
    server_name: str
    parameters: Dict[str, PromptParameter] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)
    title: Optional[str] = None

    @property
    def optional(self) -> List[str]:
        """Parameter names not listed as required."""
        return [name for name in self.parameters if name not in self.required]


@dataclass
class DiscoveryResult:
    """Tools and prompts found on one server."""
    tools: List[DiscoveredTool] = field(default_factory=list)
    prompts: List[DiscoveredPrompt] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.tools and not self.prompts
