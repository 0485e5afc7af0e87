"""
Exception types for mcp-discovery.

Provides typed exceptions for:
- Server configuration errors
- Transport connect/spawn errors
- Capability discovery errors
- Post-discovery request errors
"""

from __future__ import annotations

from typing import Optional


class McpDiscoveryError(Exception):
    """Base exception for all mcp-discovery errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(McpDiscoveryError):
    """
    Raised when a server configuration cannot be used.

    This includes:
    - No transport field set (httpUrl, url, command)
    - Malformed ad-hoc server command string
    - Settings entries that are not mappings

    Fatal only to the affected server, except for ad-hoc command parsing
    which aborts the whole discovery call before any server is contacted.
    """

    def __init__(self, message: str, server_name: Optional[str] = None):
        self.server_name = server_name
        super().__init__(message)


# =============================================================================
# Connection Errors
# =============================================================================


class ServerConnectionError(McpDiscoveryError):
    """
    Raised when a transport cannot be started or connected.

    This includes:
    - Subprocess spawn failures
    - HTTP/SSE connection failures
    - Initialize handshake timeouts

    Example:
        try:
            connection = await connect_to_server("github", config)
        except ServerConnectionError as e:
            logger.error(f"{e.server_name} unavailable: {e}")
    """

    def __init__(self, server_name: str, message: str):
        self.server_name = server_name
        super().__init__(message)

    def __repr__(self) -> str:
        return f"ServerConnectionError(server_name={self.server_name!r}, message={str(self)!r})"


# =============================================================================
# Discovery Errors
# =============================================================================


class DiscoveryError(McpDiscoveryError):
    """
    Raised when a connected server yields nothing registrable.

    Either both listing requests failed, or both succeeded but every
    declaration was filtered out.
    """

    def __init__(self, server_name: str, message: str):
        self.server_name = server_name
        super().__init__(message)


# =============================================================================
# Request Errors
# =============================================================================


class RequestError(McpDiscoveryError):
    """
    Failure of an ad-hoc request against a connected server.

    The request dispatcher never raises this; it returns a tagged failure
    instead. Callers that prefer exceptions can call ``unwrap()`` on the
    result to get one.

    Example:
        result = await dispatcher.request("docs", "prompts/get", params, GetPromptResponse)
        response = result.unwrap()  # raises RequestError on failure
    """

    def __init__(self, server_name: str, method: str, message: str):
        self.server_name = server_name
        self.method = method
        self.detail = message
        super().__init__(f"{method} on '{server_name}' failed: {message}")

    def __repr__(self) -> str:
        return (
            f"RequestError(server_name={self.server_name!r}, "
            f"method={self.method!r}, detail={self.detail!r})"
        )
