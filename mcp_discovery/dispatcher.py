"""
Ad-hoc requests against servers that stayed connected after discovery.

The dispatcher never raises: every outcome comes back as either a
RequestSuccess or a RequestFailure.

Usage:
    result = await dispatcher.get_prompt("docs", "summarize", {"path": "README.md"})
    if result.success:
        messages = result.result.messages
    else:
        logger.warning(result.error)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Generic, Optional, Type, TypeVar, Union

from mcp.types import CallToolResult
from pydantic import BaseModel

from mcp_discovery._core.connection import ConnectionMap
from mcp_discovery.errors import RequestError
from mcp_discovery.protocol import GetPromptResponse
from mcp_discovery.types import DiscoveredTool

logger = logging.getLogger(__name__)

T = TypeVar("T")
ResponseT = TypeVar("ResponseT", bound=BaseModel)


@dataclass(frozen=True)
class RequestSuccess(Generic[T]):
    """Validated response of a successful request."""
    result: T
    server_name: str
    method: str

    success: ClassVar[bool] = True

    def unwrap(self) -> T:
        return self.result


@dataclass(frozen=True)
class RequestFailure:
    """Message describing why a request failed."""
    error: str
    server_name: str
    method: str

    success: ClassVar[bool] = False

    def unwrap(self) -> Any:
        """Raise the failure as a RequestError."""
        raise RequestError(self.server_name, self.method, self.error)


RequestResult = Union[RequestSuccess[T], RequestFailure]


class RequestDispatcher:
    """
    Issues typed requests against live connections, by server name.

    Attributes:
        connections: Shared map of live connections written by discovery
    """

    def __init__(self, connections: ConnectionMap) -> None:
        self.connections = connections

    async def request(
        self,
        server_name: str,
        method: str,
        params: Optional[Dict[str, Any]],
        response_shape: Type[ResponseT],
        timeout: Optional[float] = None,
    ) -> RequestResult[ResponseT]:
        """
        Send a request to a connected server.

        Args:
            server_name: Server to send to
            method: JSON-RPC method
            params: Request params
            response_shape: Pydantic model the result is validated against
            timeout: Per-request timeout in seconds

        Returns:
            RequestSuccess with the validated response, or RequestFailure
            if the server is not connected or the request failed
        """
        connection = self.connections.get(server_name)
        if connection is None:
            return RequestFailure(
                error=f"MCP server not found: {server_name}",
                server_name=server_name,
                method=method,
            )

        try:
            result = await connection.request(method, params, response_shape, timeout=timeout)
        except Exception as e:
            logger.debug(f"{method} on '{server_name}' failed: {e}")
            return RequestFailure(
                error=str(e) or type(e).__name__,
                server_name=server_name,
                method=method,
            )

        return RequestSuccess(result=result, server_name=server_name, method=method)

    async def call_tool(
        self,
        tool: DiscoveredTool,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> RequestResult[CallToolResult]:
        """
        Call a discovered tool with its effective timeout.

        The call goes to the tool's owning server under the name the server
        knows it by, not the prefixed registered name.
        """
        return await self.request(
            tool.server_name,
            "tools/call",
            {"name": tool.server_tool_name, "arguments": arguments or {}},
            CallToolResult,
            timeout=tool.timeout,
        )

    async def get_prompt(
        self,
        server_name: str,
        prompt_name: str,
        arguments: Optional[Dict[str, str]] = None,
    ) -> RequestResult[GetPromptResponse]:
        """Fetch a rendered prompt from a server."""
        return await self.request(
            server_name,
            "prompts/get",
            {"name": prompt_name, "arguments": arguments or {}},
            GetPromptResponse,
        )
