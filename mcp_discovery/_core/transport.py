"""
Transport selection for mcp-discovery.

Given one server's configuration, picks exactly one wire transport:

- httpUrl -> streamable HTTP
- url     -> server-sent events
- command -> stdio subprocess

Selection performs no network or process I/O. The returned Transport is
opened later by the connection that owns it.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Tuple

from mcp import StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client

from mcp_discovery._core.stderr import StderrTap
from mcp_discovery.config import ServerConfig
from mcp_discovery.errors import ConfigurationError
from mcp_discovery.types import TransportKind

logger = logging.getLogger(__name__)

Streams = Tuple[Any, Any]


@dataclass(frozen=True)
class Transport:
    """
    An unopened wire transport for one server.

    Attributes:
        kind: Which wire protocol is used
        server_name: Server this transport belongs to
        target: Endpoint URL or executable, for diagnostics
    """
    kind: TransportKind
    server_name: str
    target: str
    opener: Callable[[], AsyncContextManager[Streams]]

    def open(self) -> AsyncContextManager[Streams]:
        """Return an async context manager yielding (read_stream, write_stream)."""
        return self.opener()


@asynccontextmanager
async def _open_streamable_http(url: str, headers: Any) -> AsyncIterator[Streams]:
    async with streamablehttp_client(url, headers=headers) as (read_stream, write_stream, _):
        yield read_stream, write_stream


@asynccontextmanager
async def _open_sse(url: str, headers: Any) -> AsyncIterator[Streams]:
    async with sse_client(url, headers=headers) as (read_stream, write_stream):
        yield read_stream, write_stream


@asynccontextmanager
async def _open_stdio(
    server_name: str,
    params: StdioServerParameters,
    debug: bool,
) -> AsyncIterator[Streams]:
    tap = StderrTap(server_name, debug=debug)
    try:
        async with stdio_client(params, errlog=tap.sink) as (read_stream, write_stream):
            yield read_stream, write_stream
    finally:
        tap.close()


def build_subprocess_env(config: ServerConfig) -> dict[str, str]:
    """Current process environment overlaid with the configured ``env``."""
    return {**os.environ, **(config.env or {})}


def select_transport(
    server_name: str,
    config: ServerConfig,
    debug: bool = False,
) -> Transport:
    """
    Build the transport for a server.

    Precedence when several fields are set: ``http_url``, then ``url``,
    then ``command``.

    Args:
        server_name: Server name, used to tag stderr output
        config: Server configuration
        debug: Log the subprocess's stderr lines (stdio only)

    Returns:
        Unopened Transport

    Raises:
        ConfigurationError: If none of http_url, url or command is set
    """
    if config.http_url:
        http_url = config.http_url
        logger.debug(f"Using streamable HTTP transport for '{server_name}': {http_url}")
        return Transport(
            kind=TransportKind.STREAMABLE_HTTP,
            server_name=server_name,
            target=http_url,
            opener=lambda: _open_streamable_http(http_url, config.headers),
        )

    if config.url:
        url = config.url
        logger.debug(f"Using SSE transport for '{server_name}': {url}")
        return Transport(
            kind=TransportKind.SSE,
            server_name=server_name,
            target=url,
            opener=lambda: _open_sse(url, config.headers),
        )

    if config.command:
        params = StdioServerParameters(
            command=config.command,
            args=list(config.args),
            env=build_subprocess_env(config),
            cwd=config.cwd,
        )
        logger.debug(f"Using stdio transport for '{server_name}': {config.command}")
        return Transport(
            kind=TransportKind.STDIO,
            server_name=server_name,
            target=config.command,
            opener=lambda: _open_stdio(server_name, params, debug),
        )

    raise ConfigurationError(
        "Invalid configuration: missing httpUrl (for Streamable HTTP), "
        "url (for SSE), and command (for stdio).",
        server_name=server_name,
    )
