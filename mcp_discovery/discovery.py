"""
Capability discovery for one connected server.

Queries tools and prompts independently (a failure in one phase never
prevents the other), filters tool declarations by the server's
include/exclude lists, and gives each surviving tool a collision-safe
name of the form ``<server>__<tool>``.

Usage:
    from mcp_discovery.discovery import discover_tools_and_prompts

    result = await discover_tools_and_prompts("github", config, connection)
    for tool in result.tools:
        tool_registry.register_tool(tool)
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

from mcp_discovery.config import ServerConfig
from mcp_discovery.errors import DiscoveryError
from mcp_discovery.protocol import (
    ListPromptsResponse,
    ListToolsResponse,
    PromptDeclaration,
    ToolDeclaration,
)
from mcp_discovery.types import (
    DiscoveredPrompt,
    DiscoveredTool,
    DiscoveryResult,
    PromptParameter,
)

logger = logging.getLogger(__name__)

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def is_enabled(
    declaration: ToolDeclaration,
    server_name: str,
    config: ServerConfig,
) -> bool:
    """
    Decide whether a declared tool should be registered.

    Rules:
    1. Declarations without a name are skipped (with a warning)
    2. A name listed in exclude_tools is disabled, even if also included
    3. Without include_tools, everything else is enabled
    4. With include_tools, the name must match an entry exactly, or an
       entry of the form ``name(...)``

    Example:
        >>> is_enabled(ToolDeclaration(name="run"), "s", ServerConfig(include_tools=["run(ls)"]))
        True
    """
    name = declaration.name
    if not name:
        logger.warning(
            f"Discovered a function declaration without a name from MCP server "
            f"'{server_name}'. Skipping."
        )
        return False

    if config.exclude_tools and name in config.exclude_tools:
        return False

    if config.include_tools is None:
        return True

    return any(
        entry == name or entry.startswith(f"{name}(")
        for entry in config.include_tools
    )


def generate_valid_name(tool_name: str, server_name: str) -> str:
    """
    Build the registered name for a tool: ``<server>__<sanitized tool>``.

    Characters other than letters, digits and underscores in the tool name
    become underscores. The server prefix alone keeps names unique across
    servers.
    """
    sanitized = _INVALID_NAME_CHARS.sub("_", tool_name)
    return f"{server_name}__{sanitized}"


def _build_tool(
    name: str,
    declaration: ToolDeclaration,
    server_name: str,
    config: ServerConfig,
) -> DiscoveredTool:
    return DiscoveredTool(
        name=generate_valid_name(name, server_name),
        server_tool_name=name,
        description=declaration.description or "",
        input_schema=declaration.effective_schema,
        server_name=server_name,
        timeout=config.effective_timeout,
        trust=config.trust,
    )


def _build_prompt(
    template: str,
    declaration: PromptDeclaration,
    server_name: str,
) -> DiscoveredPrompt:
    if declaration.parameters is not None:
        parameters = {
            name: PromptParameter(type=prop.type, description=prop.description)
            for name, prop in declaration.parameters.properties.items()
        }
        required = list(declaration.parameters.required)
    else:
        arguments = declaration.arguments or []
        parameters = {
            arg.name: PromptParameter(description=arg.description or "")
            for arg in arguments
        }
        required = [arg.name for arg in arguments if arg.required]

    return DiscoveredPrompt(
        name=declaration.name,
        description=declaration.description,
        template=template,
        server_name=server_name,
        parameters=parameters,
        required=required,
        title=declaration.title,
    )


async def discover_tools(
    server_name: str,
    config: ServerConfig,
    connection: Any,
) -> List[DiscoveredTool]:
    """
    Run the tools phase: list, filter and wrap tool declarations.

    Raises:
        Exception: Whatever the tools/list request raised
    """
    response = await connection.request("tools/list", None, ListToolsResponse)

    tools: List[DiscoveredTool] = []
    for declaration in response.tools:
        if is_enabled(declaration, server_name, config) and declaration.name:
            tools.append(_build_tool(declaration.name, declaration, server_name, config))
    return tools


async def discover_prompts(server_name: str, connection: Any) -> List[DiscoveredPrompt]:
    """
    Run the prompts phase: keep only prompts that carry a template.

    Raises:
        Exception: Whatever the prompts/list request raised
    """
    response = await connection.request("prompts/list", None, ListPromptsResponse)

    return [
        _build_prompt(declaration.template, declaration, server_name)
        for declaration in response.prompts
        if declaration.template
    ]


async def discover_tools_and_prompts(
    server_name: str,
    config: ServerConfig,
    connection: Any,
) -> DiscoveryResult:
    """
    Discover everything registrable on a connected server.

    The tools phase runs before the prompts phase. Either may fail without
    affecting the other.

    Args:
        server_name: Server name, used as the tool name prefix
        config: Server configuration (filters, timeout, trust)
        connection: Connected handle with ``request(method, params, shape)``

    Returns:
        DiscoveryResult with at least one tool or prompt

    Raises:
        DiscoveryError: If neither phase produced anything
    """
    tools: List[DiscoveredTool] = []
    prompts: List[DiscoveredPrompt] = []
    tools_error: Optional[BaseException] = None
    prompts_error: Optional[BaseException] = None

    try:
        tools = await discover_tools(server_name, config, connection)
    except Exception as e:
        # Server may only expose prompts
        tools_error = e
        logger.debug(f"Could not discover tools from '{server_name}': {e}")

    try:
        prompts = await discover_prompts(server_name, connection)
        logger.debug(f"Discovered prompts from '{server_name}': {[p.name for p in prompts]}")
    except Exception as e:
        # Server may only expose tools
        prompts_error = e
        logger.debug(f"Could not discover prompts from '{server_name}': {e}")

    result = DiscoveryResult(tools=tools, prompts=prompts)
    if result.is_empty:
        message = "No enabled tools or prompts found"
        if tools_error is not None and prompts_error is not None:
            message += f" (tools: {tools_error}; prompts: {prompts_error})"
        raise DiscoveryError(server_name, message)
    return result
