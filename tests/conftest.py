"""
Pytest configuration for mcp-discovery tests.
"""

from typing import Any, Callable, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from mcp_discovery.registry import PromptRegistry, ToolRegistry
from mcp_discovery.status import StatusRegistry
from mcp_discovery._core.connection import ConnectionMap

# Note: With pytest-asyncio in auto mode, no event_loop fixture needed


def build_connection(responses: Optional[Dict[str, Any]] = None, server_name: str = "test") -> MagicMock:
    """
    Build a mock connection answering requests by method.

    Each value in ``responses`` is either a dict (validated against the
    requested response shape) or an exception instance (raised).
    Unknown methods raise RuntimeError.
    """
    responses = responses or {}

    async def respond(method, params, response_shape, timeout=None):
        if method not in responses:
            raise RuntimeError(f"Method not found: {method}")
        payload = responses[method]
        if isinstance(payload, BaseException):
            raise payload
        return response_shape.model_validate(payload)

    connection = MagicMock()
    connection.server_name = server_name
    connection.request = AsyncMock(side_effect=respond)
    connection.close = AsyncMock()
    connection.set_error_handler = MagicMock()
    connection.set_notification_handler = MagicMock()
    return connection


@pytest.fixture
def make_connection() -> Callable[..., MagicMock]:
    """Factory for mock connections (see build_connection)."""
    return build_connection


@pytest.fixture
def tool_registry():
    return ToolRegistry()


@pytest.fixture
def prompt_registry():
    return PromptRegistry()


@pytest.fixture
def status_registry():
    return StatusRegistry()


@pytest.fixture
def connection_map():
    return ConnectionMap()


@pytest.fixture
def status_log(status_registry):
    """List of (server_name, state) transitions published to status_registry."""
    transitions = []
    status_registry.add_listener(lambda name, state: transitions.append((name, state)))
    return transitions


@pytest.fixture
def sample_tools_response():
    """tools/list result with two tools, one needing sanitizing."""
    return {
        "tools": [
            {
                "name": "read_file",
                "description": "Read a file",
                "inputSchema": {"type": "object", "properties": {"path": {"type": "string"}}},
            },
            {"name": "web-search.v2", "description": "Search the web"},
        ]
    }


@pytest.fixture
def sample_prompts_response():
    """prompts/list result with one template prompt and one without."""
    return {
        "prompts": [
            {
                "name": "summarize",
                "description": "Summarize a file",
                "template": "Summarize {path}",
                "parameters": {
                    "type": "object",
                    "properties": {"path": {"type": "string", "description": "File path"}},
                    "required": ["path"],
                },
            },
            {"name": "no_template", "description": "Server-side only prompt"},
        ]
    }
