"""
Registries for discovered tools and prompts.

Both are passive stores: discovery writes into them, command-surfacing code
reads from them later.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from mcp_discovery.types import DiscoveredPrompt, DiscoveredTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Discovered tools keyed by registered name (``<server>__<tool>``)."""

    def __init__(self) -> None:
        self._tools: Dict[str, DiscoveredTool] = {}
        self._lock = threading.Lock()

    def register_tool(self, tool: DiscoveredTool) -> None:
        with self._lock:
            if tool.name in self._tools:
                logger.warning(f"Tool '{tool.name}' is already registered. Overwriting.")
            self._tools[tool.name] = tool

    def get_tool(self, name: str) -> Optional[DiscoveredTool]:
        with self._lock:
            return self._tools.get(name)

    def get_all_tools(self) -> List[DiscoveredTool]:
        with self._lock:
            return sorted(self._tools.values(), key=lambda t: t.name)

    def get_tools_by_server(self, server_name: str) -> List[DiscoveredTool]:
        with self._lock:
            return sorted(
                (t for t in self._tools.values() if t.server_name == server_name),
                key=lambda t: t.name,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)


class PromptRegistry:
    """
    Discovered prompts keyed by ``<server>/<prompt>``.

    Prompt names are only unique per server; registering the same
    server/name pair again replaces the earlier prompt.
    """

    def __init__(self) -> None:
        self._prompts: Dict[str, DiscoveredPrompt] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(server_name: str, prompt_name: str) -> str:
        return f"{server_name}/{prompt_name}"

    def register_prompt(self, prompt: DiscoveredPrompt) -> None:
        key = self._key(prompt.server_name, prompt.name)
        with self._lock:
            if key in self._prompts:
                logger.warning(f"Prompt '{key}' is already registered. Overwriting.")
            self._prompts[key] = prompt

    def get_prompt(self, server_name: str, prompt_name: str) -> Optional[DiscoveredPrompt]:
        with self._lock:
            return self._prompts.get(self._key(server_name, prompt_name))

    def get_all_prompts(self) -> List[DiscoveredPrompt]:
        """All prompts sorted by name."""
        with self._lock:
            return sorted(self._prompts.values(), key=lambda p: p.name)

    def get_prompts_by_server(self, server_name: str) -> List[DiscoveredPrompt]:
        """Prompts from one server sorted by name."""
        with self._lock:
            return sorted(
                (p for p in self._prompts.values() if p.server_name == server_name),
                key=lambda p: p.name,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._prompts)
