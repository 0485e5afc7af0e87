"""
Server configuration for mcp-discovery.

A ServerConfig describes how to reach one server. Exactly one of
``command``, ``url`` or ``http_url`` is expected; when several are set the
transport selector picks ``http_url``, then ``url``, then ``command``.

Usage:
    from mcp_discovery.config import ServerConfig, load_server_configs

    configs = load_server_configs({
        "github": {"httpUrl": "https://api.example.com/mcp", "trust": True},
        "files": {"command": "npx", "args": ["-y", "fs-server"], "timeout": 30000},
    })

    # Ad-hoc server from a command-line string
    configs = populate_server_command(configs, "python -m my_server --port 0")
"""

from __future__ import annotations

import os
import re
import shlex
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from mcp_discovery.errors import ConfigurationError

# Default timeout for connect and tool calls: 10 minutes
DEFAULT_TIMEOUT = 600.0

# Reserved name for the server built from an ad-hoc command string
ADHOC_SERVER_NAME = "mcp"

# Environment variable enabling the subprocess stderr debug tap
DEBUG_ENV_VAR = "MCP_DISCOVERY_DEBUG"

_TRUTHY = ("1", "true", "yes", "on")
_SHELL_OPERATOR_CHARS = set("();<>|&")
_ENV_REFERENCE = re.compile(r"\$(?:(\w+)|\{(\w+)\})")


@dataclass(frozen=True)
class ServerConfig:
    """
    Connection settings for one server.

    Attributes:
        command: Executable for the stdio transport
        args: Arguments for ``command``
        env: Variables overlaid on the current environment at spawn time
        cwd: Working directory for ``command``
        url: Server-sent events endpoint
        http_url: Streamable HTTP endpoint
        headers: Extra request headers (``url``/``http_url`` only)
        timeout: Connect and tool-call timeout in seconds (default 10 minutes)
        trust: Bypass confirmation for this server's tools
        include_tools: Only enable these tool names (``name`` or ``name(...)``)
        exclude_tools: Never enable these tool names; wins over include_tools
        description: Free-form description
    """
    command: Optional[str] = None
    args: Tuple[str, ...] = ()
    env: Optional[Dict[str, str]] = None
    cwd: Optional[str] = None
    url: Optional[str] = None
    http_url: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    timeout: Optional[float] = None
    trust: bool = False
    include_tools: Optional[Tuple[str, ...]] = None
    exclude_tools: Optional[Tuple[str, ...]] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        # Normalize list inputs so the config stays immutable
        object.__setattr__(self, "args", tuple(self.args or ()))
        if self.include_tools is not None:
            object.__setattr__(self, "include_tools", tuple(self.include_tools))
        if self.exclude_tools is not None:
            object.__setattr__(self, "exclude_tools", tuple(self.exclude_tools))

    @property
    def effective_timeout(self) -> float:
        """Configured timeout, or DEFAULT_TIMEOUT when unset."""
        return self.timeout if self.timeout is not None else DEFAULT_TIMEOUT

    @property
    def has_transport(self) -> bool:
        return bool(self.http_url or self.url or self.command)

    def safe_dict(self) -> Dict[str, Any]:
        """
        Fields that are safe to include in error messages.

        ``args``, ``env`` and ``headers`` are left out since they commonly
        carry credentials.
        """
        return {
            "command": self.command,
            "url": self.url,
            "httpUrl": self.http_url,
            "cwd": self.cwd,
            "timeout": self.timeout,
            "trust": self.trust,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServerConfig":
        """
        Build a ServerConfig from a settings-file entry.

        Accepts the camelCase keys used in settings files (``httpUrl``,
        ``includeTools``, ``excludeTools``) as well as snake_case. A
        settings ``timeout`` is in milliseconds and is converted to seconds.

        Raises:
            ConfigurationError: If ``data`` is not a mapping
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"Server configuration must be a mapping, got {type(data).__name__}"
            )

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return None

        timeout_ms = pick("timeout")
        return cls(
            command=pick("command"),
            args=tuple(pick("args") or ()),
            env=dict(pick("env")) if pick("env") else None,
            cwd=pick("cwd"),
            url=pick("url"),
            http_url=pick("httpUrl", "http_url"),
            headers=dict(pick("headers")) if pick("headers") else None,
            timeout=float(timeout_ms) / 1000.0 if timeout_ms is not None else None,
            trust=bool(pick("trust")),
            include_tools=pick("includeTools", "include_tools"),
            exclude_tools=pick("excludeTools", "exclude_tools"),
            description=pick("description"),
        )


def load_server_configs(servers: Mapping[str, Any]) -> Dict[str, ServerConfig]:
    """
    Build the server map from a settings ``mcpServers`` mapping.

    Entries that are already ServerConfig instances are kept as-is.

    Raises:
        ConfigurationError: If an entry is not a mapping
    """
    configs: Dict[str, ServerConfig] = {}
    for name, entry in servers.items():
        if isinstance(entry, ServerConfig):
            configs[name] = entry
            continue
        try:
            configs[name] = ServerConfig.from_dict(entry)
        except ConfigurationError as e:
            raise ConfigurationError(f"Invalid configuration for '{name}': {e}", server_name=name) from e
    return configs


def debug_enabled_from_env() -> bool:
    """Check MCP_DISCOVERY_DEBUG for a truthy value."""
    return os.environ.get(DEBUG_ENV_VAR, "").strip().lower() in _TRUTHY


def _split(command: str) -> List[str]:
    lexer = shlex.shlex(command, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    return list(lexer)


def _quote_value(value: str, quote: Optional[str]) -> str:
    """Escape an expanded value so the lexer reads it back as literal text."""
    if quote == '"':
        return value.replace("\\", "\\\\").replace('"', '\\"')
    return shlex.quote(value)


def _expand_env(command: str) -> str:
    """
    Substitute ``$VAR``/``${VAR}`` in a command string, honoring quotes.

    Single-quoted text and backslash-escaped characters are copied as-is.
    """
    parts: List[str] = []
    quote: Optional[str] = None
    i = 0
    while i < len(command):
        char = command[i]
        if char == "\\" and quote != "'":
            parts.append(command[i:i + 2])
            i += 2
            continue
        if char in ("'", '"'):
            if quote is None:
                quote = char
            elif quote == char:
                quote = None
            parts.append(char)
            i += 1
            continue
        if char == "$" and quote != "'":
            match = _ENV_REFERENCE.match(command, i)
            if match:
                name = match.group(1) or match.group(2)
                parts.append(_quote_value(os.environ.get(name, ""), quote))
                i = match.end()
                continue
        parts.append(char)
        i += 1
    return "".join(parts)


def parse_server_command(command: str) -> List[str]:
    """
    Tokenize an ad-hoc server command with POSIX shell rules.

    ``$VAR`` and ``${VAR}`` references outside single quotes are expanded
    from the current environment; unset variables expand to an empty
    string. An expanded value never splits into several tokens. Shell
    operators are rejected since there is no shell to run them.

    Args:
        command: Command string, e.g. ``"npx -y @acme/server --token $TOKEN"``

    Returns:
        List of tokens, executable first

    Raises:
        ConfigurationError: If the command cannot be tokenized
    """
    try:
        raw_tokens = _split(command)
    except ValueError as e:
        raise ConfigurationError(f"failed to parse mcpServerCommand: {command} ({e})") from e

    for token in raw_tokens:
        if token and set(token) <= _SHELL_OPERATOR_CHARS:
            raise ConfigurationError(
                f"failed to parse mcpServerCommand: {command} "
                f"(unsupported shell operator {token!r})"
            )

    tokens = _split(_expand_env(command))
    if not tokens or not tokens[0]:
        raise ConfigurationError(f"failed to parse mcpServerCommand: {command!r} is empty")
    return tokens


def populate_server_command(
    servers: Mapping[str, ServerConfig],
    command: Optional[str],
) -> Dict[str, ServerConfig]:
    """
    Add the ad-hoc server, if any, under the reserved name ``"mcp"``.

    An existing entry with that name is overwritten. The input mapping is
    not modified.

    Raises:
        ConfigurationError: If ``command`` cannot be tokenized
    """
    result = dict(servers)
    if command:
        tokens = parse_server_command(command)
        result[ADHOC_SERVER_NAME] = ServerConfig(command=tokens[0], args=tuple(tokens[1:]))
    return result
