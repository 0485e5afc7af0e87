"""
Tests for mcp_discovery.errors module.
"""

import pytest
from mcp_discovery.errors import (
    McpDiscoveryError,
    ConfigurationError,
    ServerConnectionError,
    DiscoveryError,
    RequestError,
)


class TestMcpDiscoveryError:
    """Tests for base McpDiscoveryError."""

    def test_is_exception(self):
        assert issubclass(McpDiscoveryError, Exception)

    def test_message(self):
        error = McpDiscoveryError("Test error message")
        assert str(error) == "Test error message"


class TestConfigurationError:
    """Tests for ConfigurationError."""

    def test_inheritance(self):
        assert issubclass(ConfigurationError, McpDiscoveryError)

    def test_server_name_optional(self):
        error = ConfigurationError("bad command")
        assert error.server_name is None
        assert str(error) == "bad command"

    def test_with_server_name(self):
        error = ConfigurationError("missing transport", server_name="files")
        assert error.server_name == "files"

    def test_can_be_caught_as_base(self):
        with pytest.raises(McpDiscoveryError):
            raise ConfigurationError("bad")


class TestServerConnectionError:
    """Tests for ServerConnectionError."""

    def test_inheritance(self):
        assert issubclass(ServerConnectionError, McpDiscoveryError)

    def test_attributes(self):
        error = ServerConnectionError("github", "connection refused")
        assert error.server_name == "github"
        assert str(error) == "connection refused"

    def test_repr(self):
        error = ServerConnectionError("github", "connection refused")
        assert repr(error) == (
            "ServerConnectionError(server_name='github', message='connection refused')"
        )


class TestDiscoveryError:
    """Tests for DiscoveryError."""

    def test_inheritance(self):
        assert issubclass(DiscoveryError, McpDiscoveryError)

    def test_attributes(self):
        error = DiscoveryError("docs", "No enabled tools or prompts found")
        assert error.server_name == "docs"
        assert "No enabled tools" in str(error)


class TestRequestError:
    """Tests for RequestError."""

    def test_inheritance(self):
        assert issubclass(RequestError, McpDiscoveryError)

    def test_message_format(self):
        error = RequestError("docs", "prompts/get", "Prompt not found")
        assert str(error) == "prompts/get on 'docs' failed: Prompt not found"
        assert error.detail == "Prompt not found"
        assert error.method == "prompts/get"
        assert error.server_name == "docs"

    def test_repr(self):
        error = RequestError("docs", "prompts/get", "boom")
        assert "method='prompts/get'" in repr(error)
        assert "detail='boom'" in repr(error)
