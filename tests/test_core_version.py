"""Tests for mcp_discovery._core.version module."""

import mcp_discovery
from mcp_discovery._core.version import (
    PACKAGE_VERSION,
    CLIENT_NAME,
    CLIENT_VERSION,
)


class TestVersionConstants:
    """Tests for version constants."""

    def test_package_version_format(self):
        """Package version should be valid semver."""
        parts = PACKAGE_VERSION.split(".")
        assert len(parts) == 3
        for part in parts:
            assert part.isdigit()

    def test_exported_version(self):
        assert mcp_discovery.__version__ == PACKAGE_VERSION

    def test_client_identity(self):
        """Client info sent during the initialize handshake."""
        assert CLIENT_NAME == "mcp-discovery-client"
        assert CLIENT_VERSION == "0.0.1"
