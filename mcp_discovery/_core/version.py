"""
Version constants for mcp-discovery.

- PACKAGE_VERSION: User-facing package version
- CLIENT_NAME / CLIENT_VERSION: Client identity sent in the initialize handshake
"""

from __future__ import annotations

# mcp-discovery version (user-facing, independent semver)
PACKAGE_VERSION = "0.1.0"

# Identity announced to every server during initialize
CLIENT_NAME = "mcp-discovery-client"
CLIENT_VERSION = "0.0.1"
