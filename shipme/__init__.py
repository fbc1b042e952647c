"""ShipMe provisioning MCP servers."""

__version__ = "1.0.0"
