"""Vendor capability sets served by the ShipMe MCP servers."""

from .base import ToolProvider, VendorAPIClient
from .github import GitHubProvider
from .netlify import NetlifyProvider
from .supabase import SupabaseProvider
from .vault_tools import vault_capabilities

__all__ = [
    "ToolProvider",
    "VendorAPIClient",
    "GitHubProvider",
    "NetlifyProvider",
    "SupabaseProvider",
    "vault_capabilities",
]
