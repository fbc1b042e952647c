"""
Entry points for the three provider MCP servers (stdio transport).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Type

import structlog
from dotenv import load_dotenv

from .core.config import Settings, get_settings, require_credential
from .core.logging_config import setup_logging
from .mcp.dispatcher import ToolDispatcher
from .mcp.server import build_server, serve_stdio
from .providers.base import ToolProvider, VendorAPIClient
from .providers.github import GITHUB_HEADERS, GitHubProvider
from .providers.netlify import NetlifyProvider
from .providers.supabase import SupabaseProvider
from .providers.vault_tools import vault_capabilities
from .vault.context import ProvisioningRun


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ServerSpec:
    """How to build one provider server from settings."""
    server_name: str
    provider_cls: Type[ToolProvider]
    token_field: str
    token_env: str
    url_field: str
    hint: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)


SERVERS: Dict[str, ServerSpec] = {
    "supabase": ServerSpec(
        server_name="shipme-supabase",
        provider_cls=SupabaseProvider,
        token_field="supabase_access_token",
        token_env="SUPABASE_ACCESS_TOKEN",
        url_field="supabase_api_url",
        hint="Get your token at: https://supabase.com/dashboard/account/tokens",
    ),
    "netlify": ServerSpec(
        server_name="shipme-netlify",
        provider_cls=NetlifyProvider,
        token_field="netlify_auth_token",
        token_env="NETLIFY_AUTH_TOKEN",
        url_field="netlify_api_url",
        hint="Get your token at: https://app.netlify.com/user/applications#personal-access-tokens",
    ),
    "github": ServerSpec(
        server_name="shipme-github",
        provider_cls=GitHubProvider,
        token_field="github_token",
        token_env="GITHUB_TOKEN",
        url_field="github_api_url",
        hint="Create one at: https://github.com/settings/tokens",
        headers=GITHUB_HEADERS,
    ),
}


def create_dispatcher(name: str, provider: ToolProvider) -> ToolDispatcher:
    """Register the provider's tools followed by the run's vault tools."""
    dispatcher = ToolDispatcher(name)
    dispatcher.register_all(provider.capabilities())
    dispatcher.register_all(vault_capabilities(provider.run))
    return dispatcher


def create_provider(spec: ServerSpec, settings: Settings, run: ProvisioningRun) -> ToolProvider:
    token = require_credential(settings, spec.token_field, spec.token_env, spec.hint)
    client = VendorAPIClient(
        getattr(settings, spec.url_field),
        token,
        provider=spec.provider_cls.name,
        timeout=settings.http_timeout,
        headers=spec.headers,
    )
    return spec.provider_cls(client, run, settings)


async def run_server(key: str, settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    spec = SERVERS[key]

    async with ProvisioningRun() as run:
        provider = create_provider(spec, settings, run)
        try:
            dispatcher = create_dispatcher(spec.server_name, provider)
            server = build_server(spec.server_name, dispatcher)
            logger.info("provider_server_starting", server=spec.server_name, tool_count=len(dispatcher))
            await serve_stdio(server, version=settings.app_version)
        finally:
            await provider.close()


def main(key: str) -> None:
    load_dotenv()
    get_settings.cache_clear()
    settings = get_settings()
    setup_logging(level=settings.log_level, enable_colors=settings.log_colors)
    asyncio.run(run_server(key, settings))


def supabase_main() -> None:
    main("supabase")


def netlify_main() -> None:
    main("netlify")


def github_main() -> None:
    main("github")
