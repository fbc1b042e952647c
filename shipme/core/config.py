from __future__ import annotations

import sys
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SHIPME_", env_file=".env", extra="ignore", populate_by_name=True
    )
    app_name: str = Field(default="ShipMe MCP Servers")
    app_version: str = Field(default="1.0.0")

    # Logging (always written to stderr; stdout carries the MCP protocol)
    log_level: str = Field(default="INFO")
    log_colors: bool = Field(default=True)

    # Retry engine defaults
    retry_max_retries: int = Field(default=3, ge=0)
    retry_initial_delay: float = Field(default=1.0, ge=0)

    # Readiness polling defaults (seconds)
    poll_interval: float = Field(default=5.0, gt=0)
    poll_max_wait: float = Field(default=120.0, gt=0)

    # Vendor HTTP
    http_timeout: float = Field(default=30.0, gt=0)

    # Supabase
    supabase_access_token: str | None = Field(
        default=None, validation_alias=AliasChoices("SUPABASE_ACCESS_TOKEN")
    )
    supabase_org_id: str | None = Field(
        default=None, validation_alias=AliasChoices("SUPABASE_ORG_ID")
    )
    supabase_api_url: str = Field(default="https://api.supabase.com/v1")

    # Netlify (NETLIFY_AUTH_TOKEN wins when both are set)
    netlify_auth_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("NETLIFY_AUTH_TOKEN", "NETLIFY_ACCESS_TOKEN"),
    )
    netlify_api_url: str = Field(default="https://api.netlify.com/api/v1")

    # GitHub
    github_token: str | None = Field(default=None, validation_alias=AliasChoices("GITHUB_TOKEN"))
    github_api_url: str = Field(default="https://api.github.com")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


def require_credential(settings: Settings, field: str, env_name: str, hint: str | None = None) -> str:
    """Return a mandatory bearer credential or terminate the process.

    A missing credential is the one failure that is not reported through the
    result envelope: the server cannot do anything useful without it.
    """
    value = getattr(settings, field, None)
    if not value:
        print(f"Error: {env_name} environment variable is required", file=sys.stderr)
        if hint:
            print(hint, file=sys.stderr)
        sys.exit(1)
    return value
