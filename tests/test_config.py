import logging

import pytest
import structlog

from shipme.core.config import Settings, require_credential
from shipme.core.logging_config import redact_sensitive, setup_logging


def test_require_credential_exits_when_missing(capsys):
    settings = Settings(_env_file=None, github_token=None)

    with pytest.raises(SystemExit) as exc_info:
        require_credential(settings, "github_token", "GITHUB_TOKEN", "Create one at: https://github.com/settings/tokens")

    assert exc_info.value.code == 1
    err = capsys.readouterr().err
    assert "GITHUB_TOKEN environment variable is required" in err
    assert "github.com/settings/tokens" in err


def test_require_credential_returns_value():
    settings = Settings(_env_file=None, github_token="ghp_x")
    assert require_credential(settings, "github_token", "GITHUB_TOKEN") == "ghp_x"


def test_vendor_credentials_read_from_unprefixed_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_ACCESS_TOKEN", "sbp_env")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")
    monkeypatch.setenv("SHIPME_POLL_INTERVAL", "2.5")

    settings = Settings(_env_file=None)

    assert settings.supabase_access_token == "sbp_env"
    assert settings.github_token == "ghp_env"
    assert settings.poll_interval == 2.5


def test_netlify_auth_token_takes_precedence(monkeypatch):
    monkeypatch.setenv("NETLIFY_AUTH_TOKEN", "primary")
    monkeypatch.setenv("NETLIFY_ACCESS_TOKEN", "fallback")

    assert Settings(_env_file=None).netlify_auth_token == "primary"


def test_netlify_access_token_fallback(monkeypatch):
    monkeypatch.delenv("NETLIFY_AUTH_TOKEN", raising=False)
    monkeypatch.setenv("NETLIFY_ACCESS_TOKEN", "fallback")

    assert Settings(_env_file=None).netlify_auth_token == "fallback"


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.retry_max_retries == 3
    assert settings.retry_initial_delay == 1.0
    assert settings.supabase_api_url == "https://api.supabase.com/v1"


def test_redact_sensitive_masks_credentials_only():
    event = redact_sensitive(
        None,
        "info",
        {
            "event": "request",
            "access_token": "sbp_123",
            "db_password": "pw",
            "secret_name": "db_pw",
            "secret_count": 2,
            "project_ref": "abc",
        },
    )

    assert event["access_token"] == "***"
    assert event["db_password"] == "***"
    assert event["secret_name"] == "db_pw"
    assert event["secret_count"] == 2
    assert event["project_ref"] == "abc"


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_setup_logging_uses_single_stderr_handler(restore_logging):
    setup_logging(level="DEBUG", enable_colors=False)

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.StreamHandler)
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
