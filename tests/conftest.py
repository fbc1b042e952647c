from typing import Callable, Dict, Optional, Type

import httpx
import pytest

from helpers import FakeClock, RecordingTransport
from shipme.core.config import Settings
from shipme.providers.base import ToolProvider, VendorAPIClient
from shipme.vault.context import ProvisioningRun


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        retry_max_retries=2,
        retry_initial_delay=0,
        poll_interval=0.01,
        poll_max_wait=1.0,
        supabase_access_token="sbp_test",
        supabase_org_id=None,
        netlify_auth_token="nfp_test",
        github_token="ghp_test",
    )


@pytest.fixture
def run():
    with ProvisioningRun() as provisioning_run:
        yield provisioning_run


@pytest.fixture
def make_provider(settings: Settings, run: ProvisioningRun) -> Callable[..., ToolProvider]:
    def _make(
        provider_cls: Type[ToolProvider],
        transport: RecordingTransport,
        headers: Optional[Dict[str, str]] = None,
    ) -> ToolProvider:
        client = VendorAPIClient(
            "https://api.test",
            "test-token",
            provider=provider_cls.name,
            headers=headers,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(transport)),
        )
        return provider_cls(client, run, settings)

    return _make
