from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, TypeVar

import httpx
import structlog

from ..core.config import Settings
from ..mcp.dispatcher import Capability
from ..mcp.errors import ShipMeError, TransientError, error_for_status
from ..mcp.poller import PollOutcome, wait_until_ready
from ..mcp.retry import DEFAULT_RETRYABLE_STATUSES, RetryPolicy, with_retry
from ..vault.context import ProvisioningRun


logger = structlog.get_logger(__name__)

T = TypeVar("T")


class VendorAPIClient:
    """Bearer-authenticated JSON client for a vendor control-plane API.

    Failed responses are raised as TransientError when their status is in the
    retryable set and PermanentError otherwise, so the retry engine can decide
    from the status alone. Transport failures carry no status.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        provider: str,
        timeout: float = 30.0,
        retryable_statuses: frozenset[int] = DEFAULT_RETRYABLE_STATUSES,
        headers: Optional[Mapping[str, str]] = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self.provider = provider
        self._retryable_statuses = frozenset(retryable_statuses)
        self._extra_headers = dict(headers or {})
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        )

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }
        headers.update(self._extra_headers)
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = await self._http_client.request(
                method, url, json=json, params=params, headers=self._headers()
            )
        except httpx.TimeoutException as e:
            raise TransientError(f"{self.provider} request timed out: {e}", code="timeout") from e
        except httpx.TransportError as e:
            raise TransientError(f"{self.provider} request failed: {e}", code="unavailable") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.debug(
                "vendor_request_failed",
                provider=self.provider,
                method=method,
                path=path,
                status=response.status_code,
            )
            raise error_for_status(
                response.status_code,
                message,
                self._retryable_statuses,
                details={"provider": self.provider, "method": method, "path": path},
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()


def _error_message(response: httpx.Response) -> str:
    fallback = f"HTTP {response.status_code}"
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or fallback
    if isinstance(data, Mapping):
        for field in ("message", "error", "msg"):
            value = data.get(field)
            if isinstance(value, str) and value:
                return value
    return fallback


class ToolProvider(ABC):
    """A provider-specific capability set served by one MCP server."""

    name: str = "provider"

    def __init__(self, client: VendorAPIClient, run: ProvisioningRun, settings: Settings) -> None:
        self.client = client
        self.run = run
        self.settings = settings

    @abstractmethod
    def capabilities(self) -> Sequence[Capability]:
        """Tool definitions paired with this provider's handlers."""

    def retry_policy(self, label: str) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.settings.retry_max_retries,
            initial_delay=self.settings.retry_initial_delay,
            label=label,
        )

    async def call(self, label: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run a vendor call under this provider's retry policy."""
        return await with_retry(operation, self.retry_policy(label))

    async def wait_for(
        self,
        label: str,
        status_fetch: Callable[[], Awaitable[Any]],
        is_terminal_success: Callable[[Any], bool],
        is_terminal_failure: Callable[[Any], bool],
        max_wait_time: Optional[float] = None,
    ) -> PollOutcome:
        """Poll a status with transient fetch faults retried inside each poll."""
        policy = self.retry_policy(f"{self.name} status fetch")

        async def _fetch() -> Any:
            return await with_retry(status_fetch, policy)

        return await wait_until_ready(
            _fetch,
            is_terminal_success,
            is_terminal_failure,
            poll_interval=self.settings.poll_interval,
            max_wait_time=self.settings.poll_max_wait if max_wait_time is None else max_wait_time,
            label=label,
            kind=self.name,
        )

    def resolve(self, value: Any) -> Any:
        return self.run.resolve_arguments(value)

    async def close(self) -> None:
        await self.client.aclose()


def require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ShipMeError(f"Unexpected {what} response: {type(data).__name__}")
    return data
