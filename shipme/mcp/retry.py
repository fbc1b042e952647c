from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from .errors import ValidationError
from .metrics import RETRY_ATTEMPTS


logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy for one call site.

    - max_retries excludes the first try (max_retries=3 means 4 attempts)
    - delay before retry n (zero-indexed) is initial_delay * 2**n, no jitter
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    retryable_statuses: frozenset[int] = field(default=DEFAULT_RETRYABLE_STATUSES)
    label: str = "API call"

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")
        object.__setattr__(self, "retryable_statuses", frozenset(self.retryable_statuses))

    def delay_for(self, attempt_index: int) -> float:
        return self.initial_delay * (2 ** attempt_index)


def status_of(exc: BaseException) -> int | None:
    """Best-effort HTTP status extraction from a failure."""
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_retryable(exc: BaseException, policy: RetryPolicy) -> bool:
    if isinstance(exc, ValidationError):
        return False
    status = status_of(exc)
    # no status: network-level fault, presumed transient
    return status is None or status in policy.retryable_statuses


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run ``operation`` under ``policy``.

    Failures outside the retryable set are re-raised at once, whatever
    attempts remain. After the last attempt the final failure is re-raised
    unchanged.
    """
    policy = policy or RetryPolicy()
    total = policy.max_retries + 1
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= policy.max_retries or not is_retryable(exc, policy):
                raise

            delay = policy.delay_for(attempt)
            RETRY_ATTEMPTS.labels(policy.label).inc()
            logger.warning(
                "retry_scheduled",
                label=policy.label,
                attempt=attempt + 1,
                attempts_total=total,
                status=status_of(exc),
                delay_seconds=delay,
                error=str(exc),
            )
            await sleep(delay)
            attempt += 1
