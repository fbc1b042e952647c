"""
Readiness polling for asynchronously provisioned resources.

A freshly created project, site or deploy is not usable straight away: the
vendor reports a status that moves from pending to a terminal value. This
module polls that status until it is terminal or a deadline passes.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import structlog

from .errors import (
    PermanentError,
    ResourceFailedError,
    ResourceTimeoutError,
    SecretNotFoundError,
    ValidationError,
    VaultDestroyedError,
)
from .metrics import POLL_OUTCOMES


logger = structlog.get_logger(__name__)


class ReadinessState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class PollOutcome:
    state: ReadinessState
    status: Any
    polls: int
    elapsed: float


def default_hard_stop(exc: Exception) -> bool:
    """Fetch errors that abort polling instead of being ridden out."""
    if isinstance(exc, (ValidationError, VaultDestroyedError, SecretNotFoundError, ResourceFailedError)):
        return True
    return isinstance(exc, PermanentError) and exc.status in (401, 403)


async def wait_until_ready(
    status_fetch: Callable[[], Awaitable[Any]],
    is_terminal_success: Callable[[Any], bool],
    is_terminal_failure: Callable[[Any], bool],
    poll_interval: float,
    max_wait_time: float,
    *,
    label: str = "resource",
    kind: str = "resource",
    is_hard_stop: Callable[[Exception], bool] = default_hard_stop,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PollOutcome:
    """
    Poll ``status_fetch`` until the resource is active, failed or out of time.

    Args:
        status_fetch: coroutine function returning the current status value
        is_terminal_success: predicate for the active state
        is_terminal_failure: predicate for the failed state
        poll_interval: seconds to wait between polls
        max_wait_time: overall deadline in seconds
        label: resource name used in diagnostics and error messages
        kind: low-cardinality resource kind used as the metrics label

    Returns:
        PollOutcome with state ACTIVE

    Raises:
        ResourceFailedError: the status reached a terminal failure value
        ResourceTimeoutError: the deadline elapsed first, including mid-fetch
    """
    if poll_interval <= 0:
        raise ValueError("poll_interval must be > 0")

    start = clock()
    elapsed = 0.0
    polls = 0
    last_status: Any = None

    logger.info("readiness_polling_started", label=label, max_wait=max_wait_time, poll_interval=poll_interval)

    while elapsed < max_wait_time:
        polls += 1
        try:
            # the fetch (retries included) may only spend what is left of the budget
            status = await asyncio.wait_for(status_fetch(), timeout=max_wait_time - elapsed)
        except asyncio.TimeoutError:
            elapsed = clock() - start
            logger.warning("readiness_status_check_timeout", label=label, poll=polls, elapsed_seconds=round(elapsed, 3))
            break
        except Exception as exc:
            if is_hard_stop(exc):
                POLL_OUTCOMES.labels(kind, ReadinessState.FAILED.value).inc()
                raise
            logger.warning("readiness_status_check_error", label=label, poll=polls, error=str(exc))
        else:
            last_status = status
            elapsed = clock() - start

            if is_terminal_success(status):
                POLL_OUTCOMES.labels(kind, ReadinessState.ACTIVE.value).inc()
                logger.info("readiness_reached", label=label, status=status, polls=polls, elapsed_seconds=round(elapsed, 3))
                return PollOutcome(state=ReadinessState.ACTIVE, status=status, polls=polls, elapsed=elapsed)

            if is_terminal_failure(status):
                POLL_OUTCOMES.labels(kind, ReadinessState.FAILED.value).inc()
                logger.error("readiness_failed", label=label, status=status, polls=polls)
                raise ResourceFailedError(
                    f"{label} entered failed state: {status}",
                    details={"status": status, "polls": polls},
                )

            logger.debug("readiness_pending", label=label, status=status, polls=polls)

        remaining = max_wait_time - (clock() - start)
        if remaining > 0:
            await sleep(min(poll_interval, remaining))
        elapsed = clock() - start

    POLL_OUTCOMES.labels(kind, ReadinessState.TIMED_OUT.value).inc()
    logger.warning("readiness_polling_timeout", label=label, elapsed_seconds=round(elapsed, 3), last_status=last_status)
    raise ResourceTimeoutError(
        f"{label} did not become ready within {elapsed:.1f}s (last status: {last_status})",
        details={"elapsed_seconds": elapsed, "last_status": last_status, "polls": polls},
    )


def status_in(values: Any) -> Callable[[Any], bool]:
    """Build a case-insensitive membership predicate over status strings."""
    wanted = {str(v).lower() for v in values}

    def _check(status: Optional[Any]) -> bool:
        return status is not None and str(status).lower() in wanted

    return _check
