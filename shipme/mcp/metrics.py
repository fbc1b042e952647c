from __future__ import annotations

from prometheus_client import Counter, Histogram


TOOL_CALLS = Counter(
    "shipme_tool_calls_total",
    "Total tool invocations handled by the dispatcher",
    labelnames=("tool", "result"),
)

TOOL_LATENCY = Histogram(
    "shipme_tool_call_latency_seconds",
    "Latency of tool invocations including retries and readiness waits",
    labelnames=("tool",),
    buckets=(0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 120.0, 300.0),
)

RETRY_ATTEMPTS = Counter(
    "shipme_retry_attempts_total",
    "Retries scheduled by the retry engine",
    labelnames=("label",),
)

POLL_OUTCOMES = Counter(
    "shipme_readiness_poll_outcomes_total",
    "Readiness polling outcomes by resource kind",
    labelnames=("kind", "state"),
)
