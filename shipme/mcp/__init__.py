"""Tool-serving core (dispatcher, errors, retry, readiness polling, metrics).

Packages:
- errors: normalized error taxonomy
- schema: tool definitions and argument validation
- dispatcher: registration, routing and result envelopes
- retry: async exponential backoff
- poller: readiness polling for async resources
- metrics: Prometheus counters/histograms
- server: MCP stdio binding
"""

__all__ = [
    "errors",
    "schema",
    "dispatcher",
    "retry",
    "poller",
    "metrics",
    "server",
]
