from __future__ import annotations

from typing import Any, Literal, Mapping


# Normalized error codes for provisioning tool calls
ErrorCode = Literal[
    "bad_request",
    "unauthorized",
    "forbidden",
    "not_found",
    "conflict",
    "rate_limited",
    "unavailable",
    "timeout",
    "resource_failed",
    "vault_destroyed",
    "secret_not_found",
    "internal",
]


class ShipMeError(Exception):
    """Base class for every error raised by the provisioning core."""

    code: ErrorCode = "internal"

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: ErrorCode | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        if code is not None:
            self.code = code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "status": self.status,
            "details": dict(self.details or {}),
        }


class ValidationError(ShipMeError):
    """Malformed or missing tool arguments. Never retried."""

    code: ErrorCode = "bad_request"


class TransientError(ShipMeError):
    """Failure expected to clear up on retry (rate limits, 5xx, network)."""

    code: ErrorCode = "unavailable"


class PermanentError(ShipMeError):
    """Non-retryable vendor failure."""

    code: ErrorCode = "internal"


class ResourceFailedError(ShipMeError):
    code: ErrorCode = "resource_failed"


class ResourceTimeoutError(ShipMeError):
    code: ErrorCode = "timeout"


class VaultDestroyedError(ShipMeError):
    code: ErrorCode = "vault_destroyed"

    def __init__(self, message: str = "Vault has been destroyed", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class SecretNotFoundError(ShipMeError):
    code: ErrorCode = "secret_not_found"


class DuplicateToolError(ShipMeError):
    code: ErrorCode = "conflict"


class UnknownToolError(ShipMeError):
    code: ErrorCode = "not_found"


_STATUS_CODES: dict[int, ErrorCode] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    422: "bad_request",
    429: "rate_limited",
}


def error_for_status(
    status: int,
    message: str,
    retryable_statuses: frozenset[int] | set[int],
    details: Mapping[str, Any] | None = None,
) -> ShipMeError:
    """Classify an HTTP failure status as transient or permanent."""
    code = _STATUS_CODES.get(status, "unavailable" if status >= 500 else "bad_request")
    if status in retryable_statuses:
        return TransientError(message, status=status, code=code, details=details)
    if status >= 500:
        code = "internal"
    return PermanentError(message, status=status, code=code, details=details)
