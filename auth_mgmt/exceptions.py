"""Exceptions - Structured errors raised while executing management API requests.

Every failure of a request execution surfaces as a ManagementError subclass:

    ManagementError
    ├── RequestBuildError   payload/request could not be built (no I/O done)
    ├── TransportError      connection, timeout or read failure
    └── APIError            non-2xx response
        ├── RateLimitError  429 Too Many Requests
        └── ParseError      2xx response body did not match the result type
"""

from __future__ import annotations

from typing import Any

UNKNOWN_ERROR_CODE = "auth_mgmt.internal_error"
UNKNOWN_DESCRIPTION = "Unknown exception"

# Sentinel for rate limit values whose header is missing or malformed.
RATE_LIMIT_UNKNOWN = -1


class ManagementError(Exception):
    """Base class for management API client errors."""


class RequestBuildError(ManagementError):
    """Raised when the outgoing request cannot be built (e.g. body not JSON-serializable)."""


class TransportError(ManagementError):
    """Raised when the request fails before a response is received (connection error, timeout, etc.)."""


class APIError(ManagementError):
    """Raised when the API answers with a non-2xx status.

    The body is exposed as `fields` when it parsed as a JSON object, otherwise
    as `raw_payload`. Only one of the two is set.
    """

    def __init__(
        self,
        status_code: int,
        *,
        fields: dict[str, Any] | None = None,
        raw_payload: str | None = None,
        description: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.fields = fields
        self.raw_payload = raw_payload
        if fields is not None:
            self.error = _error_code(fields)
            self.description = description or _description(fields)
        else:
            self.error = UNKNOWN_ERROR_CODE
            self.description = description or raw_payload or UNKNOWN_DESCRIPTION
        super().__init__(
            f"Request failed with status code {status_code}: {self.description}"
        )

    def get_value(self, key: str) -> Any:
        """Return a field of the parsed error body, or None."""
        if self.fields is None:
            return None
        return self.fields.get(key)

    def is_access_denied(self) -> bool:
        return self.error == "access_denied"

    def is_multifactor_required(self) -> bool:
        return self.error == "mfa_required"

    def is_multifactor_enroll_required(self) -> bool:
        return self.error == "unsupported_challenge_type"

    def is_password_leaked(self) -> bool:
        return self.error == "password_leaked"

    def is_verification_required(self) -> bool:
        return self.error == "requires_verification"


class RateLimitError(APIError):
    """Raised on 429 responses.

    limit, remaining and reset come from the X-RateLimit-* headers and are
    RATE_LIMIT_UNKNOWN (-1) when the header is absent or not an integer.
    """

    STATUS_CODE = 429

    def __init__(
        self,
        limit: int = RATE_LIMIT_UNKNOWN,
        remaining: int = RATE_LIMIT_UNKNOWN,
        reset: int = RATE_LIMIT_UNKNOWN,
    ) -> None:
        super().__init__(self.STATUS_CODE, description="Rate limit reached")
        self.limit = limit
        self.remaining = remaining
        self.reset = reset


class ParseError(APIError):
    """Raised when a successful response body cannot be deserialized into the result type."""

    def __init__(self, status_code: int) -> None:
        super().__init__(status_code, description="Failed to parse json body")


def _error_code(fields: dict[str, Any]) -> str:
    for key in ("errorCode", "error", "code"):
        if key in fields:
            return str(fields[key])
    return UNKNOWN_ERROR_CODE


def _description(fields: dict[str, Any]) -> str:
    if "error_description" in fields:
        return str(fields["error_description"])
    # "description" may be a structured object (e.g. password policy details)
    if isinstance(fields.get("description"), str):
        return fields["description"]
    for key in ("message", "error"):
        if key in fields:
            return str(fields[key])
    return UNKNOWN_DESCRIPTION
