"""Canonical error-code taxonomy for bot-state store flows."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Bounded canonical error codes for external contracts and observability."""

    STATE_CONFLICT = "STATE_CONFLICT"
    STATE_STORAGE_ERROR = "STATE_STORAGE_ERROR"
    STATE_TIMEOUT = "STATE_TIMEOUT"
    STATE_PROVISIONING_ERROR = "STATE_PROVISIONING_ERROR"
    INVALID_SCOPE = "INVALID_SCOPE"
    DB_CONNECTION_ERROR = "DB_CONNECTION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_STATUS_TO_CODE: dict[int, ErrorCode] = {
    400: ErrorCode.INVALID_SCOPE,
    408: ErrorCode.STATE_TIMEOUT,
    409: ErrorCode.STATE_CONFLICT,
    412: ErrorCode.STATE_CONFLICT,
    503: ErrorCode.DB_CONNECTION_ERROR,
    504: ErrorCode.STATE_TIMEOUT,
}

_CODE_GROUPS: dict[ErrorCode, str] = {
    ErrorCode.STATE_CONFLICT: "CONCURRENCY",
    ErrorCode.STATE_STORAGE_ERROR: "DB",
    ErrorCode.STATE_TIMEOUT: "DB",
    ErrorCode.STATE_PROVISIONING_ERROR: "DB",
    ErrorCode.DB_CONNECTION_ERROR: "DB",
    ErrorCode.INVALID_SCOPE: "VALIDATION",
    ErrorCode.INTERNAL_ERROR: "INTERNAL",
}


def error_code_for_status(
    status_code: Optional[int],
    *,
    fallback: ErrorCode = ErrorCode.STATE_STORAGE_ERROR,
) -> ErrorCode:
    """Resolve the canonical error code for an HTTP-style status code."""
    if not status_code:
        return fallback
    return _STATUS_TO_CODE.get(int(status_code), fallback)


def parse_error_code(
    value: Any,
    *,
    fallback: ErrorCode = ErrorCode.INTERNAL_ERROR,
) -> ErrorCode:
    """Parse string-like values to `ErrorCode` with safe fallback."""
    if isinstance(value, ErrorCode):
        return value
    if value is None:
        return fallback
    try:
        return ErrorCode(str(value).strip())
    except ValueError:
        return fallback


def error_code_group(value: Any) -> str:
    """Return a stable coarse grouping for telemetry dimensions."""
    parsed = parse_error_code(value)
    return _CODE_GROUPS.get(parsed, "INTERNAL")
