from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from common.config.env import get_env_bool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorClassification:
    """Provider-aware classification of a document backend failure."""

    category: str
    provider: str
    status_code: int
    is_retryable: bool


# SQLSTATE -> (category, HTTP-style status code)
_SQLSTATE_CATEGORIES: dict[str, tuple[str, int]] = {
    "23505": ("conflict", 409),
    "42P06": ("conflict", 409),
    "42P07": ("conflict", 409),
    "3F000": ("not_found", 404),
    "42P01": ("not_found", 404),
    "40P01": ("deadlock", 503),
    "40001": ("serialization", 503),
    "28000": ("auth", 401),
    "28P01": ("auth", 401),
    "42501": ("auth", 403),
    "57014": ("timeout", 408),
}

_CATEGORY_STATUS: dict[str, int] = {
    "timeout": 408,
    "connectivity": 503,
    "auth": 403,
    "deadlock": 503,
    "serialization": 503,
    "throttling": 429,
    "resource_exhausted": 507,
    "unknown": 500,
}

_RETRYABLE_CATEGORIES = {
    "timeout",
    "connectivity",
    "deadlock",
    "serialization",
    "throttling",
}


def classify_error(provider: str, exc: Exception) -> ErrorClassification:
    """Classify a backend exception into a category and status code."""
    provider = (provider or "unknown").lower()
    sqlstate = getattr(exc, "sqlstate", None)
    if isinstance(sqlstate, str):
        if sqlstate in _SQLSTATE_CATEGORIES:
            category, status = _SQLSTATE_CATEGORIES[sqlstate]
            return _classification(category, provider, status)
        if sqlstate.startswith("53"):
            return _classification("resource_exhausted", provider)
        if sqlstate.startswith("08"):
            return _classification("connectivity", provider)

    message = str(exc).lower()
    class_name = exc.__class__.__name__.lower()

    if isinstance(exc, TimeoutError) or _matches_any(message, ("timeout", "timed out")):
        return _classification("timeout", provider)
    if isinstance(exc, (ConnectionError, OSError)) or _matches_any(
        message,
        (
            "could not connect",
            "connection refused",
            "connection reset",
            "connection was closed",
            "connection failed",
        ),
    ):
        return _classification("connectivity", provider)
    if _matches_any(message, ("permission denied", "not authorized", "access denied")):
        return _classification("auth", provider)
    if _matches_any(message, ("too many connections", "too many requests", "rate limit")):
        return _classification("throttling", provider)
    if _matches_any(message, ("disk full", "out of memory", "resource limit")):
        return _classification("resource_exhausted", provider)
    if class_name in {"interfaceerror", "connectiondoesnotexisterror"}:
        return _classification("connectivity", provider)

    return _classification("unknown", provider)


def log_classified_error(provider: str, operation: str, exc: Exception) -> ErrorClassification:
    """Classify an error, annotate the current span and log it."""
    info = classify_error(provider, exc)
    if not get_env_bool("DAL_CLASSIFIED_ERROR_TELEMETRY", True):
        return info

    from opentelemetry import trace

    span = trace.get_current_span()
    if span is not None and span.is_recording():
        span.set_attribute("error.classification.category", info.category)
        span.set_attribute("error.classification.provider", provider)
        span.set_attribute("error.classification.operation", operation)
        span.set_attribute("error.classification.is_retryable", info.is_retryable)

    logger.warning(
        "dal_error_classified",
        extra={
            "event": "dal_error_classified",
            "provider": provider,
            "operation": operation,
            "error_category": info.category,
            "error_type": exc.__class__.__name__,
            "status_code": info.status_code,
            "is_retryable": info.is_retryable,
        },
    )
    return info


def _matches_any(text: str, fragments: tuple[str, ...]) -> bool:
    return any(fragment in text for fragment in fragments)


def _classification(
    category: str, provider: str, status_code: Optional[int] = None
) -> ErrorClassification:
    return ErrorClassification(
        category=category,
        provider=provider,
        status_code=status_code or _CATEGORY_STATUS.get(category, 500),
        is_retryable=category in _RETRYABLE_CATEGORIES,
    )
