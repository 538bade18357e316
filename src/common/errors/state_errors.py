"""Exceptions raised at the bot-state store boundary.

Not-found on read never leaves the store as an error; it is folded into an
empty ``VersionedValue``. Everything else surfaces as one of the types below,
each carrying the canonical ``ErrorCode`` and the originating status code.
"""

from typing import Optional

from common.errors.error_codes import ErrorCode

PRECONDITION_FAILED = 412


class StateStoreError(Exception):
    """Base class for bot-state store failures."""

    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[ErrorCode] = None,
    ) -> None:
        """Initialize with a message, the originating status code and an error code."""
        super().__init__(message)
        self.message = message
        self.status_code = status_code or 0
        self.code = code or self.default_code


class StateConflictError(StateStoreError):
    """Write rejected because the stored version token no longer matches.

    Also raised when a create finds an existing record. Always reported with
    the precondition-failed status so callers can re-load and retry.
    """

    default_code = ErrorCode.STATE_CONFLICT

    def __init__(self, message: str, *, entity_key: Optional[str] = None) -> None:
        """Initialize a precondition-failed conflict for an entity key."""
        super().__init__(message, status_code=PRECONDITION_FAILED)
        self.entity_key = entity_key


class StateStorageError(StateStoreError):
    """Any other failure reported by the underlying document client."""

    default_code = ErrorCode.STATE_STORAGE_ERROR


class StateStoreProvisioningError(StateStoreError):
    """Database or collection could not be provisioned."""

    default_code = ErrorCode.STATE_PROVISIONING_ERROR


class StateStoreTimeoutError(StateStoreError, TimeoutError):
    """A store operation exceeded its configured timeout."""

    default_code = ErrorCode.STATE_TIMEOUT

    def __init__(self, operation_name: str, timeout_seconds: Optional[float]) -> None:
        """Initialize timeout details with operation context."""
        self.operation_name = operation_name
        self.timeout_seconds = timeout_seconds
        timeout_display = "unknown"
        if isinstance(timeout_seconds, (int, float)):
            timeout_display = f"{float(timeout_seconds):g}"
        super().__init__(
            f"bot state {operation_name} timed out after {timeout_display}s.", status_code=408
        )


class InvalidStoreScopeError(StateStoreError, ValueError):
    """Unsupported store scope passed to key derivation."""

    default_code = ErrorCode.INVALID_SCOPE

    def __init__(self, scope: object) -> None:
        """Initialize with the rejected scope value."""
        super().__init__(f"Unsupported bot store scope: {scope!r}", status_code=400)
        self.scope = scope
