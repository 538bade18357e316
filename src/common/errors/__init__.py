"""Common error taxonomy helpers."""

from common.errors.error_codes import ErrorCode, error_code_for_status, error_code_group
from common.errors.state_errors import (
    InvalidStoreScopeError,
    StateConflictError,
    StateStorageError,
    StateStoreError,
    StateStoreProvisioningError,
    StateStoreTimeoutError,
)

__all__ = [
    "ErrorCode",
    "InvalidStoreScopeError",
    "StateConflictError",
    "StateStorageError",
    "StateStoreError",
    "StateStoreProvisioningError",
    "StateStoreTimeoutError",
    "error_code_for_status",
    "error_code_group",
]
