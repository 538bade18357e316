import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from common.errors.state_errors import StateStoreTimeoutError

T = TypeVar("T")
logger = logging.getLogger(__name__)


async def run_with_timeout(
    operation: Callable[[], Awaitable[T]],
    timeout_seconds: Optional[float],
    cancel: Optional[Callable[[], object]] = None,
    *,
    operation_name: str = "operation",
) -> T:
    """Run an awaitable operation with a timeout and optional cancellation hook.

    A missing or non-positive timeout runs the operation unbounded. On expiry
    the in-flight call is cancelled by ``asyncio.wait_for``, ``cancel`` is
    invoked best-effort, and ``StateStoreTimeoutError`` is raised. Outer
    cancellation (``asyncio.CancelledError``) is never converted.
    """
    if not timeout_seconds or timeout_seconds <= 0:
        return await operation()
    try:
        return await asyncio.wait_for(operation(), timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        if cancel:
            try:
                result = cancel()
                if inspect.isawaitable(result):
                    await result
            except Exception as cancel_exc:
                logger.warning("Timeout cancellation failed: %s", cancel_exc)
        raise StateStoreTimeoutError(operation_name, timeout_seconds) from exc
