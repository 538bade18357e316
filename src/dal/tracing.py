import hashlib
from typing import Awaitable, Optional, TypeVar

from common.observability.context import request_id_var
from common.observability.metrics import is_metrics_enabled

T = TypeVar("T")


def trace_enabled() -> bool:
    """Return True when DAL tracing is enabled or OTEL exporter defaults apply."""
    return is_metrics_enabled("DAL_TRACE_QUERIES")


def hash_entity_key(entity_key: str) -> str:
    """Stable digest of an entity key; raw keys carry user identifiers."""
    return hashlib.sha256(entity_key.encode("utf-8")).hexdigest()


async def trace_state_operation(
    name: str,
    provider: str,
    operation: Awaitable[T],
    *,
    scope: Optional[str] = None,
    entity_key: Optional[str] = None,
) -> T:
    """Trace a bot-state store operation with OTEL when enabled."""
    if not trace_enabled():
        return await operation

    from opentelemetry import trace

    tracer = trace.get_tracer("dal")
    with tracer.start_as_current_span(name) as span:
        request_id = request_id_var.get()
        if request_id:
            span.set_attribute("request_id", request_id)
        span.set_attribute("db.provider", provider)
        if scope:
            span.set_attribute("bot_state.scope", scope)
        if entity_key:
            span.set_attribute("bot_state.key_hash", hash_entity_key(entity_key))
        try:
            result = await operation
            span.set_attribute("db.status", "ok")
            return result
        except BaseException:
            span.set_attribute("db.status", "error")
            raise
