from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


@contextmanager
def request_context(request_id: Optional[str]) -> Iterator[None]:
    """Bind a request id for spans emitted inside the block."""
    token = request_id_var.set(request_id)
    try:
        yield
    finally:
        request_id_var.reset(token)
