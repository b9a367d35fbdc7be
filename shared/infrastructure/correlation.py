"""
Correlation IDs for gateway calls.

Each façade operation runs inside a correlation scope so that every retry
attempt, circuit-breaker update and final outcome it logs shares one ID.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# Context variable for the correlation ID (task-local under asyncio)
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Get the current correlation ID."""
    return request_id_var.get()


@contextmanager
def correlation_scope(request_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of the block.

    Reuses the enclosing ID when one is already bound, so nested façade
    calls (e.g. create_or_update_customer -> fetch_customer) log under the
    caller's ID.
    """
    current = request_id_var.get()
    if request_id is None:
        request_id = current or str(uuid.uuid4())

    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)


class CorrelationIdFilter:
    """
    Logging filter that adds request_id to log records.

    Usage:
        import logging
        handler = logging.StreamHandler()
        handler.addFilter(CorrelationIdFilter())
    """

    def filter(self, record) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True
