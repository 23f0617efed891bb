"""Request context management using contextvars.

Holds the request_id that ties together every log line written while
handling one HTTP request, including the background tasks it schedules
(bonus notifications) and command-line runs of maintenance scripts.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Propagates through async calls without explicit parameter passing
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context.

    Returns
    -------
    Optional[str]
        The current request ID, or None if not set
    """
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def generate_request_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def request_context(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request ID for the duration of a block.

    Used outside HTTP handling, e.g. by scripts, so their logs can be
    traced the same way.

    Parameters
    ----------
    request_id : str | None
        ID to bind; a new one is generated when omitted

    Yields
    ------
    str
        The bound request ID
    """
    request_id = request_id or generate_request_id()
    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)
