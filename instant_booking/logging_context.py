"""Request ID logging context for tracing a booking across modules.

Every module that logs while a booking is processed takes its logger from
``get_request_logger``, so records from matching, pricing, and the stores
all carry the ``request_id`` of the booking in flight. The console handler
built by ``request_id_handler`` stamps records from any other logger too,
which keeps ``%(request_id)s`` safe to use in the format string.

Usage:
    from instant_booking.logging_context import get_request_logger, request_scope

    logger = get_request_logger(__name__)
    with request_scope() as request_id:
        logger.info("Matching provider")  # record.request_id == request_id
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Optional

NO_REQUEST_ID = "NO_REQUEST_ID"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST_ID)


def new_request_id() -> str:
    return f"REQ-{uuid.uuid4().hex[:8]}"


def set_request_id(request_id: str) -> Token:
    """Set the correlation ID for the current context; returns a reset token."""
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def get_request_id() -> str:
    """Retrieve the current correlation ID."""
    return _request_id.get()


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of the block.

    The previous ID is restored on exit, including when the block raises.
    """
    token = set_request_id(request_id or new_request_id())
    try:
        yield get_request_id()
    finally:
        reset_request_id(token)


class RequestIdFilter(logging.Filter):
    """Stamps the current request_id on records that do not carry one yet."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger whose records carry the current request_id."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger


def request_id_handler() -> logging.Handler:
    """Console handler that stamps request_id on every record it emits."""
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    return handler
