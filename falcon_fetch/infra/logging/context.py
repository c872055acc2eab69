"""Context management for structured logging.

Provides automatic context injection into log records using contextvars, so
the entity id and page size of the page request being served are included in
every log message without explicit passing. Each asyncio task gets its own
copy, so concurrent page requests never see each other's context.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Set logging context for current async task/thread.

    Args:
        **kwargs: Key-value pairs to add to logging context.

    Example:
        ```python
        set_log_context(entity_id="user", page_size=100)
        logger.info("Starting datasource request")  # Includes entity_id, page_size
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for current async task/thread."""
    _log_context.set({})


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind context for the duration of a block, restoring the previous context after.

    Example:
        ```python
        with log_context(entity_id="endpoint_protection_device"):
            await datasource.get_page(request)
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    token = _log_context.set(current)
    try:
        yield
    finally:
        _log_context.reset(token)


class ContextInjectingFilter(logging.Filter):
    """Logging filter that injects the contextvars log context into each LogRecord.

    Example:
        ```python
        config = {
            "filters": {
                "context": {
                    "()": "falcon_fetch.infra.logging.context.ContextInjectingFilter"
                }
            },
            "root": {"level": "INFO", "handlers": ["console"], "filters": ["context"]},
        }
        ```
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            # Don't overwrite existing attributes
            if not hasattr(record, key):
                setattr(record, key, value)

        return True
