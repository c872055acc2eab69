"""Logging infrastructure.

Provides structured logging with:
- JSONL format for Loki/Elasticsearch ingestion
- Automatic context injection (entity_id, page_size, ...)
- OpenTelemetry trace correlation

Basic usage:
    from falcon_fetch.infra.logging import log_context, setup_logging
    import logging

    setup_logging()
    logger = logging.getLogger(__name__)

    with log_context(entity_id="user"):
        logger.info("Starting datasource request")  # Includes entity_id
"""

from falcon_fetch.infra.logging.config import configure_logging, setup_logging
from falcon_fetch.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    set_log_context,
)
from falcon_fetch.infra.logging.formatters import JSONFormatter

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "configure_logging",
    "get_log_context",
    "log_context",
    "set_log_context",
    "setup_logging",
]
