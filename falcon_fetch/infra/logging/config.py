"""Logging configuration setup.

Provides logging configuration using:
- dictConfig for flexible configuration
- ContextInjectingFilter for automatic context propagation
- A single stderr handler on the root logger (child loggers propagate)
- JSONL format for machine parsing, or plain text for local runs
"""

from __future__ import annotations

import logging
import logging.config
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from falcon_fetch.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)
_LOGGING_INITIALIZED = False


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from falcon_fetch.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    log_config = {**settings_obj.to_logging_kwargs(), **configure_kwargs}
    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    service_name: str = "falcon-fetch",
    include_context: bool = True,
    include_function_name: bool = False,
    capture_warnings: bool = True,
    **kwargs: Any,
) -> None:
    """Configure the root logger with dictConfig.

    Args:
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_logs: Enable JSONL (JSON Lines) structured logging.
        service_name: Static ``service`` field added to JSON records.
        include_context: Enable ContextInjectingFilter for auto context.
        include_function_name: Include function name in records.
        capture_warnings: Forward Python warnings to logging system.
        **kwargs: Ignored extra settings.

    Example:
        from falcon_fetch.core.settings import get_logging_settings
        configure_logging(**get_logging_settings().to_logging_kwargs())
    """
    if kwargs:
        logger.debug("Unused logging kwargs supplied: %s", ", ".join(sorted(kwargs.keys())))

    if capture_warnings:
        logging.captureWarnings(True)

    logging.config.dictConfig(
        _build_config(
            log_level=log_level,
            json_logs=json_logs,
            service_name=service_name,
            include_context=include_context,
            include_function_name=include_function_name,
        )
    )


def _build_config(
    log_level: str,
    json_logs: bool,
    service_name: str,
    include_context: bool,
    include_function_name: bool,
) -> dict[str, Any]:
    """Build the dictConfig mapping."""
    if json_logs:
        fmt_keys = {
            "level": "levelname",
            "logger": "name",
            "message": "message",
        }
        if include_function_name:
            fmt_keys["function"] = "funcName"

        formatter: dict[str, Any] = {
            "()": "falcon_fetch.infra.logging.formatters.JSONFormatter",
            "fmt_keys": fmt_keys,
            "static": {"service": service_name},
        }
    else:
        format_parts = ["%(asctime)s", "%(levelname)s", "%(name)s"]
        if include_function_name:
            format_parts.append("%(funcName)s")
        format_parts.append("%(message)s")
        formatter = {"format": " | ".join(format_parts)}

    filters: dict[str, Any] = {}
    handler_filters: list[str] = []
    if include_context:
        filters["context"] = {
            "()": "falcon_fetch.infra.logging.context.ContextInjectingFilter",
        }
        handler_filters.append("context")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "filters": filters,
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "filters": handler_filters,
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "level": log_level.upper(),
            "handlers": ["console"],
        },
        "loggers": {
            # Request lines from httpx duplicate our own request logging.
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
    }
