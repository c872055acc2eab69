"""JSON Lines formatter for datasource logs."""
from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

# Attributes every LogRecord carries; anything else was passed via ``extra=``
# or injected by ContextInjectingFilter.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# Extra fields whose values must never reach the output.
REDACTED_FIELDS = frozenset({"authorization", "token", "password", "api_key"})
REDACTED = "[REDACTED]"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, UTC timestamps, extra fields inlined.

    Records emitted while an OpenTelemetry span is active carry its
    ``trace_id`` and ``span_id``. Credential-bearing extra fields (see
    ``REDACTED_FIELDS``) are replaced with ``[REDACTED]``.

    Example output:
        ```json
        {"level": "INFO", "logger": "falcon_fetch.features.crowdstrike.rest", "message": "Datasource request completed successfully", "timestamp": "2025-01-01T00:00:00.123Z", "service": "falcon-fetch", "entity_id": "endpoint_protection_device", "object_count": 2}
        ```
    """

    def __init__(
        self,
        fmt_keys: dict[str, str] | None = None,
        static: dict[str, Any] | None = None,
    ) -> None:
        """Initialize JSON formatter.

        Args:
            fmt_keys: Output key to LogRecord attribute mapping.
                Default: {"level": "levelname", "logger": "name", "message": "message"}
            static: Fields added to every record, e.g. {"service": "falcon-fetch"}.
        """
        super().__init__()
        self.fmt_keys = fmt_keys or {
            "level": "levelname",
            "logger": "name",
            "message": "message",
        }
        self.static = static or {}

    @staticmethod
    def _timestamp(record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        return created.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @staticmethod
    def _trace_fields() -> dict[str, str]:
        span_context = trace.get_current_span().get_span_context()
        if not span_context.is_valid:
            return {}
        return {
            "trace_id": format(span_context.trace_id, "032x"),
            "span_id": format(span_context.span_id, "016x"),
        }

    @staticmethod
    def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
        return {
            key: REDACTED if key.lower() in REDACTED_FIELDS else value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
        }

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict[str, Any] = {
            key: getattr(record, attr, None) for key, attr in self.fmt_keys.items()
        }
        data["timestamp"] = self._timestamp(record)
        data.update(self._trace_fields())

        # Single line per record
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info).replace("\n", "\\n")
        if record.stack_info:
            data["stack_trace"] = record.stack_info.replace("\n", "\\n")

        data.update(self.static)
        for key, value in self._extra_fields(record).items():
            data.setdefault(key, value)

        return json.dumps(data, ensure_ascii=False, default=str)
