"""Custom exception classes for the CrowdStrike page fetcher.

Every failure of a page request is raised as one of the classes below so the
ingestion host can decide on retry and backoff without parsing messages:

- Configuration errors (unknown or misregistered entity, missing endpoint path)
- Cursor errors (malformed or wrong-dialect cursor)
- Transport errors (network failure, timeout)
- Upstream errors (non-2xx reply, explicit error array in a 200 body)
- Shape errors (response JSON does not match the expected schema)
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Error codes understood by the ingestion host."""

    INTERNAL = "ERROR_CODE_INTERNAL"
    INVALID_ENTITY_CONFIG = "ERROR_CODE_INVALID_ENTITY_CONFIG"
    INVALID_PAGE_REQUEST_CONFIG = "ERROR_CODE_INVALID_PAGE_REQUEST_CONFIG"
    INVALID_DATASOURCE_CONFIG = "ERROR_CODE_INVALID_DATASOURCE_CONFIG"
    DATASOURCE_FAILED = "ERROR_CODE_DATASOURCE_FAILED"


class AdapterException(Exception):
    """Base adapter exception.

    All custom exceptions should inherit from this class. The shape follows
    RFC 7807 Problem Details so errors can be relayed to the host verbatim.

    Attributes:
        detail: Human-readable error message.
        code: Error code reported to the ingestion host.
        type: Error type identifier.
        title: Short, human-readable summary of the problem type.
        extra: Additional context-specific information about the error.

    Example:
        raise AdapterException(
            detail="Unsupported Query for provided entity ID: group",
            code=ErrorCode.INVALID_ENTITY_CONFIG,
            type="unsupported-entity",
            extra={"entity_id": "group"},
        )
    """

    def __init__(
        self,
        detail: str,
        code: ErrorCode = ErrorCode.INTERNAL,
        type: str = "about:blank",
        title: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize adapter exception.

        Args:
            detail: Human-readable error message.
            code: Error code reported to the host.
            type: Error type identifier.
            title: Short summary of the problem type.
            extra: Additional context about the error.
        """
        self.detail = detail
        self.code = code
        self.type = type
        self.title = title or self._default_title(code)
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(code: ErrorCode) -> str:
        """Get default title for an error code."""
        titles = {
            ErrorCode.INTERNAL: "Internal Error",
            ErrorCode.INVALID_ENTITY_CONFIG: "Invalid Entity Config",
            ErrorCode.INVALID_PAGE_REQUEST_CONFIG: "Invalid Page Request",
            ErrorCode.INVALID_DATASOURCE_CONFIG: "Invalid Datasource Config",
            ErrorCode.DATASOURCE_FAILED: "Datasource Failed",
        }
        return titles.get(code, "Error")

    def to_dict(self) -> dict[str, Any]:
        """Serialize the exception as a problem-details mapping."""
        return {
            "type": self.type,
            "title": self.title,
            "code": str(self.code),
            "detail": self.detail,
            **self.extra,
        }


class ConfigurationException(AdapterException):
    """Raised when an entity or endpoint is not configured correctly.

    Example:
        raise ConfigurationException(
            detail="Provided entity external ID is invalid.",
            extra={"entity_id": "group"},
        )
    """

    def __init__(
        self,
        detail: str,
        code: ErrorCode = ErrorCode.INVALID_ENTITY_CONFIG,
        type: str = "configuration-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            detail=detail,
            code=code,
            type=type,
            title="Configuration Error",
            extra=extra,
        )


class RequestValidationException(AdapterException):
    """Raised when a GetPage request fails validation before any network call."""

    def __init__(
        self,
        detail: str,
        code: ErrorCode = ErrorCode.INVALID_PAGE_REQUEST_CONFIG,
        type: str = "validation-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            detail=detail,
            code=code,
            type=type,
            title="Validation Error",
            extra=extra,
        )


class CursorException(AdapterException):
    """Raised when the caller supplied a malformed or incompatible cursor.

    Example:
        raise CursorException(
            detail="Expected a numeric cursor for entity: endpoint_protection_detect.",
            entity_id="endpoint_protection_detect",
        )
    """

    def __init__(
        self,
        detail: str,
        entity_id: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.entity_id = entity_id
        final_extra = {"entity_id": entity_id} if entity_id else {}
        if extra:
            final_extra.update(extra)
        super().__init__(
            detail=detail,
            code=ErrorCode.INVALID_PAGE_REQUEST_CONFIG,
            type="invalid-cursor",
            title="Invalid Cursor",
            extra=final_extra or None,
        )


class TransportException(AdapterException):
    """Raised when a request could not be completed at the network level.

    Attributes:
        timed_out: True when the request exceeded its deadline.
    """

    def __init__(
        self,
        detail: str,
        timed_out: bool = False,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.timed_out = timed_out
        super().__init__(
            detail=detail,
            code=ErrorCode.INTERNAL,
            type="request-timeout" if timed_out else "transport-error",
            title="Request Timed Out" if timed_out else "Transport Error",
            extra=extra,
        )


class RequestTimeoutException(TransportException):
    """Raised when a request exceeds the configured timeout.

    Example:
        raise RequestTimeoutException(timeout_seconds=30, url="https://...")
    """

    def __init__(
        self,
        timeout_seconds: float,
        url: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        final_extra: dict[str, Any] = {"timeout_seconds": timeout_seconds}
        if url:
            final_extra["url"] = url
        if extra:
            final_extra.update(extra)
        super().__init__(
            detail=(
                "Failed to execute CrowdStrike request: request timed out "
                f"after {timeout_seconds} seconds."
            ),
            timed_out=True,
            extra=final_extra,
        )


class UpstreamStatusException(AdapterException):
    """Raised when the datasource answered with a non-2xx status.

    Carries the status code and the ``Retry-After`` hint so the host can
    apply its backoff policy.
    """

    def __init__(
        self,
        status_code: int,
        retry_after: str | None = None,
        detail: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.retry_after = retry_after
        final_extra: dict[str, Any] = {"status_code": status_code}
        if retry_after:
            final_extra["retry_after"] = retry_after
        if extra:
            final_extra.update(extra)
        super().__init__(
            detail=detail or f"Datasource responded with status code {status_code}.",
            code=ErrorCode.INTERNAL,
            type="upstream-status",
            title="Upstream Error",
            extra=final_extra,
        )


class DatasourceFailedException(AdapterException):
    """Raised when the response body reports errors, even alongside a 200.

    Example:
        raise DatasourceFailedException(
            errors=[{"code": 500, "message": "Internal error"}],
        )
    """

    def __init__(
        self,
        errors: list[dict[str, Any]],
        status_code: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.errors = errors
        self.status_code = status_code
        messages = "\n".join(
            f"Code: {error.get('code')}, Message: {error.get('message')}"
            for error in errors
        )
        final_extra: dict[str, Any] = {"errors": errors}
        if status_code is not None:
            final_extra["status_code"] = status_code
        if extra:
            final_extra.update(extra)
        super().__init__(
            detail=f"Failed to query the datasource.\nGot errors: {messages}.",
            code=ErrorCode.DATASOURCE_FAILED,
            type="datasource-failed",
            extra=final_extra,
        )


class ResponseShapeException(AdapterException):
    """Raised when a response cannot be decoded into the expected schema."""

    def __init__(
        self,
        detail: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            detail=detail,
            code=ErrorCode.INTERNAL,
            type="response-shape",
            title="Unexpected Response",
            extra=extra,
        )


__all__ = [
    "AdapterException",
    "ConfigurationException",
    "CursorException",
    "DatasourceFailedException",
    "ErrorCode",
    "RequestTimeoutException",
    "RequestValidationException",
    "ResponseShapeException",
    "TransportException",
    "UpstreamStatusException",
]
