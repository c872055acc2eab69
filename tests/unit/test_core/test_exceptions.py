"""Unit tests for the adapter exception hierarchy."""
from __future__ import annotations

import pytest

from falcon_fetch.core.exceptions import (
    AdapterException,
    ConfigurationException,
    CursorException,
    DatasourceFailedException,
    ErrorCode,
    RequestTimeoutException,
    RequestValidationException,
    ResponseShapeException,
    TransportException,
    UpstreamStatusException,
)


@pytest.mark.unit
class TestAdapterException:
    def test_defaults(self):
        exc = AdapterException("boom")

        assert str(exc) == "boom"
        assert exc.code == ErrorCode.INTERNAL
        assert exc.type == "about:blank"
        assert exc.title == "Internal Error"
        assert exc.extra == {}

    def test_to_dict(self):
        exc = ConfigurationException(
            "Provided entity external ID is invalid.",
            extra={"entity_id": "group"},
        )

        assert exc.to_dict() == {
            "type": "configuration-error",
            "title": "Configuration Error",
            "code": "ERROR_CODE_INVALID_ENTITY_CONFIG",
            "detail": "Provided entity external ID is invalid.",
            "entity_id": "group",
        }

    @pytest.mark.parametrize(
        "exc",
        [
            ConfigurationException("x"),
            RequestValidationException("x"),
            CursorException("x"),
            TransportException("x"),
            RequestTimeoutException(1),
            UpstreamStatusException(500),
            DatasourceFailedException([]),
            ResponseShapeException("x"),
        ],
    )
    def test_all_are_adapter_exceptions(self, exc):
        assert isinstance(exc, AdapterException)


@pytest.mark.unit
class TestTransportExceptions:
    def test_timeout_is_flagged(self):
        exc = RequestTimeoutException(timeout_seconds=30, url="https://api.crowdstrike.com/x")

        assert isinstance(exc, TransportException)
        assert exc.timed_out is True
        assert exc.type == "request-timeout"
        assert exc.extra == {"timeout_seconds": 30, "url": "https://api.crowdstrike.com/x"}
        assert "timed out after 30 seconds" in exc.detail

    def test_network_failure_is_not_timeout(self):
        exc = TransportException("connection refused")

        assert exc.timed_out is False
        assert exc.type == "transport-error"


@pytest.mark.unit
class TestUpstreamExceptions:
    def test_upstream_status_carries_retry_after(self):
        exc = UpstreamStatusException(status_code=429, retry_after="30")

        assert exc.status_code == 429
        assert exc.retry_after == "30"
        assert exc.extra == {"status_code": 429, "retry_after": "30"}

    def test_datasource_failed_concatenates_errors(self):
        exc = DatasourceFailedException(
            errors=[
                {"code": 400, "message": "bad filter"},
                {"code": 500, "message": "internal"},
            ],
            status_code=200,
        )

        assert exc.code == ErrorCode.DATASOURCE_FAILED
        assert exc.detail == (
            "Failed to query the datasource.\n"
            "Got errors: Code: 400, Message: bad filter\n"
            "Code: 500, Message: internal."
        )
        assert exc.extra["status_code"] == 200
