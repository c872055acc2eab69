"""Unit tests for the datasource HTTP transport."""
from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from falcon_fetch.core.exceptions import RequestTimeoutException, TransportException
from falcon_fetch.infra.external import BaseHTTPClient, TransportResponse

from tests.utils import BASE_URL, FakeDatasource


@pytest.mark.unit
class TestTransportResponse:
    def test_retry_after_verbatim(self):
        response = TransportResponse(status_code=429, headers={"Retry-After": "120"})

        assert response.retry_after == "120"
        assert response.is_success is False

    def test_retry_after_missing(self):
        assert TransportResponse(status_code=200).retry_after is None

    def test_json(self):
        assert TransportResponse(status_code=200, body=b'{"a": 1}').json() == {"a": 1}

    def test_json_invalid(self):
        with pytest.raises(ValueError):
            TransportResponse(status_code=200, body=b"<html>").json()


@pytest.mark.unit
class TestBaseHTTPClient:
    """Tests for BaseHTTPClient.send."""

    @pytest.mark.asyncio
    async def test_send_returns_response(self, make_transport):
        fake = FakeDatasource(
            httpx.Response(503, headers={"Retry-After": "10"}, json={"errors": []})
        )

        async with make_transport(fake) as client:
            response = await client.send(
                "POST",
                f"{BASE_URL}/x",
                headers={"Authorization": "Bearer t"},
                json={"ids": ["a"]},
                timeout=5,
            )

        assert response.status_code == 503
        assert response.retry_after == "10"
        assert response.json() == {"errors": []}
        assert fake.requests[0].headers["Authorization"] == "Bearer t"
        assert fake.json_body(0) == {"ids": ["a"]}

    @pytest.mark.asyncio
    async def test_response_log_has_duration(self, make_transport, caplog):
        """Replies built up front are logged with the measured call duration."""
        fake = FakeDatasource(httpx.Response(200, json={"resources": []}))

        async with make_transport(fake) as client:
            with caplog.at_level(logging.INFO, logger="falcon_fetch"):
                response = await client.send("GET", f"{BASE_URL}/x", timeout=5)

        assert response.json() == {"resources": []}
        records = [r for r in caplog.records if r.getMessage() == "HTTP response from datasource"]
        assert len(records) == 1
        assert records[0].status_code == 200
        assert records[0].duration_ms >= 0

    @pytest.mark.asyncio
    async def test_httpx_timeout_is_classified(self, make_transport):
        fake = FakeDatasource(httpx.ReadTimeout("read timed out"))

        async with make_transport(fake) as client:
            with pytest.raises(RequestTimeoutException) as exc_info:
                await client.send("GET", f"{BASE_URL}/x", timeout=5)

        assert exc_info.value.timed_out is True
        assert exc_info.value.extra["url"] == f"{BASE_URL}/x"

    @pytest.mark.asyncio
    async def test_deadline_is_enforced(self):
        async def slow(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200)

        client = BaseHTTPClient(httpx.AsyncClient(transport=httpx.MockTransport(slow)))
        async with client:
            with pytest.raises(RequestTimeoutException):
                await client.send("GET", f"{BASE_URL}/x", timeout=0.01)

    @pytest.mark.asyncio
    async def test_network_failure(self, make_transport):
        fake = FakeDatasource(httpx.ConnectError("connection refused"))

        async with make_transport(fake) as client:
            with pytest.raises(TransportException) as exc_info:
                await client.send("GET", f"{BASE_URL}/x", timeout=5)

        assert exc_info.value.timed_out is False
        assert "connection refused" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        started = asyncio.Event()

        async def hang(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(200)

        async with BaseHTTPClient(httpx.AsyncClient(transport=httpx.MockTransport(hang))) as client:
            task = asyncio.create_task(client.send("GET", f"{BASE_URL}/x", timeout=30))
            await started.wait()
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task
