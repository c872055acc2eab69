"""Base HTTP client for the datasource APIs.

Provides the transport the fetch paths run their requests through:
- Connection pooling (owned by the injected ``httpx.AsyncClient``)
- A hard deadline per call
- Request/response logging
- Classified transport errors (timeout vs. network failure)

The client never retries; the ingestion host owns retry and backoff policy.
"""

from __future__ import annotations

import asyncio
import json as jsonlib
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from falcon_fetch.core.exceptions import RequestTimeoutException, TransportException

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Status, headers and raw body of a completed HTTP exchange."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def retry_after(self) -> str | None:
        """The ``Retry-After`` header, verbatim, if the server sent one."""
        return self.headers.get("Retry-After") or None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        return jsonlib.loads(self.body)


class Transport(Protocol):
    """Anything able to execute one HTTP request under a deadline."""

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        timeout: float,
    ) -> TransportResponse: ...


class BaseHTTPClient:
    """HTTP client executing single requests against the datasource.

    Example:
        ```python
        async with BaseHTTPClient() as client:
            response = await client.send(
                "GET",
                "https://api.crowdstrike.com/detects/queries/detects/v1?limit=100",
                headers={"Authorization": "Bearer ..."},
                timeout=30,
            )
        ```
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize HTTP client.

        Args:
            client: Pre-built httpx client. One with connection pooling is
                created when omitted.
            headers: Default headers to include in all requests.
        """
        self.default_headers = headers or {}
        self.client = client or httpx.AsyncClient(
            headers=self.default_headers,
            limits=httpx.Limits(
                max_keepalive_connections=20,
                max_connections=100,
            ),
        )

    async def close(self) -> None:
        """Close the HTTP client and release connections."""
        await self.client.aclose()

    async def __aenter__(self) -> BaseHTTPClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        timeout: float,
    ) -> TransportResponse:
        """Execute one request and read the whole body.

        Args:
            method: HTTP method.
            url: Absolute request URL.
            headers: Headers for this request.
            json: JSON body, if any.
            timeout: Deadline for the whole exchange, in seconds.

        Returns:
            The response, whatever its status code.

        Raises:
            RequestTimeoutException: If the deadline expired.
            TransportException: On any other network-level failure.
        """
        logger.info(
            "Sending HTTP request to datasource",
            extra={"method": method, "url": url, "has_json": json is not None},
        )

        start = time.perf_counter()
        try:
            async with asyncio.timeout(timeout):
                response = await self.client.request(
                    method,
                    url,
                    headers=dict(headers or {}),
                    json=json,
                    timeout=httpx.Timeout(timeout),
                )
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.error(
                "HTTP request to datasource timed out",
                extra={"method": method, "url": url, "timeout_seconds": timeout},
            )
            raise RequestTimeoutException(timeout_seconds=timeout, url=url) from e
        except httpx.HTTPError as e:
            logger.error(
                "HTTP request to datasource failed",
                extra={"method": method, "url": url, "exception": str(e)},
            )
            raise TransportException(
                detail=f"Failed to execute CrowdStrike request: {e}.",
                extra={"url": url},
            ) from e

        logger.info(
            "HTTP response from datasource",
            extra={
                "method": method,
                "url": url,
                "status_code": response.status_code,
                "duration_ms": (time.perf_counter() - start) * 1000,
            },
        )

        return TransportResponse(
            status_code=response.status_code,
            headers=response.headers,
            body=response.content,
        )
