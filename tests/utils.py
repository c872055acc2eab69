"""Test utilities and helper functions.

Usage:
    from tests.utils import BASE_URL, FakeDatasource

    fake = FakeDatasource(httpx.Response(200, json={"resources": []}))
    transport = make_transport(fake)  # fixture from tests/conftest.py
"""

from __future__ import annotations

import json
from typing import Any

import httpx

BASE_URL = "https://api.crowdstrike.com"


class FakeDatasource:
    """Scripted ``httpx.MockTransport`` handler.

    Replies are served in order; an exception in the script is raised instead
    of answering. Every request received is kept for assertions.

    Example:
        fake = FakeDatasource(httpx.Response(200, json={"resources": []}))
        ...
        assert fake.requests[0].method == "GET"
    """

    def __init__(self, *replies: httpx.Response | Exception) -> None:
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.replies:
            msg = f"unexpected request: {request.method} {request.url}"
            raise AssertionError(msg)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def json_body(self, index: int) -> Any:
        """Decoded JSON body of the request at ``index``."""
        return json.loads(self.requests[index].content)


def graphql_reply(
    collection: str,
    nodes: list[dict[str, Any]],
    *,
    has_next: bool,
    end_cursor: str = "",
) -> dict[str, Any]:
    """Body of a successful GraphQL page."""
    return {
        "data": {
            collection: {
                "nodes": nodes,
                "pageInfo": {"hasNextPage": has_next, "endCursor": end_cursor},
            }
        }
    }


def list_reply(
    ids: list[str],
    *,
    offset: int | str | None = 0,
    total: int = 0,
    limit: int = 100,
) -> dict[str, Any]:
    """Body of a successful REST list-phase page."""
    return {
        "meta": {"pagination": {"offset": offset, "limit": limit, "total": total}},
        "resources": ids,
        "errors": [],
    }
