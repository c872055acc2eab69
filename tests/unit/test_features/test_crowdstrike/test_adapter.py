"""End-to-end tests for the GetPage adapter."""
from __future__ import annotations

import base64
import json
import logging

import httpx
import pytest

from falcon_fetch.core.exceptions import (
    CursorException,
    RequestValidationException,
    UpstreamStatusException,
)
from falcon_fetch.core.pagination import CompositeCursor, CursorCodec
from falcon_fetch.features.crowdstrike import (
    CrowdStrikeAdapter,
    CrowdStrikeDatasource,
    DatasourceConfig,
)

from tests.utils import BASE_URL, FakeDatasource, graphql_reply, list_reply


def _adapter(transport, registry, settings) -> CrowdStrikeAdapter:
    return CrowdStrikeAdapter(CrowdStrikeDatasource(transport, registry, settings), registry, settings)


@pytest.mark.unit
class TestBuildFetchRequest:
    def test_graphql_cursor_and_no_filter(self, registry, settings, make_transport, make_page_request):
        request = make_page_request(
            "user",
            cursor=CursorCodec.encode(CompositeCursor(cursor="c1")),
            config=DatasourceConfig(api_version="v1", archived=True, filters={"user": "ignored"}),
        )

        fetch = _adapter(make_transport(FakeDatasource()), registry, settings).build_fetch_request(request)

        assert fetch.base_url == BASE_URL
        assert fetch.graphql_cursor == CompositeCursor(cursor="c1")
        assert fetch.rest_cursor is None
        assert fetch.filter is None
        assert fetch.archived is True
        assert fetch.timeout_seconds == settings.request_timeout_seconds
        assert fetch.attributes == ["entityId", "riskScore"]

    def test_rest_cursor_and_filter(self, registry, settings, make_transport, make_page_request):
        request = make_page_request(
            "endpoint_protection_detect",
            unique_id="detection_id",
            cursor=CursorCodec.encode(CompositeCursor(cursor="100")),
            config=DatasourceConfig(
                api_version="v1",
                filters={"endpoint_protection_detect": "status:'new'"},
                request_timeout_seconds=7,
            ),
        )

        fetch = _adapter(make_transport(FakeDatasource()), registry, settings).build_fetch_request(request)

        assert fetch.rest_cursor == CompositeCursor(cursor="100")
        assert fetch.graphql_cursor is None
        assert fetch.filter == "status:'new'"
        assert fetch.timeout_seconds == 7

    def test_config_is_required(self, registry, settings, make_transport, make_page_request):
        """The per-request config is not replaced with defaults."""
        adapter = _adapter(make_transport(FakeDatasource()), registry, settings)

        with pytest.raises(RequestValidationException):
            adapter.build_fetch_request(make_page_request("user", config=None))
        with pytest.raises(RequestValidationException):
            adapter.build_fetch_request(make_page_request("user", config=DatasourceConfig()))

    def test_api_version_from_config(self, registry, settings, make_transport, make_page_request):
        fetch = _adapter(make_transport(FakeDatasource()), registry, settings).build_fetch_request(
            make_page_request("user")
        )

        assert fetch.api_version == "v1"
        assert fetch.token == "test-token"

    def test_malformed_cursor(self, registry, settings, make_transport, make_page_request):
        request = make_page_request("user", cursor="%%%")

        with pytest.raises(CursorException) as exc_info:
            _adapter(make_transport(FakeDatasource()), registry, settings).build_fetch_request(request)

        assert exc_info.value.entity_id == "user"


@pytest.mark.unit
class TestCrowdStrikeAdapter:
    """GetPage through the adapter against a fake API."""

    @pytest.mark.asyncio
    async def test_user_page(self, registry, settings, make_transport, make_page_request):
        fake = FakeDatasource(
            httpx.Response(
                200,
                json=graphql_reply(
                    "entities",
                    [{"entityId": "1"}, {"entityId": "2"}],
                    has_next=True,
                    end_cursor="c1",
                ),
            )
        )

        async with make_transport(fake) as transport:
            page = await _adapter(transport, registry, settings).get_page(make_page_request("user"))

        assert page.status_code == 200
        assert len(page.records) == 2
        assert json.loads(base64.b64decode(page.next_cursor)) == {"cursor": "c1"}

        query = fake.json_body(0)["query"]
        for fragment in ("types: [USER]", "sortKey: RISK_SCORE", "sortOrder: DESCENDING", "first: 100"):
            assert fragment in query
        assert "after:" not in query

    @pytest.mark.asyncio
    async def test_paging_through_detects(self, registry, settings, make_transport, make_page_request):
        fake = FakeDatasource(
            httpx.Response(200, json=list_reply(["a"], total=150)),
            httpx.Response(200, json={"resources": [{"id": "a"}]}),
            httpx.Response(200, json=list_reply(["b"], offset=100, total=150)),
            httpx.Response(200, json={"resources": [{"id": "b"}]}),
        )
        request = make_page_request("endpoint_protection_detect", unique_id="detection_id")

        async with make_transport(fake) as transport:
            adapter = _adapter(transport, registry, settings)
            first = await adapter.get_page(request)
            second = await adapter.get_page(request.model_copy(update={"cursor": first.next_cursor}))

        assert CursorCodec.decode(first.next_cursor) == CompositeCursor(cursor="100")
        assert second.records == [{"id": "b"}]
        assert second.next_cursor is None
        assert fake.requests[2].url.params["offset"] == "100"

    @pytest.mark.asyncio
    async def test_status_becomes_upstream_error(self, registry, settings, make_transport, make_page_request):
        fake = FakeDatasource(httpx.Response(429, headers={"Retry-After": "30"}))
        request = make_page_request("endpoint_protection_detect", unique_id="detection_id")

        async with make_transport(fake) as transport:
            with pytest.raises(UpstreamStatusException) as exc_info:
                await _adapter(transport, registry, settings).get_page(request)

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == "30"

    @pytest.mark.asyncio
    async def test_invalid_request_sends_nothing(self, registry, settings, make_transport, make_page_request):
        fake = FakeDatasource()

        async with make_transport(fake) as transport:
            with pytest.raises(RequestValidationException):
                await _adapter(transport, registry, settings).get_page(make_page_request(ordered=True))

        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_logs_carry_entity_context(
        self, registry, settings, make_transport, make_page_request, caplog
    ):
        fake = FakeDatasource(
            httpx.Response(200, json=graphql_reply("entities", [], has_next=False))
        )

        async with make_transport(fake) as transport:
            with caplog.at_level(logging.INFO, logger="falcon_fetch"):
                page = await _adapter(transport, registry, settings).get_page(make_page_request("user"))

        assert page.next_cursor is None
        completed = [r for r in caplog.records if r.getMessage() == "Page request completed"]
        assert completed
        assert completed[0].object_count == 0
        assert "test-token" not in caplog.text
