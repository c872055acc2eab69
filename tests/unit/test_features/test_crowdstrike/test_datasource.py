"""Unit tests for protocol dispatch in the datasource."""
from __future__ import annotations

import httpx
import pytest

from falcon_fetch.core.exceptions import ConfigurationException
from falcon_fetch.features.crowdstrike.datasource import CrowdStrikeDatasource

from tests.utils import FakeDatasource, graphql_reply, list_reply


@pytest.mark.unit
class TestCrowdStrikeDatasource:
    @pytest.mark.asyncio
    async def test_graphql_entity(self, registry, settings, make_transport, make_fetch_request):
        fake = FakeDatasource(
            httpx.Response(200, json=graphql_reply("incidents", [{"incidentId": "i1"}], has_next=False))
        )

        async with make_transport(fake) as transport:
            response = await CrowdStrikeDatasource(transport, registry, settings).get_page(
                make_fetch_request("incident")
            )

        assert response.records == [{"incidentId": "i1"}]
        assert fake.requests[0].url.path.endswith("/graphql/v1")

    @pytest.mark.asyncio
    async def test_rest_entity(self, registry, settings, make_transport, make_fetch_request):
        fake = FakeDatasource(
            httpx.Response(200, json=list_reply(["x"], total=1)),
            httpx.Response(200, json={"resources": [{"incident_id": "x"}]}),
        )

        async with make_transport(fake) as transport:
            response = await CrowdStrikeDatasource(transport, registry, settings).get_page(
                make_fetch_request("endpoint_protection_incident")
            )

        assert response.records == [{"incident_id": "x"}]
        assert response.next_cursor is None
        assert [r.method for r in fake.requests] == ["GET", "POST"]

    @pytest.mark.asyncio
    async def test_unknown_entity(self, registry, settings, make_transport, make_fetch_request):
        fake = FakeDatasource()

        async with make_transport(fake) as transport:
            with pytest.raises(ConfigurationException):
                await CrowdStrikeDatasource(transport, registry, settings).get_page(
                    make_fetch_request("group")
                )

        assert fake.requests == []
