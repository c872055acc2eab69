"""Datasource: dispatch a fetch request to the fetch path of its protocol."""
from __future__ import annotations

import logging
from typing import Protocol

from falcon_fetch.core.settings import CrowdStrikeSettings, get_crowdstrike_settings
from falcon_fetch.features.crowdstrike.entities import (
    ApiProtocol,
    EntityDescriptor,
    EntityRegistry,
    get_entity_registry,
)
from falcon_fetch.features.crowdstrike.graphql import GraphQLFetcher
from falcon_fetch.features.crowdstrike.rest import RESTFetcher
from falcon_fetch.features.crowdstrike.schemas import FetchRequest, FetchResponse
from falcon_fetch.infra.external import Transport

logger = logging.getLogger(__name__)


class PageFetcher(Protocol):
    async def fetch_page(
        self, request: FetchRequest, descriptor: EntityDescriptor
    ) -> FetchResponse: ...


class CrowdStrikeDatasource:
    """Query pages of raw records from CrowdStrike.

    Holds no state between calls; any number of pages may be fetched
    concurrently through one instance.

    Example:
        ```python
        async with BaseHTTPClient() as transport:
            datasource = CrowdStrikeDatasource(transport)
            response = await datasource.get_page(request)
        ```
    """

    def __init__(
        self,
        transport: Transport,
        registry: EntityRegistry | None = None,
        settings: CrowdStrikeSettings | None = None,
    ) -> None:
        self.registry = registry or get_entity_registry()
        self.fetchers: dict[ApiProtocol, PageFetcher] = {
            ApiProtocol.GRAPHQL: GraphQLFetcher(transport, settings or get_crowdstrike_settings()),
            ApiProtocol.REST: RESTFetcher(transport),
        }

    async def get_page(self, request: FetchRequest) -> FetchResponse:
        """Fetch one page for the requested entity.

        Raises:
            ConfigurationException: If the entity is unknown or registered twice.
            AdapterException: Any classified failure of the fetch path.
        """
        descriptor = self.registry.resolve(request.entity_id)

        logger.info(
            "Starting datasource request",
            extra={
                "entity_id": request.entity_id,
                "page_size": request.page_size,
                "protocol": str(descriptor.protocol),
            },
        )

        return await self.fetchers[descriptor.protocol].fetch_page(request, descriptor)
