"""Adapter serving GetPage requests from the ingestion host."""

from __future__ import annotations

import logging

from falcon_fetch.core.exceptions import UpstreamStatusException
from falcon_fetch.core.pagination import CursorCodec
from falcon_fetch.core.settings import CrowdStrikeSettings, get_crowdstrike_settings
from falcon_fetch.features.crowdstrike.datasource import CrowdStrikeDatasource
from falcon_fetch.features.crowdstrike.entities import (
    ApiProtocol,
    EntityRegistry,
    get_entity_registry,
)
from falcon_fetch.features.crowdstrike.schemas import FetchRequest, Page, PageRequest
from falcon_fetch.features.crowdstrike.validation import (
    normalize_address,
    validate_get_page_request,
)
from falcon_fetch.infra.logging import log_context

logger = logging.getLogger(__name__)


class CrowdStrikeAdapter:
    """Translate host page requests into datasource fetches.

    Example:
        ```python
        async with BaseHTTPClient() as transport:
            adapter = CrowdStrikeAdapter(CrowdStrikeDatasource(transport))
            page = await adapter.get_page(request)
            while page.next_cursor:
                page = await adapter.get_page(request.model_copy(update={"cursor": page.next_cursor}))
        ```
    """

    def __init__(
        self,
        datasource: CrowdStrikeDatasource,
        registry: EntityRegistry | None = None,
        settings: CrowdStrikeSettings | None = None,
    ) -> None:
        self.datasource = datasource
        self.registry = registry or get_entity_registry()
        self.settings = settings or get_crowdstrike_settings()

    def build_fetch_request(self, request: PageRequest) -> FetchRequest:
        """Validate a page request and turn it into a datasource fetch.

        Raises:
            RequestValidationException: If the request is invalid.
            ConfigurationException: If the entity is unknown or misregistered.
            CursorException: If the incoming cursor cannot be decoded.
        """
        descriptor = validate_get_page_request(request, self.registry, self.settings)
        # Present and carrying an apiVersion once validated
        config = request.config

        entity_id = descriptor.entity_id
        cursor = CursorCodec.decode(request.cursor, entity_id=entity_id)
        is_rest = descriptor.protocol is ApiProtocol.REST

        return FetchRequest(
            base_url=normalize_address(request.address),
            token=request.token,
            entity_id=entity_id,
            page_size=request.page_size,
            attributes=[attribute.external_id for attribute in request.entity.attributes],
            filter=config.filters.get(entity_id) if is_rest else None,
            graphql_cursor=None if is_rest else cursor,
            rest_cursor=cursor if is_rest else None,
            timeout_seconds=config.request_timeout_seconds or self.settings.request_timeout_seconds,
            api_version=config.api_version,
            archived=config.archived,
            enabled=config.enabled,
        )

    async def get_page(self, request: PageRequest) -> Page:
        """Fetch one page of objects for the requested entity.

        Raises:
            AdapterException: Any validation, cursor, transport or datasource failure.
            UpstreamStatusException: If the datasource answered with a non-2xx status.
        """
        with log_context(entity_id=request.entity.external_id, page_size=request.page_size):
            fetch_request = self.build_fetch_request(request)
            response = await self.datasource.get_page(fetch_request)

            if response.status_code != 200:
                raise UpstreamStatusException(
                    status_code=response.status_code,
                    retry_after=response.retry_after,
                    detail=(
                        "Failed to query the datasource: server returned status code "
                        f"{response.status_code}."
                    ),
                )

            page = Page(
                status_code=response.status_code,
                retry_after=response.retry_after,
                records=response.records,
                next_cursor=CursorCodec.encode(response.next_cursor),
            )

            logger.info(
                "Page request completed",
                extra={
                    "object_count": len(page.records),
                    "has_next_cursor": page.next_cursor is not None,
                },
            )
            return page
