"""Fetch path for entities served by the identity protection GraphQL API.

Exactly one query is executed per page. The reply carries either an
``entities`` or an ``incidents`` collection; its ``pageInfo`` decides whether
a next cursor is emitted.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from falcon_fetch.core.exceptions import (
    DatasourceFailedException,
    ResponseShapeException,
    UpstreamStatusException,
)
from falcon_fetch.core.pagination import CompositeCursor, page_info_after
from falcon_fetch.core.settings import CrowdStrikeSettings, get_crowdstrike_settings
from falcon_fetch.features.crowdstrike.entities import EntityDescriptor
from falcon_fetch.features.crowdstrike.queries import build_graphql_query
from falcon_fetch.features.crowdstrike.schemas import (
    FetchRequest,
    FetchResponse,
    ResponseItems,
)
from falcon_fetch.infra.external import Transport, TransportResponse

logger = logging.getLogger(__name__)


def parse_graphql_response(
    response: TransportResponse, descriptor: EntityDescriptor
) -> tuple[list[dict[str, Any]], CompositeCursor | None]:
    """Extract the nodes and the next cursor from a GraphQL reply.

    Raises:
        DatasourceFailedException: If the reply carries a GraphQL ``errors`` array.
        ResponseShapeException: If the reply does not hold the expected collection.
    """
    try:
        payload = response.json()
    except ValueError as e:
        raise ResponseShapeException(
            detail=f"Failed to unmarshal the datasource response: {e}.",
        ) from e

    if not isinstance(payload, dict):
        raise ResponseShapeException(
            detail="Failed to unmarshal the datasource response: expected a JSON object.",
        )

    if errors := payload.get("errors"):
        raise DatasourceFailedException(
            errors=[
                {
                    "code": (error.get("extensions") or {}).get("code"),
                    "message": error.get("message", ""),
                }
                if isinstance(error, dict)
                else {"code": None, "message": str(error)}
                for error in errors
            ],
            status_code=response.status_code,
        )

    data = payload.get("data", payload)
    collection = descriptor.graphql_collection or "entities"
    raw_items = data.get(collection) if isinstance(data, dict) else None
    if not isinstance(raw_items, dict):
        raise ResponseShapeException(
            detail=f"Missing {collection} in the datasource response.",
            extra={"entity_id": descriptor.entity_id},
        )

    try:
        items = ResponseItems.model_validate(raw_items)
    except ValidationError as e:
        raise ResponseShapeException(
            detail=f"Failed to unmarshal the datasource response: {e}.",
            extra={"entity_id": descriptor.entity_id},
        ) from e

    next_cursor = None
    end_cursor = page_info_after(items.page_info, 0)
    if items.page_info.has_next_page and end_cursor:
        next_cursor = CompositeCursor(cursor=end_cursor)

    return items.nodes or [], next_cursor


class GraphQLFetcher:
    """Fetch one page of a GraphQL entity."""

    def __init__(
        self,
        transport: Transport,
        settings: CrowdStrikeSettings | None = None,
    ) -> None:
        self.transport = transport
        self.settings = settings or get_crowdstrike_settings()

    def endpoint(self, request: FetchRequest) -> str:
        return f"{request.base_url.rstrip('/')}/{self.settings.graphql_path(request.api_version)}"

    async def fetch_page(
        self, request: FetchRequest, descriptor: EntityDescriptor
    ) -> FetchResponse:
        """Execute the page query and normalize the reply.

        Raises:
            ConfigurationException: If no query can be built for the entity.
            TransportException: If the request could not be completed.
            UpstreamStatusException: If the API answered with a non-2xx status.
            DatasourceFailedException: If the reply carries GraphQL errors.
            ResponseShapeException: If the reply has an unexpected shape.
        """
        query = build_graphql_query(descriptor, request)
        url = self.endpoint(request)

        response = await self.transport.send(
            "POST",
            url,
            headers={
                "Authorization": request.authorization,
                "Cache-Control": "no-cache",
                "Content-Type": "application/json",
            },
            json={"query": query, "variables": None},
            timeout=request.timeout_seconds,
        )

        if not response.is_success:
            logger.error(
                "Datasource request failed",
                extra={
                    "url": url,
                    "status_code": response.status_code,
                    "retry_after": response.retry_after,
                },
            )
            raise UpstreamStatusException(
                status_code=response.status_code,
                retry_after=response.retry_after,
                detail=f"Failed to run the query: server returned status code {response.status_code}.",
            )

        records, next_cursor = parse_graphql_response(response, descriptor)

        logger.info(
            "Datasource request completed successfully",
            extra={
                "status_code": response.status_code,
                "object_count": len(records),
                "has_next_cursor": next_cursor is not None,
            },
        )

        return FetchResponse(status_code=200, records=records, next_cursor=next_cursor)
