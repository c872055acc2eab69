"""Fetch path for entities served by the Falcon REST APIs.

Most REST entities are fetched in two phases: a GET on the list endpoint
returns resource ids and pagination metadata, then a POST of those ids to the
detail endpoint returns the full records. The detail reply has no pagination
of its own, so the list phase alone decides the next cursor.

Alerts are fetched in a single phase: the detail endpoint accepts the
limit, ``after`` token and filter in its body and returns its own ``after``.

List-phase pagination comes in two dialects:

- integer offset (``meta.pagination.offset/limit/total`` are integers)
- opaque scroll token (``meta.pagination.offset`` is a string)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from falcon_fetch.core.exceptions import (
    ConfigurationException,
    DatasourceFailedException,
    ResponseShapeException,
)
from falcon_fetch.core.pagination import CompositeCursor
from falcon_fetch.features.crowdstrike.endpoints import (
    construct_detail_endpoint,
    construct_list_endpoint,
    parse_offset,
)
from falcon_fetch.features.crowdstrike.entities import CursorDialect, EntityDescriptor
from falcon_fetch.features.crowdstrike.schemas import (
    AlertsRequestBody,
    AlertsResponse,
    DetailedResourceRequestBody,
    DetailedResourceResponse,
    ErrorItem,
    FetchRequest,
    FetchResponse,
    ListResourceResponse,
    ListScrollResourceResponse,
)
from falcon_fetch.infra.external import Transport, TransportResponse

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _error_item(error: Any) -> dict[str, Any]:
    try:
        return ErrorItem.model_validate(error).model_dump()
    except ValidationError:
        return {"code": None, "message": str(error)}


def decode_body(response: TransportResponse, model: type[ModelT], what: str) -> ModelT:
    """Decode a REST reply, raising reported errors before checking the shape.

    An ``errors`` array takes precedence over everything else in the body,
    even when the HTTP status was 200.

    Raises:
        DatasourceFailedException: If the body reports errors.
        ResponseShapeException: If the body is not the expected JSON object.
    """
    try:
        payload = response.json()
    except ValueError as e:
        raise ResponseShapeException(
            detail=f"Failed to unmarshal the {what} in datasource response: {e}.",
        ) from e

    if not isinstance(payload, dict):
        raise ResponseShapeException(
            detail=f"Failed to unmarshal the {what} in datasource response: expected a JSON object.",
        )

    if errors := payload.get("errors"):
        if not isinstance(errors, list):
            errors = [errors]
        raise DatasourceFailedException(
            errors=[_error_item(error) for error in errors],
            status_code=response.status_code,
        )

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ResponseShapeException(
            detail=f"Failed to unmarshal the {what} in datasource response: {e}.",
        ) from e


def parse_list_response(
    response: TransportResponse, request: FetchRequest
) -> tuple[list[str], CompositeCursor | None]:
    """Parse an integer-offset list reply.

    The next offset is the incoming offset (0 on the first page) plus the page
    size; a cursor is emitted only while ``total`` exceeds it.
    """
    data = decode_body(response, ListResourceResponse, "resource IDs")
    if data.resources is None:
        raise ResponseShapeException(detail="Missing resource IDs in the datasource response.")

    next_offset = request.page_size
    if request.rest_cursor is not None and request.rest_cursor.cursor:
        next_offset += parse_offset(request.rest_cursor.cursor, request.entity_id)

    next_cursor = None
    if data.meta.pagination.total > next_offset:
        next_cursor = CompositeCursor(cursor=str(next_offset))

    return data.resources, next_cursor


def parse_list_scroll_response(
    response: TransportResponse, request: FetchRequest
) -> tuple[list[str], CompositeCursor | None]:
    """Parse a scroll-token list reply.

    The ``devices-scroll`` endpoint keeps returning an offset token even when
    nothing is left. Querying with that token then yields no resources and an
    empty offset, which is the real end of the listing:

        {
            "meta": {"pagination": {"total": 0, "offset": ""}},
            "resources": [],
            "errors": []
        }

    The caller handles that empty page (see RESTFetcher).
    """
    data = decode_body(response, ListScrollResourceResponse, "resource IDs")
    if data.resources is None:
        raise ResponseShapeException(detail="Missing resource IDs in the datasource response.")

    offset = data.meta.pagination.offset
    return data.resources, CompositeCursor(cursor=offset) if offset else None


def parse_detailed_response(response: TransportResponse) -> list[dict[str, Any]]:
    data = decode_body(response, DetailedResourceResponse, "detailed resources")
    if data.resources is None:
        raise ResponseShapeException(
            detail="Missing detailed resources in the datasource response."
        )
    return data.resources


def parse_alerts_response(
    response: TransportResponse,
) -> tuple[list[dict[str, Any]], CompositeCursor | None]:
    data = decode_body(response, AlertsResponse, "alerts")
    if data.resources is None:
        raise ResponseShapeException(detail="Missing resources in the alerts response.")

    after = data.meta.pagination.after
    return data.resources, CompositeCursor(cursor=after) if after else None


ListParser = Callable[
    [TransportResponse, FetchRequest], tuple[list[str], CompositeCursor | None]
]

LIST_PARSERS: dict[CursorDialect, ListParser] = {
    CursorDialect.INTEGER_OFFSET: parse_list_response,
    CursorDialect.SCROLL_TOKEN: parse_list_scroll_response,
}


class RESTFetcher:
    """Fetch one page of a REST entity."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    async def fetch_page(
        self, request: FetchRequest, descriptor: EntityDescriptor
    ) -> FetchResponse:
        """Fetch a page, in one or two phases depending on the entity.

        A non-200 status at either phase ends the fetch and is returned with
        its ``Retry-After`` hint; the remaining phase is not attempted.

        Raises:
            ConfigurationException: If the entity's endpoints or dialect are misconfigured.
            CursorException: If the incoming cursor does not fit the entity's dialect.
            TransportException: If a request could not be completed.
            DatasourceFailedException: If a reply reports errors.
            ResponseShapeException: If a reply has an unexpected shape.
        """
        if descriptor.is_two_phase:
            response = await self._fetch_two_phase(request, descriptor)
        else:
            response = await self._fetch_single_phase(request, descriptor)

        if response.status_code == 200:
            logger.info(
                "Datasource request completed successfully",
                extra={
                    "status_code": response.status_code,
                    "object_count": len(response.records),
                    "has_next_cursor": response.next_cursor is not None,
                },
            )
        return response

    async def _send(
        self, method: str, url: str, request: FetchRequest, body: BaseModel | None = None
    ) -> TransportResponse:
        return await self.transport.send(
            method,
            url,
            headers={
                "Authorization": request.authorization,
                "Content-Type": "application/json",
            },
            json=body.model_dump(exclude_none=True) if body is not None else None,
            timeout=request.timeout_seconds,
        )

    @staticmethod
    def _failed(response: TransportResponse, url: str) -> FetchResponse:
        logger.error(
            "Datasource request failed",
            extra={
                "url": url,
                "status_code": response.status_code,
                "retry_after": response.retry_after,
                "body": response.body[:1024].decode(errors="replace"),
            },
        )
        return FetchResponse(
            status_code=response.status_code,
            retry_after=response.retry_after,
        )

    async def _fetch_two_phase(
        self, request: FetchRequest, descriptor: EntityDescriptor
    ) -> FetchResponse:
        parser = LIST_PARSERS.get(descriptor.cursor_dialect)
        if parser is None:
            raise ConfigurationException(
                detail=f"No list pagination dialect for entity: {descriptor.entity_id}.",
                extra={"entity_id": descriptor.entity_id},
            )

        list_url = construct_list_endpoint(request, descriptor)
        list_response = await self._send("GET", list_url, request)
        if list_response.status_code != 200:
            return self._failed(list_response, list_url)

        resource_ids, next_cursor = parser(list_response, request)

        # Nothing to detail. With a token this is the scroll endpoint's
        # one-beyond-the-last page; without one the listing is over.
        if not resource_ids:
            logger.info(
                "List phase returned no resource IDs",
                extra={"has_next_cursor": next_cursor is not None},
            )
            return FetchResponse(status_code=200, next_cursor=next_cursor)

        detail_url = construct_detail_endpoint(request, descriptor)
        detail_response = await self._send(
            "POST", detail_url, request, DetailedResourceRequestBody(ids=resource_ids)
        )
        if detail_response.status_code != 200:
            return self._failed(detail_response, detail_url)

        return FetchResponse(
            status_code=200,
            retry_after=detail_response.retry_after,
            records=parse_detailed_response(detail_response),
            next_cursor=next_cursor,
        )

    async def _fetch_single_phase(
        self, request: FetchRequest, descriptor: EntityDescriptor
    ) -> FetchResponse:
        url = construct_detail_endpoint(request, descriptor)
        body = AlertsRequestBody(
            limit=request.page_size,
            after=request.rest_cursor.cursor if request.rest_cursor else None,
            filter=request.filter,
        )

        response = await self._send("POST", url, request, body)
        if response.status_code != 200:
            return self._failed(response, url)

        records, next_cursor = parse_alerts_response(response)
        return FetchResponse(
            status_code=200,
            retry_after=response.retry_after,
            records=records,
            next_cursor=next_cursor,
        )
