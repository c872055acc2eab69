"""REST endpoint construction.

URLs are built with their query parameters in a fixed order (limit, then the
cursor parameter, then filter) so that output is deterministic.
"""

from __future__ import annotations

import re
from urllib.parse import urlencode

from falcon_fetch.core.exceptions import ConfigurationException, CursorException
from falcon_fetch.features.crowdstrike.entities import CursorDialect, EntityDescriptor
from falcon_fetch.features.crowdstrike.schemas import FetchRequest

_INTEGER_RE = re.compile(r"-?[0-9]+")


def parse_offset(cursor: str, entity_id: str) -> int:
    """Parse an integer-offset cursor.

    Raises:
        CursorException: If the cursor is not a base-10 integer, or is negative.
    """
    if not _INTEGER_RE.fullmatch(cursor):
        raise CursorException(
            detail=f"Expected a numeric cursor for entity: {entity_id}.",
            entity_id=entity_id,
        )

    offset = int(cursor)
    if offset < 0:
        raise CursorException(
            detail="Cursor must be greater than 0.",
            entity_id=entity_id,
        )
    return offset


def build_rest_url(
    base_url: str,
    path: str | None,
    page_size: int,
    *,
    cursor: str | None = None,
    filter: str | None = None,
    cursor_param: str = "offset",
) -> str:
    """Join base URL and path and append the query string.

    Args:
        base_url: Datasource base URL.
        path: Endpoint path relative to the base URL.
        page_size: Value of the ``limit`` parameter.
        cursor: Value of the cursor parameter; omitted when empty.
        filter: Falcon Query Language filter; omitted when empty.
        cursor_param: Name of the cursor parameter (``offset`` or ``after``).

    Raises:
        ConfigurationException: If the path is empty.

    Example:
        >>> build_rest_url("https://api.crowdstrike.com", "detects/queries/detects/v1", 100, cursor="200")
        'https://api.crowdstrike.com/detects/queries/detects/v1?limit=100&offset=200'
    """
    if not path:
        raise ConfigurationException(
            detail="The path to fetch the entity from is nil.",
            type="missing-endpoint-path",
        )

    params: list[tuple[str, str | int]] = [("limit", page_size)]
    if cursor:
        params.append((cursor_param, cursor))
    if filter:
        params.append(("filter", filter))

    return f"{base_url.rstrip('/')}/{path.lstrip('/')}?{urlencode(params)}"


def construct_list_endpoint(
    request: FetchRequest | None, descriptor: EntityDescriptor
) -> str:
    """Build the list-phase URL of a REST entity.

    The incoming cursor is validated against the entity's dialect: integer
    offsets must be non-negative integers, scroll tokens are passed verbatim.

    Raises:
        ConfigurationException: If the request is missing or the entity has no
            list endpoint.
        CursorException: If an integer-offset entity receives a non-numeric cursor.
    """
    if request is None:
        raise ConfigurationException(detail="Request is nil.")

    cursor = request.rest_cursor.cursor if request.rest_cursor else None
    if cursor and descriptor.cursor_dialect is CursorDialect.INTEGER_OFFSET:
        parse_offset(cursor, request.entity_id)

    return build_rest_url(
        request.base_url,
        descriptor.list_endpoint_path,
        request.page_size,
        cursor=cursor,
        filter=request.filter,
    )


def construct_detail_endpoint(
    request: FetchRequest | None, descriptor: EntityDescriptor
) -> str:
    """Build the detail-phase URL of a REST entity.

    Cursor and filter travel in the POST body, so only ``limit`` is appended.

    Raises:
        ConfigurationException: If the request is missing or the entity has no
            detail endpoint.
    """
    if request is None:
        raise ConfigurationException(detail="Request is nil.")

    return build_rest_url(
        request.base_url,
        descriptor.detail_endpoint_path,
        request.page_size,
    )
