"""GraphQL query construction for the identity protection API.

One query document is built per page. The selection sets below are static
configuration: the fields of each node type that are ingested.
"""

from __future__ import annotations

import json

from falcon_fetch.core.exceptions import ConfigurationException
from falcon_fetch.features.crowdstrike.entities import (
    ENDPOINT,
    INCIDENT,
    USER,
    ApiProtocol,
    EntityDescriptor,
)
from falcon_fetch.features.crowdstrike.schemas import FetchRequest

PAGE_INFO_SELECTION = """pageInfo {
    hasNextPage
    endCursor
}"""

_ACCOUNTS_SELECTION = """accounts {
    __typename
    ... on ActiveDirectoryAccountDescriptor {
        archived
        cn
        consistencyGuid
        containingGroupIds
        creationTime
        dataSource
        department
        description
        dn
        domain
        enabled
        expirationTime
        flattenedContainingGroupIds
        lastUpdateTime
        lockoutTime
        mostRecentActivity
        objectGuid
        objectSid
        ou
        samAccountName
        servicePrincipalNames
        title
        upn
        userAccountControl
        userAccountControlFlags
    }
}"""

_RISK_FACTORS_SELECTION = """riskFactors {
    score
    severity
    type
}"""

_INCIDENT_ENTITY_FIELDS = """archived
creationTime
entityId
hasADDomainAdminRole
hasRole
learned
markTime
primaryDisplayName
riskScore
riskScoreSeverity
secondaryDisplayName
type
watched"""


def _indent(text: str, level: int = 1) -> str:
    pad = "    " * level
    return "\n".join(pad + line if line else line for line in text.splitlines())


def _block(header: str, body: str) -> str:
    return f"{header} {{\n{_indent(body)}\n}}"


USER_NODE_SELECTION = _block(
    "... on UserEntity",
    "\n".join(
        [
            "archived",
            "creationTime",
            "earliestSeenTraffic",
            "emailAddresses",
            "entityId",
            "hasADDomainAdminRole",
            "impactScore",
            "inactive",
            "learned",
            "markTime",
            "mostRecentActivity",
            "primaryDisplayName",
            "riskScore",
            "riskScoreSeverity",
            "riskScoreWithoutLinkedAccounts",
            "secondaryDisplayName",
            "shared",
            "stale",
            "watched",
            "type",
            _RISK_FACTORS_SELECTION,
            _ACCOUNTS_SELECTION,
        ]
    ),
)

ENDPOINT_NODE_SELECTION = _block(
    "... on EndpointEntity",
    "\n".join(
        [
            "agentId",
            "agentVersion",
            "archived",
            "cid",
            "creationTime",
            "earliestSeenTraffic",
            "entityId",
            "guestAccountEnabled",
            "hasADDomainAdminRole",
            "hasRole",
            "hostName",
            "impactScore",
            "inactive",
            "lastIpAddress",
            "learned",
            "markTime",
            "mostRecentActivity",
            "primaryDisplayName",
            "riskScore",
            "riskScoreSeverity",
            "secondaryDisplayName",
            "shared",
            "stale",
            "staticIpAddresses",
            "type",
            "unmanaged",
            "watched",
            "ztaScore",
            _ACCOUNTS_SELECTION,
            _RISK_FACTORS_SELECTION,
        ]
    ),
)

INCIDENT_NODE_SELECTION = "\n".join(
    [
        "endTime",
        "incidentId",
        "lifeCycleStage",
        "markedAsRead",
        "severity",
        "startTime",
        "type",
        _block("compromisedEntities", _INCIDENT_ENTITY_FIELDS),
        _block(
            "alertEvents",
            "\n".join(
                [
                    "alertId",
                    "alertType",
                    "endTime",
                    "eventId",
                    "eventLabel",
                    "eventSeverity",
                    "eventType",
                    "patternId",
                    "resolved",
                    "startTime",
                    "timestamp",
                    _block("entities", _INCIDENT_ENTITY_FIELDS),
                ]
            ),
        ),
    ]
)

NODE_SELECTIONS: dict[str, str] = {
    USER: USER_NODE_SELECTION,
    ENDPOINT: ENDPOINT_NODE_SELECTION,
    INCIDENT: INCIDENT_NODE_SELECTION,
}


def graphql_bool(value: bool) -> str:
    return "true" if value else "false"


def after_argument(cursor: str | None) -> str | None:
    """Render the ``after`` argument, or None when there is no cursor.

    The value is emitted as a quoted GraphQL string literal.
    """
    if cursor is None:
        return None
    return f"after: {json.dumps(cursor)}"


def build_query_arguments(descriptor: EntityDescriptor, request: FetchRequest) -> list[str]:
    """Return the arguments of the collection field, one per line, in a fixed order."""
    cursor = request.graphql_cursor.cursor if request.graphql_cursor else None
    arguments: list[str] = []

    if descriptor.graphql_collection == "entities":
        arguments += [
            f"archived: {graphql_bool(request.archived)}",
            f"enabled: {graphql_bool(request.enabled)}",
            f"types: [{descriptor.graphql_type}]",
            f"sortKey: {descriptor.sort_key}",
            "sortOrder: DESCENDING",
            f"first: {request.page_size}",
        ]
    else:
        arguments += [
            f"first: {request.page_size}",
            f"sortKey: {descriptor.sort_key}",
            "sortOrder: DESCENDING",
        ]

    after = after_argument(cursor)
    if after is not None:
        arguments.append(after)

    return arguments


def build_graphql_query(
    descriptor: EntityDescriptor | None, request: FetchRequest | None
) -> str:
    """Build the query document for one page of a GraphQL entity.

    Args:
        descriptor: Registry entry of the requested entity.
        request: The fetch request; supplies page size, flags and cursor.

    Returns:
        The GraphQL query document.

    Raises:
        ConfigurationException: If the request is missing or the entity has
            no GraphQL query.

    Example:
        >>> query = build_graphql_query(registry.resolve("user"), request)
        >>> "types: [USER]" in query
        True
    """
    if request is None:
        raise ConfigurationException(detail="Request is nil.")

    selection = NODE_SELECTIONS.get(request.entity_id)
    if (
        descriptor is None
        or descriptor.protocol is not ApiProtocol.GRAPHQL
        or descriptor.graphql_collection not in ("entities", "incidents")
        or selection is None
    ):
        raise ConfigurationException(
            detail=f"Unsupported Query for provided entity ID: {request.entity_id}",
            extra={"entity_id": request.entity_id},
        )

    arguments = "\n".join(build_query_arguments(descriptor, request))
    collection = (
        f"{descriptor.graphql_collection}(\n{_indent(arguments)}\n) "
        f"{{\n{_indent(PAGE_INFO_SELECTION)}\n{_indent(_block('nodes', selection))}\n}}"
    )
    return f"{{\n{_indent(collection)}\n}}"
