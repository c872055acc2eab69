"""Entity registry.

CrowdStrike data is ingested through two APIs: the identity protection GraphQL
API and the Falcon REST APIs. Each supported entity id is registered under
exactly one of them, together with what is needed to page through it.

The REST APIs are mostly two level: a list endpoint returns resource ids and
pagination metadata, and a detail endpoint (POST) returns the full records for
a batch of ids. Entities with only a detail endpoint are fetched in one phase.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from functools import lru_cache
from types import MappingProxyType

from falcon_fetch.core.exceptions import ConfigurationException, ErrorCode

USER = "user"
INCIDENT = "incident"
ENDPOINT = "endpoint"
DEVICE = "endpoint_protection_device"
ENDPOINT_INCIDENT = "endpoint_protection_incident"
DETECT = "endpoint_protection_detect"
ALERT = "endpoint_protection_alert"


class ApiProtocol(StrEnum):
    GRAPHQL = "graphql"
    REST = "rest"


class CursorDialect(StrEnum):
    """How the datasource expresses the position of the next page."""

    NONE = "none"
    INTEGER_OFFSET = "integer_offset"
    SCROLL_TOKEN = "scroll_token"
    AFTER_TOKEN = "after_token"


@dataclass(frozen=True, slots=True)
class EntityDescriptor:
    """Static description of one supported entity.

    Attributes:
        entity_id: External id of the entity, as requested by the host.
        protocol: API the entity is fetched from.
        unique_id_attribute: Unique id attribute the API mandates (GraphQL only).
        sort_key: GraphQL sort key.
        cursor_dialect: Pagination dialect of the list (or single) phase.
        graphql_collection: Top-level GraphQL field, ``entities`` or ``incidents``.
        graphql_type: Value of the ``types`` argument for ``entities`` queries.
        list_endpoint_path: REST path listing resource ids, None for single-phase entities.
        detail_endpoint_path: REST path returning full records.
    """

    entity_id: str
    protocol: ApiProtocol
    unique_id_attribute: str | None = None
    sort_key: str | None = None
    cursor_dialect: CursorDialect = CursorDialect.NONE
    graphql_collection: str | None = None
    graphql_type: str | None = None
    list_endpoint_path: str | None = None
    detail_endpoint_path: str | None = None

    @property
    def uses_int_cursor(self) -> bool:
        return self.cursor_dialect is CursorDialect.INTEGER_OFFSET

    @property
    def is_two_phase(self) -> bool:
        return self.protocol is ApiProtocol.REST and bool(self.list_endpoint_path)


GRAPHQL_ENTITIES: Mapping[str, EntityDescriptor] = MappingProxyType(
    {
        USER: EntityDescriptor(
            entity_id=USER,
            protocol=ApiProtocol.GRAPHQL,
            unique_id_attribute="entityId",
            sort_key="RISK_SCORE",
            graphql_collection="entities",
            graphql_type="USER",
        ),
        INCIDENT: EntityDescriptor(
            entity_id=INCIDENT,
            protocol=ApiProtocol.GRAPHQL,
            unique_id_attribute="incidentId",
            sort_key="END_TIME",
            graphql_collection="incidents",
        ),
        ENDPOINT: EntityDescriptor(
            entity_id=ENDPOINT,
            protocol=ApiProtocol.GRAPHQL,
            unique_id_attribute="entityId",
            sort_key="RISK_SCORE",
            graphql_collection="entities",
            graphql_type="ENDPOINT",
        ),
    }
)

# List endpoints are GETs, detail endpoints are POSTs.
REST_ENTITIES: Mapping[str, EntityDescriptor] = MappingProxyType(
    {
        DEVICE: EntityDescriptor(
            entity_id=DEVICE,
            protocol=ApiProtocol.REST,
            cursor_dialect=CursorDialect.SCROLL_TOKEN,
            list_endpoint_path="devices/queries/devices-scroll/v1",
            detail_endpoint_path="devices/entities/devices/v2",
        ),
        ENDPOINT_INCIDENT: EntityDescriptor(
            entity_id=ENDPOINT_INCIDENT,
            protocol=ApiProtocol.REST,
            cursor_dialect=CursorDialect.INTEGER_OFFSET,
            list_endpoint_path="incidents/queries/incidents/v1",
            detail_endpoint_path="incidents/entities/incidents/GET/v1",
        ),
        DETECT: EntityDescriptor(
            entity_id=DETECT,
            protocol=ApiProtocol.REST,
            cursor_dialect=CursorDialect.INTEGER_OFFSET,
            list_endpoint_path="detects/queries/detects/v1",
            detail_endpoint_path="detects/entities/summaries/GET/v1",
        ),
        ALERT: EntityDescriptor(
            entity_id=ALERT,
            protocol=ApiProtocol.REST,
            cursor_dialect=CursorDialect.AFTER_TOKEN,
            detail_endpoint_path="alerts/entities/alerts/v2",
        ),
    }
)


class EntityRegistry:
    """Read-only lookup of entity descriptors across both APIs.

    Example:
        registry = EntityRegistry(GRAPHQL_ENTITIES, REST_ENTITIES)
        descriptor = registry.resolve("endpoint_protection_detect")
        descriptor.cursor_dialect  # CursorDialect.INTEGER_OFFSET
    """

    def __init__(
        self,
        graphql_entities: Mapping[str, EntityDescriptor],
        rest_entities: Mapping[str, EntityDescriptor],
    ) -> None:
        self._graphql = MappingProxyType(dict(graphql_entities))
        self._rest = MappingProxyType(dict(rest_entities))

    @property
    def graphql_entities(self) -> Mapping[str, EntityDescriptor]:
        return self._graphql

    @property
    def rest_entities(self) -> Mapping[str, EntityDescriptor]:
        return self._rest

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._graphql or entity_id in self._rest

    def resolve(self, entity_id: str) -> EntityDescriptor:
        """Return the descriptor of an entity.

        Raises:
            ConfigurationException: If the entity is registered under neither
                API, or under both.
        """
        graphql_entity = self._graphql.get(entity_id)
        rest_entity = self._rest.get(entity_id)

        if graphql_entity is None and rest_entity is None:
            raise ConfigurationException(
                detail="Provided entity external ID is invalid.",
                type="unknown-entity",
                extra={"entity_id": entity_id},
            )

        if graphql_entity is not None and rest_entity is not None:
            raise ConfigurationException(
                detail="Provided entity external ID is misconfigured.",
                code=ErrorCode.INTERNAL,
                type="entity-misconfigured",
                extra={"entity_id": entity_id},
            )

        return graphql_entity or rest_entity  # type: ignore[return-value]


@lru_cache(maxsize=1)
def get_entity_registry() -> EntityRegistry:
    """Get the cached registry of the built-in entities."""
    return EntityRegistry(GRAPHQL_ENTITIES, REST_ENTITIES)
