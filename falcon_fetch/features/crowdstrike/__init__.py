"""CrowdStrike feature: entity registry, fetch paths, datasource and adapter.

Usage:
    from falcon_fetch.features.crowdstrike import (
        CrowdStrikeAdapter,
        CrowdStrikeDatasource,
        PageRequest,
    )
"""

from falcon_fetch.features.crowdstrike.datasource import CrowdStrikeDatasource
from falcon_fetch.features.crowdstrike.entities import (
    ApiProtocol,
    CursorDialect,
    EntityDescriptor,
    EntityRegistry,
    get_entity_registry,
)
from falcon_fetch.features.crowdstrike.schemas import (
    DatasourceConfig,
    EntityConfig,
    FetchRequest,
    FetchResponse,
    Page,
    PageRequest,
)
from falcon_fetch.features.crowdstrike.service import CrowdStrikeAdapter

__all__ = [
    "ApiProtocol",
    "CrowdStrikeAdapter",
    "CrowdStrikeDatasource",
    "CursorDialect",
    "DatasourceConfig",
    "EntityConfig",
    "EntityDescriptor",
    "EntityRegistry",
    "FetchRequest",
    "FetchResponse",
    "Page",
    "PageRequest",
    "get_entity_registry",
]
