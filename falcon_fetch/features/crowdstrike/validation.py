"""GetPage request validation.

Everything that can be rejected without a network call is rejected here.
"""

from __future__ import annotations

import httpx

from falcon_fetch.core.exceptions import ErrorCode, RequestValidationException
from falcon_fetch.core.settings import SUPPORTED_API_VERSIONS, CrowdStrikeSettings
from falcon_fetch.features.crowdstrike.entities import (
    ApiProtocol,
    EntityDescriptor,
    EntityRegistry,
)
from falcon_fetch.features.crowdstrike.schemas import DatasourceConfig, PageRequest


def validate_config(config: DatasourceConfig | None) -> None:
    """Validate the per-request datasource configuration."""
    if config is None:
        raise RequestValidationException(
            detail="CrowdStrike config is invalid: The request contains an empty configuration.",
            code=ErrorCode.INVALID_DATASOURCE_CONFIG,
        )
    if not config.api_version:
        raise RequestValidationException(
            detail="CrowdStrike config is invalid: apiVersion is not set in the configuration.",
            code=ErrorCode.INVALID_DATASOURCE_CONFIG,
        )
    if config.api_version not in SUPPORTED_API_VERSIONS:
        raise RequestValidationException(
            detail="CrowdStrike config is invalid: apiVersion is not supported.",
            code=ErrorCode.INVALID_DATASOURCE_CONFIG,
            extra={"api_version": config.api_version},
        )


def normalize_address(address: str) -> str:
    """Return the address as an https base URL.

    A missing scheme defaults to https; any other scheme is rejected.
    """
    trimmed = address.strip()
    if "://" not in trimmed:
        trimmed = f"https://{trimmed}"

    try:
        url = httpx.URL(trimmed)
    except httpx.InvalidURL as e:
        raise RequestValidationException(
            detail=f"Provided datasource address is invalid: {e}.",
            code=ErrorCode.INVALID_DATASOURCE_CONFIG,
        ) from e

    if url.scheme != "https":
        raise RequestValidationException(
            detail=f"Scheme {url.scheme!r} is not supported.",
            code=ErrorCode.INVALID_DATASOURCE_CONFIG,
        )
    if not url.host:
        raise RequestValidationException(
            detail="Provided datasource address is missing a host.",
            code=ErrorCode.INVALID_DATASOURCE_CONFIG,
        )

    return trimmed.rstrip("/")


def validate_get_page_request(
    request: PageRequest,
    registry: EntityRegistry,
    settings: CrowdStrikeSettings,
) -> EntityDescriptor:
    """Validate a GetPage request and resolve its entity.

    Returns:
        The descriptor of the requested entity.

    Raises:
        RequestValidationException: If the request is invalid.
        ConfigurationException: If the entity is unknown or registered under both APIs.
    """
    validate_config(request.config)
    normalize_address(request.address)

    if not request.token:
        raise RequestValidationException(
            detail="Provided datasource auth is missing required credentials.",
            code=ErrorCode.INVALID_DATASOURCE_CONFIG,
        )

    descriptor = registry.resolve(request.entity.external_id)

    unique_id = request.entity.unique_id_attribute
    if unique_id is None:
        raise RequestValidationException(
            detail="Requested entity attributes are missing unique ID attribute.",
            code=ErrorCode.INVALID_ENTITY_CONFIG,
        )

    # GraphQL APIs mandate a specific unique ID attribute.
    if descriptor.protocol is ApiProtocol.GRAPHQL and unique_id != descriptor.unique_id_attribute:
        raise RequestValidationException(
            detail=f"Expected unique ID attribute: {descriptor.unique_id_attribute}",
            code=ErrorCode.INVALID_ENTITY_CONFIG,
            extra={"entity_id": descriptor.entity_id, "unique_id_attribute": unique_id},
        )

    if request.ordered:
        raise RequestValidationException(
            detail="Ordered must be set to false.",
            code=ErrorCode.INVALID_ENTITY_CONFIG,
        )

    if request.page_size < 1 or request.page_size > settings.max_page_size:
        raise RequestValidationException(
            detail=(
                f"Provided page size ({request.page_size}) must be between 1 and "
                f"the maximum allowed ({settings.max_page_size})."
            ),
            extra={"page_size": request.page_size},
        )

    return descriptor
