"""Pydantic schemas for CrowdStrike page requests and datasource responses."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from falcon_fetch.core.pagination import CompositeCursor, PageInfo

# ──────────────────────────────────────────────────────────────
# Host-facing page contract
# ──────────────────────────────────────────────────────────────


class AttributeConfig(BaseModel):
    """An attribute the host wants ingested for an entity."""

    external_id: str = Field(..., alias="externalId", min_length=1)
    unique_id: bool = Field(default=False, alias="uniqueId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class EntityConfig(BaseModel):
    """Entity the host requests, with its declared attributes.

    Example:
        ```json
        {
            "externalId": "user",
            "attributes": [
                {"externalId": "entityId", "uniqueId": true},
                {"externalId": "riskScore"}
            ]
        }
        ```
    """

    external_id: str = Field(..., alias="externalId")
    attributes: list[AttributeConfig] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def unique_id_attribute(self) -> str | None:
        """External id of the first attribute flagged as unique id."""
        for attribute in self.attributes:
            if attribute.unique_id:
                return attribute.external_id
        return None


class DatasourceConfig(BaseModel):
    """Per-request datasource configuration.

    Example:
        ```json
        {
            "apiVersion": "v1",
            "archived": false,
            "enabled": true,
            "filters": {"endpoint_protection_device": "platform_name:'Windows'"}
        }
        ```
    """

    api_version: str | None = Field(default=None, alias="apiVersion")
    archived: bool = False
    enabled: bool = False
    filters: dict[str, str] = Field(
        default_factory=dict,
        description="Falcon Query Language filter per REST entity id",
    )
    request_timeout_seconds: int | None = Field(
        default=None, alias="requestTimeoutSeconds", ge=1
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PageRequest(BaseModel):
    """A GetPage call from the ingestion host."""

    address: str = Field(..., description="Datasource address, https scheme optional")
    token: str | None = Field(default=None, description="Bearer token")
    entity: EntityConfig
    page_size: int = Field(..., alias="pageSize")
    cursor: str | None = Field(default=None, description="Cursor of the previous page")
    ordered: bool = False
    config: DatasourceConfig | None = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Page(BaseModel):
    """One page of raw records plus the cursor of the next page."""

    status_code: int = 200
    retry_after: str | None = None
    records: list[dict[str, Any]] = Field(default_factory=list)
    next_cursor: str | None = None


# ──────────────────────────────────────────────────────────────
# Datasource request / response
# ──────────────────────────────────────────────────────────────


class FetchRequest(BaseModel):
    """Input of a single fetch against the datasource.

    Only the cursor matching the entity's protocol may be populated.
    """

    base_url: str
    token: str
    entity_id: str
    page_size: int = Field(..., ge=1, le=1000)
    attributes: list[str] = Field(default_factory=list)
    filter: str | None = None
    graphql_cursor: CompositeCursor | None = None
    rest_cursor: CompositeCursor | None = None
    timeout_seconds: float = Field(default=120, gt=0)
    api_version: str = "v1"
    archived: bool = False
    enabled: bool = False

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _single_cursor(self) -> FetchRequest:
        if self.graphql_cursor is not None and self.rest_cursor is not None:
            msg = "only one of graphql_cursor and rest_cursor may be set"
            raise ValueError(msg)
        return self

    @property
    def authorization(self) -> str:
        """Value of the Authorization header."""
        if self.token.lower().startswith("bearer "):
            return self.token
        return f"Bearer {self.token}"


class FetchResponse(BaseModel):
    """Output of a single fetch.

    A status code other than 200 carries no records and no cursor; hosts must
    treat it as a transient failure, not end of data.
    """

    status_code: int
    retry_after: str | None = None
    records: list[dict[str, Any]] = Field(default_factory=list)
    next_cursor: CompositeCursor | None = None

    @model_validator(mode="after")
    def _failure_is_empty(self) -> FetchResponse:
        if self.status_code != 200 and (self.records or self.next_cursor is not None):
            msg = "a failed response carries no records and no cursor"
            raise ValueError(msg)
        return self


# ──────────────────────────────────────────────────────────────
# GraphQL wire format
# ──────────────────────────────────────────────────────────────


class ResponseItems(BaseModel):
    """``entities`` / ``incidents`` collection of a GraphQL reply."""

    nodes: list[dict[str, Any]] | None = None
    page_info: PageInfo = Field(default_factory=PageInfo, alias="pageInfo")

    model_config = ConfigDict(populate_by_name=True)


# ──────────────────────────────────────────────────────────────
# REST wire format
# ──────────────────────────────────────────────────────────────


class ErrorItem(BaseModel):
    code: int | str | None = None
    message: str = ""


class PaginationInfo(BaseModel):
    offset: int = 0
    limit: int = 0
    total: int = 0

    @field_validator("offset", "limit", "total", mode="before")
    @classmethod
    def _null_is_zero(cls, v: object) -> object:
        return 0 if v is None else v


class ScrollPaginationInfo(BaseModel):
    """Pagination of ``devices-scroll``: the offset is an opaque token."""

    offset: str = ""
    limit: int = 0
    total: int = 0

    @field_validator("offset", mode="before")
    @classmethod
    def _null_offset(cls, v: object) -> object:
        return "" if v is None else v


class AfterPaginationInfo(BaseModel):
    after: str = ""
    total: int = 0

    @field_validator("after", mode="before")
    @classmethod
    def _null_after(cls, v: object) -> object:
        return "" if v is None else v


class ListMeta(BaseModel):
    pagination: PaginationInfo = Field(default_factory=PaginationInfo)


class ScrollListMeta(BaseModel):
    pagination: ScrollPaginationInfo = Field(default_factory=ScrollPaginationInfo)


class AfterMeta(BaseModel):
    pagination: AfterPaginationInfo = Field(default_factory=AfterPaginationInfo)


class ListResourceResponse(BaseModel):
    meta: ListMeta = Field(default_factory=ListMeta)
    resources: list[str] | None = None


class ListScrollResourceResponse(BaseModel):
    meta: ScrollListMeta = Field(default_factory=ScrollListMeta)
    resources: list[str] | None = None


class DetailedResourceResponse(BaseModel):
    """Detail endpoint reply; it carries no pagination of its own."""

    resources: list[dict[str, Any]] | None = None


class AlertsResponse(BaseModel):
    meta: AfterMeta = Field(default_factory=AfterMeta)
    resources: list[dict[str, Any]] | None = None


class DetailedResourceRequestBody(BaseModel):
    ids: list[str]


class AlertsRequestBody(BaseModel):
    limit: int
    after: str | None = None
    filter: str | None = None
