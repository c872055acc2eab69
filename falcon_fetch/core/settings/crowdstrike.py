"""CrowdStrike datasource settings.

Process-wide defaults for page requests. Per-call options (archived, enabled,
filters) arrive with each request in ``DatasourceConfig``.

Environment variables use CROWDSTRIKE_ prefix.
Example: CROWDSTRIKE_REQUEST_TIMEOUT_SECONDS=60, CROWDSTRIKE_MAX_PAGE_SIZE=500
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_API_VERSIONS = frozenset({"v1"})


class CrowdStrikeSettings(BaseSettings):
    """CrowdStrike datasource configuration settings.

    Attributes:
        api_version: API version used when the request config does not set one.
        request_timeout_seconds: Deadline applied to each HTTP call.
        max_page_size: Largest page size a GetPage request may ask for.
        graphql_path_template: Path of the identity protection GraphQL API.

    Example:
        settings = CrowdStrikeSettings()
        timeout = settings.request_timeout_seconds
    """

    api_version: str = Field(
        default="v1",
        description="Default API version",
    )
    request_timeout_seconds: int = Field(
        default=120,
        ge=1,
        le=3600,
        description="Timeout in seconds applied to every request to the datasource",
    )
    max_page_size: int = Field(
        default=1000,
        ge=1,
        le=1000,
        description="Maximum allowed page size (hard limit)",
    )
    graphql_path_template: str = Field(
        default="identity-protection/combined/graphql/{api_version}",
        description="GraphQL endpoint path relative to the base URL",
    )

    model_config = SettingsConfigDict(
        env_prefix="CROWDSTRIKE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    @field_validator("api_version")
    @classmethod
    def _check_api_version(cls, v: str) -> str:
        if v not in SUPPORTED_API_VERSIONS:
            msg = f"apiVersion {v!r} is not supported"
            raise ValueError(msg)
        return v

    def graphql_path(self, api_version: str | None = None) -> str:
        """Return the GraphQL path for the given (or default) API version."""
        return self.graphql_path_template.format(api_version=api_version or self.api_version)
