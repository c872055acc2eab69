"""Pytest configuration and shared fixtures.

Organization:
    - Settings Fixtures: fresh settings and registry per test
    - HTTP Fixtures: ``httpx.MockTransport`` backed transport, no network
    - Request Fixtures: ready-made page and fetch requests

When adding new features:
    1. Add fixtures to the appropriate section below
    2. Use @pytest.fixture with clear docstrings
    3. Make fixtures composable (fixtures can depend on other fixtures)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from falcon_fetch.core.settings import (
    CrowdStrikeSettings,
    get_crowdstrike_settings,
    get_logging_settings,
)
from falcon_fetch.features.crowdstrike.entities import EntityRegistry, get_entity_registry
from falcon_fetch.features.crowdstrike.schemas import (
    AttributeConfig,
    DatasourceConfig,
    EntityConfig,
    FetchRequest,
    PageRequest,
)
from falcon_fetch.infra.external import BaseHTTPClient
from falcon_fetch.infra.logging import clear_log_context

from tests.utils import BASE_URL, FakeDatasource


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _reset_caches() -> Iterator[None]:
    """Drop cached settings and log context so every test starts clean."""
    get_crowdstrike_settings.cache_clear()
    get_logging_settings.cache_clear()
    clear_log_context()
    yield
    get_crowdstrike_settings.cache_clear()
    get_logging_settings.cache_clear()
    clear_log_context()


@pytest.fixture
def settings() -> CrowdStrikeSettings:
    """Default CrowdStrike settings."""
    return CrowdStrikeSettings()


@pytest.fixture
def registry() -> EntityRegistry:
    """Registry of the built-in entities."""
    return get_entity_registry()


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture
def make_transport() -> Callable[[FakeDatasource], BaseHTTPClient]:
    """Factory wrapping a scripted handler in a BaseHTTPClient."""

    def _make(handler: FakeDatasource) -> BaseHTTPClient:
        return BaseHTTPClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    return _make


# ============================================================================
# Request Fixtures
# ============================================================================


@pytest.fixture
def make_fetch_request() -> Callable[..., FetchRequest]:
    """Factory for fetch requests against the fake datasource."""

    def _make(entity_id: str, **overrides: Any) -> FetchRequest:
        values: dict[str, Any] = {
            "base_url": BASE_URL,
            "token": "test-token",
            "entity_id": entity_id,
            "page_size": 100,
            "timeout_seconds": 5,
        }
        values.update(overrides)
        return FetchRequest(**values)

    return _make


@pytest.fixture
def make_page_request() -> Callable[..., PageRequest]:
    """Factory for host page requests with a valid configuration."""

    def _make(
        entity_id: str = "user",
        unique_id: str | None = "entityId",
        **overrides: Any,
    ) -> PageRequest:
        attributes = [AttributeConfig(external_id="riskScore")]
        if unique_id is not None:
            attributes.insert(0, AttributeConfig(external_id=unique_id, unique_id=True))

        values: dict[str, Any] = {
            "address": "api.crowdstrike.com",
            "token": "test-token",
            "entity": EntityConfig(external_id=entity_id, attributes=attributes),
            "page_size": 100,
            "config": DatasourceConfig(api_version="v1", request_timeout_seconds=5),
        }
        values.update(overrides)
        return PageRequest(**values)

    return _make
