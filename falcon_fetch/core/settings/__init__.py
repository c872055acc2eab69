"""Pydantic Settings v2 configuration.

Import settings via cached loaders:
    from falcon_fetch.core.settings import get_crowdstrike_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables (production)
    3. .env file (development only)
"""

from __future__ import annotations

from .crowdstrike import SUPPORTED_API_VERSIONS, CrowdStrikeSettings
from .loader import get_crowdstrike_settings, get_logging_settings
from .logs import LoggingSettings

__all__ = [
    "SUPPORTED_API_VERSIONS",
    "CrowdStrikeSettings",
    "LoggingSettings",
    "get_crowdstrike_settings",
    "get_logging_settings",
]
