"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from falcon_fetch.core.settings.loader import get_crowdstrike_settings

    settings = get_crowdstrike_settings()  # First call: loads and validates
    settings = get_crowdstrike_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    get_crowdstrike_settings.cache_clear()
"""

from __future__ import annotations

from functools import lru_cache

from .crowdstrike import CrowdStrikeSettings
from .logs import LoggingSettings


@lru_cache(maxsize=1)
def get_crowdstrike_settings() -> CrowdStrikeSettings:
    """Get cached CrowdStrike datasource settings.

    Returns:
        Validated and frozen CrowdStrikeSettings instance.
    """
    return CrowdStrikeSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()
