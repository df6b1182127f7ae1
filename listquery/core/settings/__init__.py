"""Pydantic Settings v2 configuration.

Import settings via the cached loaders:
    from listquery.core.settings import get_pagination_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file (development only)
"""

from __future__ import annotations

from .loader import clear_all_caches, get_logging_settings, get_pagination_settings
from .logging_ import LoggingSettings
from .pagination import PaginationSettings

__all__ = [
    "LoggingSettings",
    "PaginationSettings",
    "clear_all_caches",
    "get_logging_settings",
    "get_pagination_settings",
]
