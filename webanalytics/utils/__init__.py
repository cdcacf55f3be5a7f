# ==============================================================================
# Web Analytics Utilities
# ==============================================================================
"""
Shared utilities for the analytics backend.

This module exports configuration and schema helpers for use throughout the
package.
"""

from webanalytics.utils.config import (
    AggregationSettings,
    IngestionSettings,
    PostgresSettings,
    SchedulerSettings,
    Settings,
    StorageSettings,
    ValkeySettings,
    get_settings,
)
from webanalytics.utils.db import (
    ensure_schema,
    reset_schema,
)

__all__ = [
    # Config
    "AggregationSettings",
    "IngestionSettings",
    "PostgresSettings",
    "SchedulerSettings",
    "Settings",
    "StorageSettings",
    "ValkeySettings",
    "get_settings",
    # Database
    "ensure_schema",
    "reset_schema",
]
