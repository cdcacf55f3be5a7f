# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes defining the ports of the ports-and-adapters architecture.

Pipeline services receive these interfaces; infrastructure/ provides the
PostgreSQL, in-memory and Valkey implementations.
"""

from webanalytics.base.cache import Cache
from webanalytics.base.repositories import (
    ConversionStore,
    EventStore,
    GoalStore,
    StatStore,
    Store,
    WebsiteStore,
)
from webanalytics.base.runner import BaseRunner

__all__ = [
    "BaseRunner",
    "Cache",
    "ConversionStore",
    "EventStore",
    "GoalStore",
    "StatStore",
    "Store",
    "WebsiteStore",
]
