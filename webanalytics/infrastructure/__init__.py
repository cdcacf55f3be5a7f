# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Adapters for external services (ports-and-adapters architecture).

This module contains concrete implementations of the base/ interfaces:
- cache/ - Cache adapters (Valkey/Redis)
- repositories/ - Store adapters (PostgreSQL, in-memory)
- run_status.py - Scheduler run reports (Valkey)
"""

from webanalytics.infrastructure.cache import ValkeyCache, check_valkey_connection
from webanalytics.infrastructure.repositories import (
    InMemoryConversionStore,
    InMemoryEventStore,
    InMemoryGoalStore,
    InMemoryStatStore,
    InMemoryWebsiteStore,
    PostgreSQLConversionStore,
    PostgreSQLEventStore,
    PostgreSQLGoalStore,
    PostgreSQLStatStore,
    PostgreSQLWebsiteStore,
    check_postgresql_connection,
)
from webanalytics.infrastructure.run_status import RunStatusTracker

__all__ = [
    # Cache
    "ValkeyCache",
    "check_valkey_connection",
    # Stores
    "InMemoryConversionStore",
    "InMemoryEventStore",
    "InMemoryGoalStore",
    "InMemoryStatStore",
    "InMemoryWebsiteStore",
    "PostgreSQLConversionStore",
    "PostgreSQLEventStore",
    "PostgreSQLGoalStore",
    "PostgreSQLStatStore",
    "PostgreSQLWebsiteStore",
    "check_postgresql_connection",
    # Run status
    "RunStatusTracker",
]
