# ==============================================================================
# Store Adapters
# ==============================================================================
"""
Store adapters implementing the interfaces from base/repositories.py.

Currently supported:
- PostgreSQL (postgresql.py)
- In-memory (memory.py), for tests and local runs
"""

from webanalytics.infrastructure.repositories.memory import (
    InMemoryConversionStore,
    InMemoryEventStore,
    InMemoryGoalStore,
    InMemoryStatStore,
    InMemoryWebsiteStore,
)
from webanalytics.infrastructure.repositories.postgresql import (
    PostgreSQLConversionStore,
    PostgreSQLEventStore,
    PostgreSQLGoalStore,
    PostgreSQLStatStore,
    PostgreSQLWebsiteStore,
    check_postgresql_connection,
)

__all__ = [
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
]
