# ==============================================================================
# Pipeline Factory
# ==============================================================================
"""
Factory functions wiring stores and services together.

Uses STORAGE_BACKEND (via config) to determine which store implementation
to use. The run-status tracker is attached when VALKEY_ENABLED is true.
"""

import logging
from dataclasses import dataclass

from webanalytics.base.repositories import (
    ConversionStore,
    EventStore,
    GoalStore,
    StatStore,
    Store,
    WebsiteStore,
)
from webanalytics.infrastructure.run_status import RunStatusTracker
from webanalytics.pipeline.aggregation import AggregationEngine
from webanalytics.pipeline.conversions import ConversionQueryService
from webanalytics.pipeline.goals import GoalService
from webanalytics.pipeline.ingestion import IngestionService
from webanalytics.pipeline.orchestrator import Orchestrator
from webanalytics.pipeline.recorder import ConversionRecorder
from webanalytics.pipeline.stats import StatsQueryService
from webanalytics.pipeline.sweep import GoalSweep
from webanalytics.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class Stores:
    """One instance of every store."""

    events: EventStore
    goals: GoalStore
    conversions: ConversionStore
    stats: StatStore
    websites: WebsiteStore

    def all(self) -> list[Store]:
        return [self.events, self.goals, self.conversions, self.stats, self.websites]


@dataclass
class Pipeline:
    """Stores plus the services built on them."""

    stores: Stores
    recorder: ConversionRecorder
    engine: AggregationEngine
    sweep: GoalSweep
    orchestrator: Orchestrator
    ingestion: IngestionService
    goals: GoalService
    queries: ConversionQueryService
    stats: StatsQueryService
    tracker: RunStatusTracker | None = None

    def connect(self) -> None:
        """Connect every store."""
        for store in self.stores.all():
            store.connect()

    def close(self) -> None:
        """Close every store, even if one fails to close."""
        for store in self.stores.all():
            try:
                store.close()
            except Exception as e:
                logger.warning("Error closing %s: %s", type(store).__name__, e)


def build_stores(settings: Settings | None = None) -> Stores:
    """
    Create unconnected stores for the configured backend.

    Raises:
        ValueError: If an unknown backend is configured
    """
    settings = settings or get_settings()
    backend = settings.storage.backend

    match backend:
        case "postgresql":
            from webanalytics.infrastructure.repositories.postgresql import (
                PostgreSQLConversionStore,
                PostgreSQLEventStore,
                PostgreSQLGoalStore,
                PostgreSQLStatStore,
                PostgreSQLWebsiteStore,
            )

            return Stores(
                events=PostgreSQLEventStore(settings),
                goals=PostgreSQLGoalStore(settings),
                conversions=PostgreSQLConversionStore(settings),
                stats=PostgreSQLStatStore(settings),
                websites=PostgreSQLWebsiteStore(settings),
            )
        case "memory":
            from webanalytics.infrastructure.repositories.memory import (
                InMemoryConversionStore,
                InMemoryEventStore,
                InMemoryGoalStore,
                InMemoryStatStore,
                InMemoryWebsiteStore,
            )

            return Stores(
                events=InMemoryEventStore(),
                goals=InMemoryGoalStore(),
                conversions=InMemoryConversionStore(),
                stats=InMemoryStatStore(),
                websites=InMemoryWebsiteStore(),
            )
        case _:
            raise ValueError(
                f"Unknown storage backend: '{backend}'.\n"
                "Valid options are: postgresql, memory"
            )


def build_tracker(settings: Settings | None = None) -> RunStatusTracker | None:
    """Run-status tracker backed by Valkey, or None when disabled."""
    settings = settings or get_settings()
    if not settings.valkey.enabled:
        return None

    from webanalytics.infrastructure.cache import ValkeyCache

    return RunStatusTracker(
        ValkeyCache(settings.valkey.url), ttl_hours=settings.valkey.run_history_ttl_hours
    )


def build_pipeline(
    settings: Settings | None = None,
    stores: Stores | None = None,
    tracker: RunStatusTracker | None = None,
) -> Pipeline:
    """
    Wire every service for the configured backend.

    Args:
        settings: Application settings. If None, uses get_settings().
        stores: Prebuilt stores (default: build_stores(settings))
        tracker: Run-status tracker (default: build_tracker(settings))

    Returns:
        Pipeline whose stores are not yet connected
    """
    settings = settings or get_settings()
    stores = stores or build_stores(settings)
    if tracker is None:
        tracker = build_tracker(settings)

    recorder = ConversionRecorder(stores.conversions)
    engine = AggregationEngine(stores.events, stores.stats)
    sweep = GoalSweep(
        stores.events,
        stores.goals,
        recorder,
        lookback_hours=settings.aggregation.sweep_lookback_hours,
    )
    orchestrator = Orchestrator(
        stores.events,
        engine,
        sweep=sweep,
        tracker=tracker,
        retention_days=settings.aggregation.retention_days,
        websites=stores.websites,
    )

    return Pipeline(
        stores=stores,
        recorder=recorder,
        engine=engine,
        sweep=sweep,
        orchestrator=orchestrator,
        ingestion=IngestionService(
            stores.events,
            stores.goals,
            stores.websites,
            recorder,
            batch_max_size=settings.ingestion.batch_max_size,
        ),
        goals=GoalService(stores.goals, stores.websites, recorder=recorder),
        queries=ConversionQueryService(
            stores.goals, stores.conversions, stores.events, stores.websites
        ),
        stats=StatsQueryService(stores.stats, stores.websites),
        tracker=tracker,
    )
