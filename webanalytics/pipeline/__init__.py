# ==============================================================================
# Pipeline Services
# ==============================================================================
"""
Services that combine the core logic with injected stores.

- ConversionRecorder: deduplicating conversion writer
- AggregationEngine: daily rollups
- GoalSweep: catch-up matching over recent events
- Orchestrator: scheduled run driver with overlap prevention
- IngestionService: event collection with synchronous goal matching
- GoalService / ConversionQueryService: goal management and reporting
"""

from webanalytics.pipeline.aggregation import AggregationEngine
from webanalytics.pipeline.conversions import ConversionPage, ConversionQueryService
from webanalytics.pipeline.factory import Pipeline, Stores, build_pipeline, build_stores
from webanalytics.pipeline.goals import GoalService
from webanalytics.pipeline.ingestion import BatchResult, IngestionService, IngestResult
from webanalytics.pipeline.orchestrator import Orchestrator, RunReport, RunState
from webanalytics.pipeline.recorder import ConversionRecorder, RecordResult
from webanalytics.pipeline.sweep import GoalSweep, SweepResult

__all__ = [
    "AggregationEngine",
    "BatchResult",
    "ConversionPage",
    "ConversionQueryService",
    "ConversionRecorder",
    "GoalService",
    "GoalSweep",
    "IngestResult",
    "IngestionService",
    "Orchestrator",
    "Pipeline",
    "RecordResult",
    "RunReport",
    "RunState",
    "Stores",
    "SweepResult",
    "build_pipeline",
    "build_stores",
]
