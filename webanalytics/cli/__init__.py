# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for the web analytics backend.

Commands are organized into separate modules for maintainability:
- shared.py: Common utilities, constants, and helpers
- db.py, websites.py, ingest.py: Setup and data loading
- aggregate.py, goals.py: One-shot aggregation, goals and conversion reports
- scheduler.py, status.py, config.py: Operations
"""

from webanalytics.cli.shared import (
    BOX_WIDTH,
    SCHEDULER_LOG_FILE,
    SCHEDULER_PID_FILE,
    B,
    Box,
    C,
    Colors,
    I,
    Icons,
    check_db_connection,
    get_process_pid,
    is_process_running,
    open_pipeline,
    start_background_process,
    stop_process,
)

__all__ = [
    "BOX_WIDTH",
    "SCHEDULER_LOG_FILE",
    "SCHEDULER_PID_FILE",
    "B",
    "Box",
    "C",
    "Colors",
    "I",
    "Icons",
    "check_db_connection",
    "get_process_pid",
    "is_process_running",
    "open_pipeline",
    "start_background_process",
    "stop_process",
]
