# ==============================================================================
# Status Command
# ==============================================================================
"""
Status command for the web analytics CLI.

Displays scheduler state, service health and recent aggregation runs in
either formatted box output or JSON format for programmatic consumption.
"""

import json as json_module
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import typer

from webanalytics.cli.shared import (
    BOX_WIDTH,
    SCHEDULER_PID_FILE,
    C,
    I,
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    _section_header,
    _status_badge,
    get_process_pid,
    get_process_start_time,
)
from webanalytics.utils.config import get_settings

HISTORY_SIZE = 5


# ==============================================================================
# Data Collection
# ==============================================================================


def _collect_scheduler_data() -> dict[str, Any]:
    """Collect scheduler process data."""
    pid = get_process_pid(SCHEDULER_PID_FILE)
    return {
        "running": pid is not None,
        "pid": pid,
        "start_time": get_process_start_time(pid),
    }


def _collect_postgresql_data() -> dict[str, Any]:
    """Collect PostgreSQL reachability and schema state."""
    from webanalytics.infrastructure.repositories.postgresql import check_postgresql_connection
    from webanalytics.utils.db import check_schema_exists

    settings = get_settings()
    if settings.storage.backend != "postgresql":
        return {"status": "unused", "schema": None}
    if not check_postgresql_connection(settings):
        return {"status": "unreachable", "schema": None}
    return {
        "status": "connected",
        "schema": settings.postgres.schema_name if check_schema_exists(settings) else None,
    }


def _collect_run_data() -> dict[str, Any]:
    """Collect Valkey reachability and recorded runs."""
    from webanalytics.infrastructure.cache import check_valkey_connection
    from webanalytics.pipeline.factory import build_tracker

    settings = get_settings()
    empty = {"current": None, "last": None, "history": []}
    if not settings.valkey.enabled:
        return {"status": "disabled", **empty}
    if not check_valkey_connection():
        return {"status": "unreachable", **empty}

    tracker = build_tracker(settings)
    return {
        "status": "connected",
        "current": tracker.current_run(),
        "last": tracker.last_run(),
        "history": tracker.history(HISTORY_SIZE),
    }


def _collect_status_data() -> dict[str, Any]:
    """Collect all status data, checking services concurrently."""
    with ThreadPoolExecutor(max_workers=3) as executor:
        scheduler = executor.submit(_collect_scheduler_data)
        postgresql = executor.submit(_collect_postgresql_data)
        runs = executor.submit(_collect_run_data)

        data: dict[str, Any] = {"scheduler": scheduler.result()}
        try:
            data["postgresql"] = postgresql.result(timeout=35)
        except Exception:
            data["postgresql"] = {"status": "unreachable", "schema": None}
        try:
            data["runs"] = runs.result(timeout=35)
        except Exception:
            data["runs"] = {"status": "unreachable", "current": None, "last": None, "history": []}

    data["storage_backend"] = get_settings().storage.backend
    return data


# ==============================================================================
# Display Functions
# ==============================================================================


def _run_summary(run: dict[str, Any]) -> str:
    ok = f"{C.BRIGHT_GREEN}{I.CHECK}" if run.get("succeeded") else f"{C.BRIGHT_YELLOW}{I.WARN}"
    aggregated = len(run.get("aggregated") or [])
    websites = len(run.get("websites") or [])
    return (
        f"{ok}{C.RESET} {run['target_day']} {C.DIM}({run['trigger']}){C.RESET} "
        f"{aggregated}/{websites} websites, {run.get('duration_seconds', 0):.1f}s"
    )


def _service_line(name: str, status: str) -> str:
    badge, _ = _status_badge(status, status == "connected", status in ("disabled", "unused"))
    return f"  {C.BOLD}{name:<12}{C.RESET} {badge}"


def _display_status(data: dict[str, Any]) -> None:
    """Display status in formatted box output."""
    W = BOX_WIDTH

    print()
    print(_box_header("WEB ANALYTICS STATUS", W))
    print(_empty_line(W))

    # ── Scheduler ─────────────────────────────────────────
    print(_section_header("Scheduler", W))
    print(_empty_line(W))
    scheduler = data["scheduler"]
    if scheduler["running"]:
        print(_box_line(f"  {C.BRIGHT_GREEN}{I.CHECK}{C.RESET} Running", W))
        print(_box_line(f"    PID:      {C.WHITE}{scheduler['pid']}{C.RESET}", W))
        if scheduler["start_time"]:
            print(_box_line(f"    Since:    {C.DIM}{scheduler['start_time']}{C.RESET}", W))
    else:
        print(_box_line(f"  {C.DIM}{I.STOP}{C.RESET} Not running", W))
    print(_empty_line(W))

    # ── Services ──────────────────────────────────────────
    print(_section_header("Services", W))
    print(_empty_line(W))
    print(_box_line(f"  {C.DIM}Storage backend:{C.RESET} {C.WHITE}{data['storage_backend']}{C.RESET}", W))
    postgresql = data["postgresql"]
    print(_box_line(_service_line("PostgreSQL", postgresql["status"]), W))
    if postgresql["status"] == "connected":
        schema = postgresql["schema"] or f"{C.BRIGHT_YELLOW}(not initialized){C.RESET}"
        print(_box_line(f"    Schema:   {C.WHITE}{schema}{C.RESET}", W))
    print(_box_line(_service_line("Valkey", data["runs"]["status"]), W))
    print(_empty_line(W))

    # ── Runs ──────────────────────────────────────────────
    print(_section_header("Aggregation Runs", W))
    print(_empty_line(W))
    runs = data["runs"]
    current = runs["current"]
    if current:
        print(
            _box_line(
                f"  {C.BRIGHT_CYAN}{I.PLAY}{C.RESET} In progress: {current['target_day']} "
                f"{C.DIM}({current['trigger']}, since {current['started_at'][:19]}){C.RESET}",
                W,
            )
        )
    if runs["history"]:
        for run in runs["history"]:
            print(_box_line(f"  {_run_summary(run)}", W))
    elif runs["status"] == "connected":
        print(_box_line(f"  {C.DIM}No runs recorded yet{C.RESET}", W))
    else:
        print(_box_line(f"  {C.DIM}Run history unavailable{C.RESET}", W))
    print(_empty_line(W))
    print(_box_bottom(W))
    print()


# ==============================================================================
# Command
# ==============================================================================


def show_status(
    json_output: bool = typer.Option(False, "--json", help="Output status as JSON"),
) -> None:
    """Show scheduler status, service health and recent runs."""
    data = _collect_status_data()

    if json_output:
        print(json_module.dumps(data, indent=2, default=str))
    else:
        _display_status(data)
