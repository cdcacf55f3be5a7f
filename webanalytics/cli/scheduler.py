# ==============================================================================
# Scheduler Commands
# ==============================================================================
"""
Scheduler commands: start, stop, and view logs for the aggregation scheduler.
"""

import subprocess
from typing import Annotated

import typer

from webanalytics.cli.shared import (
    SCHEDULER_LOG_FILE,
    SCHEDULER_PID_FILE,
    C,
    I,
    get_process_pid,
    is_process_running,
    start_background_process,
    stop_process,
)
from webanalytics.utils.config import get_settings

RUNNER_MODULE = "webanalytics.scheduler_runner"


def scheduler_start(
    foreground: Annotated[
        bool, typer.Option("--foreground", "-f", help="Run in this terminal, logging to stderr")
    ] = False,
    truncate_log: Annotated[
        bool, typer.Option("--truncate-log", "-t", help="Truncate log file before starting")
    ] = False,
) -> None:
    """Start the aggregation scheduler.

    The scheduler runs the daily rollup and goal sweep at SCHEDULER_CRON_HOUR:
    SCHEDULER_CRON_MINUTE, and once shortly after startup unless
    SCHEDULER_RUN_ON_STARTUP is false.

    Examples:
        webanalytics scheduler start                 # Background process
        webanalytics scheduler start --foreground    # Attached, Ctrl+C to stop
    """
    if is_process_running(SCHEDULER_PID_FILE):
        print(f"{C.BRIGHT_YELLOW}{I.STOP} Scheduler is already running{C.RESET}")
        print(f"  PID: {C.WHITE}{get_process_pid(SCHEDULER_PID_FILE)}{C.RESET}")
        print(f"  Use '{C.DIM}webanalytics scheduler stop{C.RESET}' to stop it")
        raise typer.Exit(1)

    config = get_settings().scheduler
    print(
        f"  Daily run: {C.WHITE}{config.cron_hour:02d}:{config.cron_minute:02d} "
        f"{config.timezone}{C.RESET}"
    )

    if foreground:
        from webanalytics.scheduler_runner import SchedulerRunner

        SchedulerRunner().run()
        return

    if truncate_log and SCHEDULER_LOG_FILE.exists():
        SCHEDULER_LOG_FILE.unlink()
        print("  Log file truncated")

    print("  Starting scheduler...")
    if start_background_process(
        RUNNER_MODULE,
        SCHEDULER_PID_FILE,
        SCHEDULER_LOG_FILE,
        "Scheduler",
        {"WEBANALYTICS_SCHEDULER_LOG_FILE": str(SCHEDULER_LOG_FILE)},
    ):
        print()
        print(f"  Use '{C.DIM}webanalytics scheduler stop{C.RESET}' to stop")
        print(f"  Use '{C.DIM}webanalytics status{C.RESET}' to see recent runs")
    else:
        raise typer.Exit(1)


def scheduler_stop() -> None:
    """Stop the running scheduler."""
    stop_process(SCHEDULER_PID_FILE, "Scheduler")


def scheduler_logs(
    follow: Annotated[
        bool, typer.Option("--follow", "-f", help="Follow log output (like tail -f)")
    ] = False,
    lines: Annotated[int, typer.Option("--lines", "-n", help="Number of lines to show")] = 50,
) -> None:
    """View scheduler log output."""
    if not SCHEDULER_LOG_FILE.exists():
        print(f"{C.BRIGHT_YELLOW}{I.STOP} No scheduler log file found{C.RESET}")
        print(f"  Run '{C.DIM}webanalytics scheduler start{C.RESET}' first")
        return

    if follow:
        print(f"{C.DIM}Following {SCHEDULER_LOG_FILE} (Ctrl+C to stop)...{C.RESET}")
        print()
        try:
            subprocess.run(["tail", "-f", str(SCHEDULER_LOG_FILE)], check=False)
        except KeyboardInterrupt:
            print()
        return

    with open(SCHEDULER_LOG_FILE) as f:
        all_lines = f.readlines()
    if not all_lines:
        print(f"{C.DIM}Log file is empty{C.RESET}")
        return

    display_lines = all_lines[-lines:]
    print(f"{C.DIM}=== {SCHEDULER_LOG_FILE} (last {len(display_lines)} lines) ==={C.RESET}")
    print()
    for line in display_lines:
        print(line, end="")
