# ==============================================================================
# Shared Utilities for CLI Commands
# ==============================================================================
"""
Shared utilities, constants, and helper functions used across CLI command modules.

This module provides:
- ANSI color codes and box-drawing characters
- Process management utilities for the scheduler
- Pipeline construction for one-shot commands
- Box drawing helpers for formatted output
"""

import os
import re
import signal
import subprocess
import sys
import time
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional

import typer

from webanalytics.core.errors import AnalyticsError
from webanalytics.utils.paths import SCHEDULER_LOG_FILE, SCHEDULER_PID_FILE, get_project_root

if TYPE_CHECKING:
    from webanalytics.pipeline.factory import Pipeline

# ==============================================================================
# Constants
# ==============================================================================

# Box drawing width (unified for all commands)
BOX_WIDTH = 68


# ==============================================================================
# ANSI Colors and Box Drawing
# ==============================================================================


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Colors
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    # Bright colors
    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_CYAN = "\033[96m"


class Box:
    """Unicode box-drawing characters."""

    H = "─"  # horizontal
    V = "│"  # vertical
    TL = "┌"  # top-left
    TR = "┐"  # top-right
    BL = "└"  # bottom-left
    BR = "┘"  # bottom-right
    LT = "├"  # left-tee
    RT = "┤"  # right-tee


class Icons:
    """Status icons using Unicode symbols."""

    CHECK = "✓"
    CROSS = "✗"
    WARN = "!"
    CIRCLE = "●"
    BULLET = "•"
    ARROW = "→"
    DATABASE = "◆"
    CLOCK = "◷"
    TARGET = "◎"
    PLAY = "▶"
    STOP = "□"


# Module-level aliases for convenience
C, B, I = Colors, Box, Icons


# ==============================================================================
# Command Helpers
# ==============================================================================


def fail(message: str) -> typer.Exit:
    """Print an error line and build the exit to raise."""
    print(f"{C.BRIGHT_RED}{I.CROSS} {message}{C.RESET}")
    return typer.Exit(1)


def parse_day(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD option value."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise fail(f"Invalid date '{value}', expected YYYY-MM-DD") from None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime option value (naive means UTC)."""
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise fail(f"Invalid timestamp '{value}', expected ISO-8601") from None


@contextmanager
def open_pipeline() -> Iterator["Pipeline"]:
    """
    Build and connect the configured pipeline for one command.

    Analytics errors raised inside the block are printed and turned into
    exit code 1.
    """
    from webanalytics.pipeline.factory import build_pipeline

    pipeline = build_pipeline()
    try:
        pipeline.connect()
        yield pipeline
    except AnalyticsError as e:
        raise fail(str(e)) from None
    finally:
        pipeline.close()


# ==============================================================================
# Database Helpers
# ==============================================================================


def check_db_connection() -> bool:
    """Check if PostgreSQL is reachable."""
    from webanalytics.infrastructure.repositories.postgresql import check_postgresql_connection

    return check_postgresql_connection()


# ==============================================================================
# Process Management Helpers
# ==============================================================================


def get_process_pid(pid_file: Path) -> Optional[int]:
    """Get the PID from a PID file, if the process is still running."""
    if pid_file.exists():
        try:
            pid = int(pid_file.read_text().strip())
            # Check if process is still running
            os.kill(pid, 0)
            return pid
        except (ValueError, ProcessLookupError, PermissionError):
            pid_file.unlink(missing_ok=True)
    return None


def is_process_running(pid_file: Path) -> bool:
    """Check if a process is running based on its PID file."""
    return get_process_pid(pid_file) is not None


def get_process_start_time(pid: Optional[int]) -> Optional[str]:
    """Get the start time of a process from its PID using psutil."""
    if pid is None:
        return None
    import psutil

    try:
        proc = psutil.Process(pid)
    except psutil.Error:
        return None
    return datetime.fromtimestamp(proc.create_time()).strftime("%Y-%m-%d %H:%M:%S")


def stop_process(pid_file: Path, name: str) -> bool:
    """Stop a process by its PID file. Returns True if stopped."""
    pid = get_process_pid(pid_file)
    if not pid:
        print(f"{C.BRIGHT_YELLOW}{I.STOP} {name} is not running{C.RESET}")
        return False

    print(f"  Stopping {name} (PID: {C.WHITE}{pid}{C.RESET})...")

    try:
        os.kill(pid, signal.SIGTERM)
        # Wait up to 10 seconds for graceful shutdown (a run in progress finishes first)
        for _ in range(20):
            time.sleep(0.5)
            try:
                os.kill(pid, 0)
            except ProcessLookupError:
                break
        else:
            print(f"  {name} not responding, force killing...")
            os.kill(pid, signal.SIGKILL)
    except ProcessLookupError:
        pass  # Already terminated
    except PermissionError:
        print(f"{C.BRIGHT_RED}{I.CROSS} Permission denied to stop {name}{C.RESET}")
        return False

    pid_file.unlink(missing_ok=True)
    print(f"{C.BRIGHT_GREEN}{I.CHECK} {name} stopped{C.RESET}")
    return True


def start_background_process(
    module: str,
    pid_file: Path,
    log_file: Path,
    name: str,
    extra_env: Optional[dict] = None,
) -> bool:
    """Start `python -m module` in the background. Returns True if started successfully."""
    project_root = get_project_root()

    env = os.environ.copy()
    python_path = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = f"{project_root}:{python_path}" if python_path else str(project_root)

    if extra_env:
        env.update(extra_env)

    # Redirect stdout/stderr to devnull - the runner handles logging to file
    with open(os.devnull, "w") as devnull:
        process = subprocess.Popen(
            [sys.executable, "-m", module],
            stdout=devnull,
            stderr=devnull,
            start_new_session=True,
            env=env,
            cwd=str(project_root),
        )

    pid_file.write_text(str(process.pid))

    # Wait a moment and verify it started
    time.sleep(2)
    if is_process_running(pid_file):
        print(f"{C.BRIGHT_GREEN}{I.CHECK} {name} started{C.RESET}")
        print(f"  PID: {C.WHITE}{process.pid}{C.RESET}")
        print(f"  Log: {C.DIM}{log_file}{C.RESET}")
        return True
    print(f"{C.BRIGHT_RED}{I.CROSS} {name} failed to start{C.RESET}")
    print(f"  Check logs: {C.DIM}{log_file}{C.RESET}")
    return False


# ==============================================================================
# Box Drawing Helpers
# ==============================================================================

# Regex pattern for stripping ANSI escape codes
_ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")


def _visible_len(s: str) -> int:
    """Calculate visible length of string, ignoring ANSI escape codes."""
    return len(_ANSI_ESCAPE_PATTERN.sub("", s))


def _box_header(title: str, width: int = BOX_WIDTH) -> str:
    """Create a single-line box header."""
    inner_width = width - 2
    title_padded = f" {title} "
    left_bar = (inner_width - len(title_padded)) // 2
    right_bar = inner_width - left_bar - len(title_padded)
    return (
        f"{C.CYAN}{B.TL}{B.H * left_bar}{C.BOLD}{C.WHITE}{title_padded}"
        f"{C.RESET}{C.CYAN}{B.H * right_bar}{B.TR}{C.RESET}"
    )


def _section_header(title: str, width: int = BOX_WIDTH) -> str:
    """Create a section header."""
    inner_width = width - 2
    title_padded = f" {title} "
    bar_len = inner_width - len(title_padded) - 1  # -1 for the first H after LT
    return (
        f"{C.CYAN}{B.LT}{B.H}{C.BOLD}{title_padded}{C.RESET}{C.CYAN}{B.H * bar_len}{B.RT}{C.RESET}"
    )


def _box_line(content: str, width: int = BOX_WIDTH) -> str:
    """Create a line inside the box with proper padding to right border."""
    inner_width = width - 2
    padding = max(inner_width - _visible_len(content), 0)
    return f"{C.CYAN}{B.V}{C.RESET}{content}{' ' * padding}{C.CYAN}{B.V}{C.RESET}"


def _empty_line(width: int = BOX_WIDTH) -> str:
    """Create an empty line inside the box."""
    return f"{C.CYAN}{B.V}{' ' * (width - 2)}{B.V}{C.RESET}"


def _box_bottom(width: int = BOX_WIDTH) -> str:
    """Create a box bottom border with a centered timestamp."""
    text = f" {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} "
    remaining = width - 2 - len(text)  # -2 for corners
    left_pad = remaining // 2
    right_pad = remaining - left_pad
    return f"{C.CYAN}{B.BL}{B.H * left_pad}{C.DIM}{text}{C.RESET}{C.CYAN}{B.H * right_pad}{B.BR}{C.RESET}"


def _status_badge(status: str, is_ok: bool, is_stopped: bool = False) -> tuple[str, int]:
    """Create a colored status badge. Returns (formatted_string, visible_length)."""
    if is_ok:
        return f"{C.BRIGHT_GREEN}{I.CHECK} {status}{C.RESET}", len(status) + 2
    elif is_stopped:
        return f"{C.BRIGHT_YELLOW}{I.STOP} {status}{C.RESET}", len(status) + 2
    else:
        return f"{C.BRIGHT_RED}{I.CROSS} {status}{C.RESET}", len(status) + 2
