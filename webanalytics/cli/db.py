# ==============================================================================
# Database Commands
# ==============================================================================
"""
Database schema commands: create the schema if missing, or drop and recreate it.
"""

from typing import Annotated

import typer

from webanalytics.cli.shared import (
    C,
    I,
    SCHEDULER_PID_FILE,
    check_db_connection,
    fail,
    is_process_running,
)
from webanalytics.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def db_init() -> None:
    """Create the PostgreSQL schema and tables if they do not exist."""
    from webanalytics.utils.db import ensure_schema

    settings = get_settings()
    schema = settings.postgres.schema_name

    print()
    if not check_db_connection():
        raise fail(
            f"Cannot connect to PostgreSQL at {settings.postgres.host}:{settings.postgres.port}"
        )

    try:
        created = ensure_schema(settings)
    except RuntimeError as e:
        raise fail(str(e)) from None

    if created:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Schema '{C.WHITE}{schema}{C.BRIGHT_GREEN}' created{C.RESET}")
    else:
        print(f"{C.BRIGHT_YELLOW}{I.CIRCLE} Schema '{C.WHITE}{schema}{C.BRIGHT_YELLOW}' already exists{C.RESET}")
    print()


def db_reset(
    confirm: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
) -> None:
    """Drop and recreate the PostgreSQL schema (DELETES ALL DATA).

    The scheduler must be stopped before running this command.

    Examples:
        webanalytics db reset       # With confirmation prompt
        webanalytics db reset -y    # Skip confirmation
    """
    from webanalytics.utils.db import reset_schema

    settings = get_settings()
    schema = settings.postgres.schema_name

    print()
    if is_process_running(SCHEDULER_PID_FILE):
        raise fail(
            f"Scheduler is running - stop it first with "
            f"'{C.WHITE}webanalytics scheduler stop{C.BRIGHT_RED}'"
        )

    if not confirm:
        typer.confirm(
            f"This will DELETE all data in schema '{schema}'. Are you sure?",
            abort=True,
        )
        print()

    if not check_db_connection():
        raise fail("Cannot connect to PostgreSQL")

    print(f"  Resetting PostgreSQL schema '{C.WHITE}{schema}{C.RESET}'...")
    try:
        reset_schema(settings)
    except RuntimeError as e:
        raise fail(str(e)) from None
    print(f"{C.BRIGHT_GREEN}{I.CHECK} Schema reset{C.RESET}")
    print()
