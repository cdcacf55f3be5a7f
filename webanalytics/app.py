# ==============================================================================
# Web Analytics CLI
# ==============================================================================
"""
Command-line interface for the web analytics backend.

Usage:
    webanalytics --help
    webanalytics status
    webanalytics config show
    webanalytics db init
    webanalytics websites add "My Site" --domain example.com
    webanalytics ingest events.jsonl
    webanalytics aggregate run --date 2026-01-31
    webanalytics goals conversions 42 --json
    webanalytics stats web_x --days 7
    webanalytics scheduler start
"""

import os

import typer

# ==============================================================================
# App Configuration
# ==============================================================================
# Set consistent terminal width for help output formatting
if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="webanalytics",
    help="Web analytics backend CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

db_app = typer.Typer(
    help="Database schema operations",
    no_args_is_help=True,
)
app.add_typer(db_app, name="db")

from webanalytics.cli.db import db_init, db_reset

db_app.command("init")(db_init)
db_app.command("reset")(db_reset)

websites_app = typer.Typer(
    help="Tracked website management",
    no_args_is_help=True,
)
app.add_typer(websites_app, name="websites")

from webanalytics.cli.websites import websites_add

websites_app.command("add")(websites_add)

from webanalytics.cli.ingest import ingest_file

app.command("ingest")(ingest_file)

aggregate_app = typer.Typer(
    help="Daily aggregation",
    no_args_is_help=True,
)
app.add_typer(aggregate_app, name="aggregate")

from webanalytics.cli.aggregate import aggregate_refresh, aggregate_run

aggregate_app.command("run")(aggregate_run)
aggregate_app.command("refresh")(aggregate_refresh)

goals_app = typer.Typer(
    help="Goals and conversions",
    no_args_is_help=True,
)
app.add_typer(goals_app, name="goals")

from webanalytics.cli.goals import (
    goals_conversions,
    goals_create,
    goals_delete,
    goals_list,
    goals_rates,
    goals_sweep,
    goals_track,
)

goals_app.command("create")(goals_create)
goals_app.command("list")(goals_list)
goals_app.command("delete")(goals_delete)
goals_app.command("track")(goals_track)
goals_app.command("sweep")(goals_sweep)
goals_app.command("conversions")(goals_conversions)
goals_app.command("rates")(goals_rates)

scheduler_app = typer.Typer(
    help="Aggregation scheduler process",
    no_args_is_help=True,
)
app.add_typer(scheduler_app, name="scheduler")

from webanalytics.cli.scheduler import scheduler_logs, scheduler_start, scheduler_stop

scheduler_app.command("start")(scheduler_start)
scheduler_app.command("stop")(scheduler_stop)
scheduler_app.command("logs")(scheduler_logs)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

from webanalytics.cli.config import config_show

config_app.command("show")(config_show)

from webanalytics.cli.status import show_status

app.command("status")(show_status)

from webanalytics.cli.stats import show_stats

app.command("stats")(show_stats)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
