# ==============================================================================
# Aggregation Commands
# ==============================================================================
"""
One-shot aggregation: a full run (rollups for every website, goal sweep,
retention purge) or an on-demand refresh of one website.
"""

import json
from typing import Annotated, Optional

import typer

from webanalytics.cli.shared import C, I, fail, open_pipeline, parse_day
from webanalytics.core.models import DailyStat


def _print_stat(stat: DailyStat) -> None:
    print(f"  {C.WHITE}{stat.date}{C.RESET}")
    print(f"    Visits:      {stat.total_visits} ({stat.unique_visitors} unique)")
    print(f"    Page views:  {stat.page_views}")
    print(f"    Avg session: {stat.avg_duration:.1f}s, bounce rate {stat.bounce_rate}%")
    if stat.top_page:
        print(f"    Top page:    {stat.top_page}")
    if stat.top_referrer:
        print(f"    Top referrer: {stat.top_referrer}")


def aggregate_run(
    day: Annotated[
        Optional[str], typer.Option("--date", help="Day to aggregate, YYYY-MM-DD (default: yesterday)")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output the run report as JSON")] = False,
) -> None:
    """Run daily aggregation and the goal sweep once, now."""
    target = parse_day(day)

    with open_pipeline() as pipeline:
        report = pipeline.orchestrator.run(day=target, trigger="manual")

    if report is None:
        raise fail("An aggregation run is already in progress")

    if json_output:
        print(json.dumps(report.to_dict(), indent=2))
        return

    badge = f"{C.BRIGHT_GREEN}{I.CHECK}" if report.succeeded else f"{C.BRIGHT_YELLOW}{I.WARN}"
    print()
    print(
        f"{badge} Aggregated {C.WHITE}{len(report.aggregated)}/{len(report.websites)}"
        f"{C.RESET} websites for {C.WHITE}{report.target_day}{C.RESET}"
        f" in {report.duration_seconds:.2f}s"
    )
    for website_id, error in sorted(report.failures.items()):
        print(f"  {C.BRIGHT_RED}{I.CROSS}{C.RESET} {website_id}: {error}")
    if report.sweep is not None:
        print(
            f"  Sweep: {report.sweep.events_scanned} events scanned, "
            f"{report.sweep.conversions_recorded} new conversions"
        )
    if report.purged:
        print(f"  Purged {report.purged} expired events")
    for error in report.errors:
        print(f"  {C.BRIGHT_RED}{I.CROSS}{C.RESET} {error}")
    print()

    if not report.succeeded:
        raise typer.Exit(1)


def aggregate_refresh(
    website_id: Annotated[str, typer.Argument(help="Website to refresh")],
    day: Annotated[
        Optional[str],
        typer.Option("--date", help="Day to recompute, YYYY-MM-DD (default: today and yesterday)"),
    ] = None,
    owner: Annotated[
        Optional[int], typer.Option("--owner", "-o", help="Require the website to belong to this owner")
    ] = None,
) -> None:
    """Recompute daily stats for one website immediately."""
    target = parse_day(day)

    with open_pipeline() as pipeline:
        stats = pipeline.orchestrator.refresh(website_id, day=target, owner_id=owner)

    print()
    if not stats:
        print(f"{C.BRIGHT_YELLOW}{I.CIRCLE} No events for {website_id} on the requested days{C.RESET}")
        print()
        return

    print(f"{C.BRIGHT_GREEN}{I.CHECK} Refreshed {C.WHITE}{website_id}{C.RESET}")
    for stat in stats:
        _print_stat(stat)
    print()
