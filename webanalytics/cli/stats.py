# ==============================================================================
# Stats Command
# ==============================================================================
"""
Dashboard overview of a website, read from the stored daily rollups.
"""

import json
from typing import Annotated, Optional

import typer

from webanalytics.cli.shared import C, open_pipeline, parse_day
from webanalytics.pipeline.stats import DEFAULT_DAYS


def show_stats(
    website_id: Annotated[str, typer.Argument(help="Website to report on")],
    days: Annotated[int, typer.Option("--days", "-n", help="Window length in days (1-365)")] = DEFAULT_DAYS,
    today: Annotated[
        Optional[str], typer.Option("--date", help="Last day of the window, YYYY-MM-DD")
    ] = None,
    owner: Annotated[
        Optional[int], typer.Option("--owner", "-o", help="Restrict to websites of this owner")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Visits, top pages and daily series of a website.

    Example:
        webanalytics stats web_x --days 7
    """
    end = parse_day(today)

    with open_pipeline() as pipeline:
        overview = pipeline.stats.overview(website_id, owner_id=owner, days=days, today=end)

    if json_output:
        print(json.dumps(overview.to_dict(), indent=2))
        return

    print()
    print(f"  {C.BOLD}{website_id}{C.RESET}  {C.DIM}{overview.start} .. {overview.end}{C.RESET}")
    print()
    if not overview.days_with_data:
        print(f"  {C.DIM}No aggregated days in this window{C.RESET}")
        print()
        return

    print(f"  Visits:      {overview.total_visits} ({overview.unique_visitors} unique)")
    print(f"  Page views:  {overview.total_page_views}")
    print(f"  Avg session: {overview.avg_duration:.1f}s, bounce rate {overview.avg_bounce_rate:.1f}%")
    print(f"  Days:        {overview.days_with_data}")
    if overview.top_pages:
        print()
        for page, visits in overview.top_pages:
            print(f"  {C.WHITE}{visits:>8}{C.RESET}  {page}")
    print()
    for stat in overview.chart:
        print(f"  {C.DIM}{stat.date}{C.RESET}  {stat.total_visits:>6} visits  {stat.page_views:>6} views")
    print()
