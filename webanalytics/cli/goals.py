# ==============================================================================
# Goal Commands
# ==============================================================================
"""
Goal management and conversion reporting.

Commands act on behalf of an owner (--owner); goals and websites owned by
someone else are reported as not found.
"""

import json
from typing import Annotated, Optional

import typer

from webanalytics.cli.shared import C, I, fail, open_pipeline, parse_timestamp
from webanalytics.core.models import GoalType
from webanalytics.pipeline.conversions import DEFAULT_PAGE_SIZE

OwnerOption = Annotated[int, typer.Option("--owner", "-o", help="Owning user id")]


def goals_create(
    website_id: Annotated[str, typer.Argument(help="Website the goal belongs to")],
    name: Annotated[str, typer.Argument(help="Goal name")],
    goal_type: Annotated[
        GoalType, typer.Option("--type", "-t", help="Goal type")
    ] = GoalType.URL_DESTINATION,
    conditions: Annotated[
        str, typer.Option("--conditions", "-c", help="Conditions as a JSON object")
    ] = "{}",
    value: Annotated[float, typer.Option("--value", help="Value per conversion")] = 0.0,
    description: Annotated[str, typer.Option("--description", help="Description")] = "",
    owner: OwnerOption = 1,
) -> None:
    """Create a goal.

    Examples:
        webanalytics goals create web_x Signup -c '{"url": "/thanks"}'
        webanalytics goals create web_x Brochure -t download -c '{"fileType": "pdf"}'
    """
    try:
        parsed = json.loads(conditions)
    except json.JSONDecodeError as e:
        raise fail(f"--conditions is not valid JSON: {e}") from None
    if not isinstance(parsed, dict):
        raise fail("--conditions must be a JSON object")

    with open_pipeline() as pipeline:
        goal = pipeline.goals.create(
            owner_id=owner,
            website_id=website_id,
            name=name,
            goal_type=goal_type,
            conditions=parsed,
            value=value,
            description=description,
        )

    print(f"{C.BRIGHT_GREEN}{I.CHECK} Goal '{goal.name}' created{C.RESET}")
    print(f"  ID: {C.WHITE}{goal.id}{C.RESET}")


def goals_list(
    website_id: Annotated[str, typer.Argument(help="Website to list goals for")],
    owner: OwnerOption = 1,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """List the goals of a website."""
    with open_pipeline() as pipeline:
        goals = pipeline.goals.list_for_website(website_id, owner)

    if json_output:
        print(json.dumps([g.model_dump(mode="json") for g in goals], indent=2))
        return

    if not goals:
        print(f"{C.DIM}No goals for {website_id}{C.RESET}")
        return
    for goal in goals:
        state = f"{C.BRIGHT_GREEN}active" if goal.is_active else f"{C.DIM}inactive"
        print(
            f"  {C.WHITE}{goal.id:>5}{C.RESET}  {goal.name}  "
            f"{C.CYAN}{goal.goal_type.value}{C.RESET}  {state}{C.RESET}"
        )
        print(f"         {C.DIM}{json.dumps(goal.conditions)}{C.RESET}")


def goals_delete(
    goal_id: Annotated[int, typer.Argument(help="Goal to delete")],
    owner: OwnerOption = 1,
) -> None:
    """Soft-delete a goal; its recorded conversions are kept."""
    with open_pipeline() as pipeline:
        pipeline.goals.delete(goal_id, owner)
    print(f"{C.BRIGHT_GREEN}{I.CHECK} Goal {goal_id} deleted{C.RESET}")


def goals_track(
    goal_id: Annotated[int, typer.Argument(help="Goal that was reached")],
    session_id: Annotated[str, typer.Option("--session", "-s", help="Visitor session id")],
    page_url: Annotated[str, typer.Option("--url", "-u", help="Converting page URL")],
    value: Annotated[
        Optional[float], typer.Option("--value", help="Conversion value (default: goal value)")
    ] = None,
    data: Annotated[
        Optional[str], typer.Option("--data", "-d", help="Custom data as a JSON object")
    ] = None,
    owner: OwnerOption = 1,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Record a conversion reported outside event collection.

    Example:
        webanalytics goals track 3 -s sess_abc -u https://shop.example/thanks --value 49
    """
    custom_data = None
    if data is not None:
        try:
            custom_data = json.loads(data)
        except json.JSONDecodeError as e:
            raise fail(f"--data is not valid JSON: {e}") from None

    with open_pipeline() as pipeline:
        conversion = pipeline.goals.track_conversion(
            goal_id,
            owner,
            session_id=session_id,
            page_url=page_url,
            value=value,
            custom_data=custom_data,
        )

    if json_output:
        print(json.dumps(conversion.model_dump(mode="json"), indent=2))
        return
    print(
        f"{C.BRIGHT_GREEN}{I.CHECK} Conversion {C.WHITE}{conversion.id}{C.BRIGHT_GREEN} "
        f"recorded for goal {goal_id} (value {conversion.value:.2f}){C.RESET}"
    )


def goals_sweep() -> None:
    """Match recent events against active goals and record missed conversions."""
    with open_pipeline() as pipeline:
        result = pipeline.sweep.run()

    print(
        f"{C.BRIGHT_GREEN}{I.CHECK} Swept {C.WHITE}{result.websites}{C.BRIGHT_GREEN} websites: "
        f"{result.events_scanned} events scanned, "
        f"{result.conversions_recorded} new conversions{C.RESET}"
    )
    for website_id, error in sorted(result.failures.items()):
        print(f"  {C.BRIGHT_RED}{I.CROSS}{C.RESET} {website_id}: {error}")
    if result.failures:
        raise typer.Exit(1)


def goals_conversions(
    goal_id: Annotated[int, typer.Argument(help="Goal to report on")],
    start: Annotated[Optional[str], typer.Option("--start", help="Earliest time (ISO-8601)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Latest time (ISO-8601)")] = None,
    limit: Annotated[int, typer.Option("--limit", help="Page size (1-1000)")] = DEFAULT_PAGE_SIZE,
    offset: Annotated[int, typer.Option("--offset", help="Conversions to skip")] = 0,
    owner: Annotated[
        Optional[int], typer.Option("--owner", "-o", help="Restrict to goals of this owner")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """List a goal's conversions (newest first) with per-day totals."""
    with open_pipeline() as pipeline:
        page = pipeline.queries.query(
            goal_id,
            owner_id=owner,
            start=parse_timestamp(start),
            end=parse_timestamp(end),
            limit=limit,
            offset=offset,
        )

    if json_output:
        print(json.dumps(page.to_dict(), indent=2))
        return

    print()
    print(f"  {C.BOLD}{page.goal.name}{C.RESET} ({page.goal.goal_type.value})")
    print()
    for day in page.stats:
        print(
            f"  {C.WHITE}{day.conversion_date}{C.RESET}  {day.total_conversions:>6} conversions"
            f"  {day.unique_sessions:>6} sessions  value {day.total_value:.2f}"
        )
    if page.stats:
        print()
    for conversion in page.conversions:
        print(
            f"  {C.DIM}{conversion.converted_at:%Y-%m-%d %H:%M:%S}{C.RESET}  "
            f"{conversion.session_id}  {conversion.page_url}"
        )
    if page.has_more:
        print(f"  {C.DIM}... more with --offset {page.offset + page.limit}{C.RESET}")
    print()


def goals_rates(
    website_id: Annotated[str, typer.Argument(help="Website to report on")],
    start: Annotated[Optional[str], typer.Option("--start", help="Earliest time (ISO-8601)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Latest time (ISO-8601)")] = None,
    owner: Annotated[
        Optional[int], typer.Option("--owner", "-o", help="Restrict to websites of this owner")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Conversion rate of every active goal of a website."""
    with open_pipeline() as pipeline:
        rates = pipeline.queries.conversion_rates(
            website_id, owner_id=owner, start=parse_timestamp(start), end=parse_timestamp(end)
        )

    if json_output:
        print(json.dumps([r.model_dump(mode="json") for r in rates], indent=2))
        return

    for rate in rates:
        print(
            f"  {C.WHITE}{rate.goal_name:<30}{C.RESET} {rate.conversions:>6} conversions  "
            f"{rate.conversion_rate:>6.2f}%  value {rate.total_value:.2f}"
        )
