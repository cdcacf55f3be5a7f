# ==============================================================================
# Ingest Command
# ==============================================================================
"""
Load events from a file and feed them through batch ingestion.

The file is either a JSON array of event objects or JSON lines (one event
object per line). Events are sent in chunks of INGEST_BATCH_MAX_SIZE; a bad
event is reported and does not stop the others.
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer

from webanalytics.cli.shared import C, I, fail, open_pipeline
from webanalytics.utils.config import get_settings


def load_events(path: Path) -> list[Any]:
    """Read a JSON array or JSON-lines file into a list of payloads."""
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        return []
    if text.startswith("["):
        data = json.loads(text)
        if not isinstance(data, list):
            raise ValueError("expected a JSON array of events")
        return data
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def ingest_file(
    file: Annotated[Path, typer.Argument(help="JSON array or JSON-lines file of events")],
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Print every rejected event")
    ] = False,
) -> None:
    """Ingest events from a file, matching goals as each event is stored."""
    if not file.exists():
        raise fail(f"File not found: {file}")

    try:
        payloads = load_events(file)
    except ValueError as e:  # json.JSONDecodeError is a ValueError
        raise fail(f"Cannot parse {file}: {e}") from None

    if not payloads:
        print(f"{C.BRIGHT_YELLOW}{I.WARN} No events in {file}{C.RESET}")
        return

    batch_size = get_settings().ingestion.batch_max_size
    processed = duplicates = failed = conversions = 0

    with open_pipeline() as pipeline:
        for start in range(0, len(payloads), batch_size):
            result = pipeline.ingestion.ingest_batch(payloads[start : start + batch_size])
            processed += sum(1 for r in result.processed if r.recorded)
            duplicates += sum(1 for r in result.processed if not r.recorded)
            failed += len(result.failed)
            conversions += sum(r.conversions_recorded for r in result.processed)
            if verbose:
                for failure in result.failed:
                    print(f"  {C.BRIGHT_RED}{I.CROSS}{C.RESET} {failure['error']}")

    print(
        f"{C.BRIGHT_GREEN}{I.CHECK} Ingested {C.WHITE}{processed}{C.BRIGHT_GREEN} events"
        f" ({C.WHITE}{conversions}{C.BRIGHT_GREEN} conversions){C.RESET}"
    )
    if duplicates:
        print(f"{C.BRIGHT_YELLOW}{I.WARN} {duplicates} events already collected (same id){C.RESET}")
    if failed:
        print(f"{C.BRIGHT_YELLOW}{I.WARN} {failed} events rejected{C.RESET}")
