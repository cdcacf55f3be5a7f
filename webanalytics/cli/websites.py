# ==============================================================================
# Website Commands
# ==============================================================================
"""
Register tracked websites. Events are only accepted for registered websites.
"""

from typing import Annotated

import typer

from webanalytics.cli.shared import C, I, open_pipeline
from webanalytics.core.identifiers import generate_website_id
from webanalytics.core.models import Website


def websites_add(
    name: Annotated[str, typer.Argument(help="Display name of the website")],
    domain: Annotated[str, typer.Option("--domain", "-d", help="Website domain")] = "",
    owner: Annotated[int, typer.Option("--owner", "-o", help="Owning user id")] = 1,
    website_id: Annotated[
        str | None, typer.Option("--id", help="Website id (default: generated web_... id)")
    ] = None,
) -> None:
    """Register a website and print its id."""
    website = Website(
        id=website_id or generate_website_id(),
        owner_id=owner,
        name=name,
        domain=domain,
    )
    with open_pipeline() as pipeline:
        pipeline.stores.websites.add(website)

    print(f"{C.BRIGHT_GREEN}{I.CHECK} Website '{name}' registered{C.RESET}")
    print(f"  ID: {C.WHITE}{website.id}{C.RESET}")
