# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration commands for the web analytics CLI.
"""

import json
from typing import Annotated

import typer

from webanalytics.cli.shared import C
from webanalytics.utils.config import Settings, get_settings


def _redact(value: str | None, reveal: bool) -> str | None:
    if not value or reveal:
        return value
    return "********"


def settings_to_dict(settings: Settings, reveal_secrets: bool = False) -> dict:
    """Effective configuration, grouped like the environment prefixes."""
    return {
        "storage": {"backend": settings.storage.backend},
        "postgresql": {
            "host": settings.postgres.host,
            "port": settings.postgres.port,
            "database": settings.postgres.database,
            "schema": settings.postgres.schema_name,
            "user": settings.postgres.user,
            "password": _redact(settings.postgres.password, reveal_secrets),
            "sslmode": settings.postgres.sslmode,
        },
        "valkey": {
            "enabled": settings.valkey.enabled,
            "host": settings.valkey.host,
            "port": settings.valkey.port,
            "db": settings.valkey.db,
            "ssl_enabled": settings.valkey.ssl,
            "password": _redact(settings.valkey.password, reveal_secrets),
            "run_history_ttl_hours": settings.valkey.run_history_ttl_hours,
        },
        "aggregation": {
            "sweep_lookback_hours": settings.aggregation.sweep_lookback_hours,
            "retention_days": settings.aggregation.retention_days,
        },
        "scheduler": {
            "cron_hour": settings.scheduler.cron_hour,
            "cron_minute": settings.scheduler.cron_minute,
            "timezone": settings.scheduler.timezone,
            "run_on_startup": settings.scheduler.run_on_startup,
            "startup_delay_seconds": settings.scheduler.startup_delay_seconds,
        },
        "ingestion": {"batch_max_size": settings.ingestion.batch_max_size},
        "debug": settings.debug,
        "log_level": settings.log_level,
    }


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
    reveal_secrets: Annotated[
        bool, typer.Option("--reveal-secrets", help="Show passwords instead of ********")
    ] = False,
) -> None:
    """Display current configuration."""
    config = settings_to_dict(get_settings(), reveal_secrets)

    if json_output:
        print(json.dumps(config, indent=2))
        return

    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()
    for section, values in config.items():
        if not isinstance(values, dict):
            continue
        print(f"{C.CYAN}{section.replace('_', ' ').title()}{C.RESET}")
        for key, value in values.items():
            label = f"{key.replace('_', ' ').capitalize()}:"
            print(f"  {label:<24}{C.WHITE}{value}{C.RESET}")
        print()
    print(f"{C.CYAN}General{C.RESET}")
    print(f"  {'Debug:':<24}{C.WHITE}{config['debug']}{C.RESET}")
    print(f"  {'Log level:':<24}{C.WHITE}{config['log_level']}{C.RESET}")
    print()
