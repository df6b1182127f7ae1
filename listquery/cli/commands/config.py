"""Configuration commands."""

from __future__ import annotations

import json

import click

from listquery.cli.utils import header
from listquery.core.settings import get_logging_settings, get_pagination_settings


@click.group(name="config")
def config() -> None:
    """Configuration management commands."""


@config.command()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "table"]),
    default="table",
    help="Output format",
)
@click.option(
    "--show-secrets/--hide-secrets",
    default=False,
    help="Show the cursor signing secret",
)
def show(output_format: str, show_secrets: bool) -> None:
    """Display the effective pagination and logging settings."""
    pagination = get_pagination_settings()
    log_settings = get_logging_settings()

    secret = pagination.cursor_secret
    if secret is None:
        secret_display = None
    elif show_secrets:
        secret_display = secret.get_secret_value()
    else:
        secret_display = "***"

    config_dict: dict[str, dict[str, object]] = {
        "pagination": {
            "default_limit": pagination.default_limit,
            "max_limit": pagination.max_limit,
            "default_mode": pagination.default_mode,
            "allow_custom_limit": pagination.allow_custom_limit,
            "allow_custom_sort": pagination.allow_custom_sort,
            "allow_multiple_sort": pagination.allow_multiple_sort,
            "cursor_secret": secret_display,
        },
        "logging": {
            "level": log_settings.level,
            "json_logs": log_settings.json_logs,
            "service_name": log_settings.service_name,
            "log_file": str(log_settings.log_file) if log_settings.log_file else None,
            "console_enabled": log_settings.console_enabled,
        },
    }

    if output_format == "json":
        click.echo(json.dumps(config_dict, indent=2))
        return

    for section_name, values in config_dict.items():
        header(section_name.capitalize())
        for key, value in values.items():
            click.echo(f"  {key:<22} {value}")
