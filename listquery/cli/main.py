"""Main CLI entry point for listquery."""

import click

from listquery.cli.commands import config, shapes
from listquery.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="listquery")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """listquery - inspect query shapes and engine configuration.

    \b
    Command Groups:
      shapes     List and describe query shapes
      config     Show effective settings

    \b
    Quick Start:
      listquery shapes list myapp.api.shapes:registry
      listquery shapes describe myapp.api.shapes:registry items --format json
      listquery config show
    """
    ctx.ensure_object(dict)


cli.add_command(shapes.shapes)
cli.add_command(config.config)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
