"""jfs CLI main entry point with global options."""

import logging

import click

from ..context import JFSContext, resolve_home
from ..logging_config import configure_logging


@click.group()
@click.option(
    "--home", type=click.Path(), help="jfs home directory (overrides $JFS_HOME)"
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Do not fetch sources or print the result after a change.",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging.")
@click.pass_context
def cli(ctx, home, quiet, verbose):
    """jfs - transform remote JSON with switchable groups of Python steps."""
    configure_logging(logging.DEBUG if verbose else logging.WARNING)
    ctx.ensure_object(JFSContext)

    paths = resolve_home(home)
    ctx.obj.home = paths.home_dir
    ctx.obj.state_path = paths.state_path
    ctx.obj.quiet = quiet


# Register commands at module level so tests can import cli with commands attached
from .commands.group import group
from .commands.show import show
from .commands.source import source
from .commands.step import step

cli.add_command(show)
cli.add_command(source)
cli.add_command(group)
cli.add_command(step)


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
