"""Show command - fetch sources and print the active group's result."""

import click

from ...context import pass_context
from ..helpers import run_session


@click.command()
@pass_context
def show(ctx):
    """Fetch every source and print the result of the active group.

    Examples:
        jfs source add https://api.example.com/items.json
        jfs step add --kind select --body 'return 0'
        jfs show
    """
    run_session(ctx)
