"""Group commands - add, switch, remove and reset filter groups."""

import click

from ...context import pass_context
from ..helpers import run_session


@click.group()
def group():
    """Manage filter groups (one group is active at a time)."""


@group.command("add")
@pass_context
def add(ctx):
    """Add an empty group and make it active."""
    _, index = run_session(ctx, lambda s: s.add_group())
    click.echo(f"Active group: {index}", err=True)


@group.command("use")
@click.argument("index", type=int)
@pass_context
def use(ctx, index):
    """Make group INDEX (0-based) the active group."""
    run_session(ctx, lambda s: s.set_active_group(index))


@group.command("rm")
@click.argument("index", type=int)
@pass_context
def rm(ctx, index):
    """Delete group INDEX and its steps."""
    run_session(ctx, lambda s: s.remove_group(index))


@group.command("reset")
@pass_context
def reset(ctx):
    """Remove every step from the active group."""
    run_session(ctx, lambda s: s.clear_group())


@group.command("ls")
@pass_context
def ls(ctx):
    """List groups; the active one is marked with '*'."""
    session, _ = run_session(ctx, show=False)
    state = session.state
    for index, steps in enumerate(state.groups):
        marker = "*" if index == state.active else " "
        plural = "" if len(steps) == 1 else "s"
        click.echo(f"{marker} {index}  {len(steps)} step{plural}")
