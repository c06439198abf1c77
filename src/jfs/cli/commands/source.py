"""Source commands - manage the JSON documents the pipeline reads."""

import click

from ...context import pass_context
from ..helpers import resolve_source_id, run_session, short_id


@click.group()
def source():
    """Manage sources (JSON documents fetched by URL or path)."""


@source.command("add")
@click.argument("url")
@pass_context
def add(ctx, url):
    """Add a source URL (http(s)://, file:// or a local path)."""
    _, added = run_session(ctx, lambda s: s.add_source(url))
    if added is not None:
        click.echo(f"Added source {short_id(added.id)}", err=True)


@source.command("edit")
@click.argument("source_id")
@click.argument("url")
@pass_context
def edit(ctx, source_id, url):
    """Point SOURCE_ID at a new URL."""
    run_session(ctx, lambda s: s.edit_source(resolve_source_id(s, source_id), url))


@source.command("rm")
@click.argument("source_id")
@pass_context
def rm(ctx, source_id):
    """Remove SOURCE_ID and its loaded content."""
    run_session(ctx, lambda s: s.remove_source(resolve_source_id(s, source_id)))


@source.command("ls")
@pass_context
def ls(ctx):
    """List sources."""
    session, _ = run_session(ctx, show=False)
    for item in session.state.sources:
        click.echo(f"{short_id(item.id)}  {item.url}")
