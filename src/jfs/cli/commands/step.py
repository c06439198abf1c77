"""Step commands - edit the steps of the active group."""

import click

from ...codec import DEFAULT_BODY
from ...context import pass_context
from ...models import StepKind
from ..helpers import fail, resolve_step_id, run_session, short_id

KINDS = [k.value for k in StepKind]


@click.group()
def step():
    """Manage the steps of the active group.

    A step body is the body of a Python function of (element, index, list);
    ``e`` and ``idx`` are short names for the first two. Examples:

    \b
        jfs step add --kind filter --body 'return e["price"] > 10'
        jfs step add --kind map --body 'return e["name"]'
        jfs step add --kind select --body 'return "items"'
    """


@step.command("add")
@click.option(
    "-k", "--kind", type=click.Choice(KINDS), default="select", show_default=True
)
@click.option("-b", "--body", default=None, help=f"Step body (default: {DEFAULT_BODY!r})")
@pass_context
def add(ctx, kind, body):
    """Append a step to the active group."""
    _, added = run_session(ctx, lambda s: s.add_filter(kind, body))
    if added is not None:
        click.echo(f"Added {kind} step {short_id(added.id)}", err=True)


@step.command("rm")
@click.argument("step_id")
@pass_context
def rm(ctx, step_id):
    """Remove STEP_ID from the active group."""
    run_session(ctx, lambda s: s.remove_filter(resolve_step_id(s, step_id)))


@step.command("kind")
@click.argument("step_id")
@click.argument("kind", type=click.Choice(KINDS))
@pass_context
def kind(ctx, step_id, kind):
    """Change how STEP_ID applies its body."""
    run_session(ctx, lambda s: s.set_filter_kind(resolve_step_id(s, step_id), kind))


@step.command("set")
@click.argument("step_id")
@click.argument("body")
@pass_context
def set_(ctx, step_id, body):
    """Replace the body of STEP_ID."""
    run_session(ctx, lambda s: s.edit_step_source(resolve_step_id(s, step_id), body))


@step.command("edit")
@click.argument("step_id")
@pass_context
def edit(ctx, step_id):
    """Edit the body of STEP_ID in $EDITOR."""

    def _edit(session):
        resolved = resolve_step_id(session, step_id)
        current = session.store.get_filter(resolved)
        text = click.edit(current.body + "\n", extension=".py")
        if text is None:
            click.echo("No changes.", err=True)
            return
        session.edit_step_source(resolved, text)

    run_session(ctx, _edit)


@step.command("move")
@click.argument("step_id")
@click.argument("direction", type=click.Choice(["up", "down"]))
@pass_context
def move(ctx, step_id, direction):
    """Move STEP_ID one place up or down."""
    offset = -1 if direction == "up" else 1
    run_session(ctx, lambda s: s.move_filter(resolve_step_id(s, step_id), offset))


@step.command("ls")
@pass_context
def ls(ctx):
    """List the steps of the active group in execution order."""
    session, _ = run_session(ctx, show=False)
    steps = session.state.active_group
    if steps is None:
        fail("No groups yet; add one with 'jfs group add' or 'jfs step add'")
    for item in steps:
        status = "  (broken)" if item.transform.broken else ""
        first, *rest = item.body.splitlines() or [""]
        more = " ..." if rest else ""
        click.echo(f"{short_id(item.id)}  {item.kind.value:<7}  {first}{more}{status}")
