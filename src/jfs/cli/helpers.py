"""CLI helper utilities shared across commands."""

import asyncio
import sys
from typing import Any, Callable, Optional, Tuple

import click

from ..errors import JfsError, UnknownSourceError, UnknownStepError
from ..session import Session
from ..storage import FileStorage
from ..store import PipelineStore
from ..viewer import JsonViewer


def echo_error(error: JfsError) -> None:
    """Print a reported error on stderr."""
    click.echo(f"Error: {error}", err=True)


def fail(message: str) -> None:
    """Print an error and exit with status 1.

    Raises:
        SystemExit: Always
    """
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def open_session(ctx) -> Session:
    """Build a session on the state file chosen by the global options."""
    store = PipelineStore(FileStorage(ctx.state_path))
    return Session(store, viewer=JsonViewer(live=False), on_error=echo_error)


def run_session(
    ctx,
    action: Optional[Callable[[Session], Any]] = None,
    show: bool = True,
) -> Tuple[Session, Any]:
    """Load the session, run ``action`` on it and print the final result.

    Sources are fetched (and the result printed) only when ``show`` is set
    and the global --quiet flag is not. Exits with status 1 if ``action``
    reported an error.

    Args:
        ctx: JFSContext
        action: Callable receiving the session; its return value is passed back
        show: Whether this command displays the pipeline result

    Returns:
        Tuple of (session, action result)
    """
    fetch = show and not ctx.quiet

    async def _run():
        session = open_session(ctx)
        if fetch:
            await session.start()
        else:
            for error in session.store.load():
                session.report(error)
        before = len(session.errors)
        result = None
        if action is not None:
            try:
                result = action(session)
            except JfsError as e:
                session.report(e)
        await session.wait()
        return session, result, len(session.errors) > before

    session, result, failed = asyncio.run(_run())
    if fetch:
        session.viewer.render()
    if failed:
        sys.exit(1)
    return session, result


def resolve_step_id(session: Session, prefix: str) -> str:
    """Resolve a (possibly abbreviated) step id in the active group.

    Raises:
        UnknownStepError: If no step id starts with ``prefix``
        JfsError: If more than one does
    """
    matches = [s.id for s in session.state.active_group or [] if s.id.startswith(prefix)]
    if not matches:
        raise UnknownStepError(prefix)
    if len(matches) > 1:
        raise JfsError(f"Step id '{prefix}' is ambiguous ({len(matches)} matches)")
    return matches[0]


def resolve_source_id(session: Session, prefix: str) -> str:
    """Resolve a (possibly abbreviated) source id.

    Raises:
        UnknownSourceError: If no source id starts with ``prefix``
        JfsError: If more than one does
    """
    matches = [s.id for s in session.state.sources if s.id.startswith(prefix)]
    if not matches:
        raise UnknownSourceError(prefix)
    if len(matches) > 1:
        raise JfsError(f"Source id '{prefix}' is ambiguous ({len(matches)} matches)")
    return matches[0]


def short_id(value: str) -> str:
    return value[:8]
