"""Interactive session: user actions -> store mutation -> recompute -> save.

``Session`` is the one object that ties the store, the executor, the source
loader and the result viewer together. Create one per process and pass it
to whatever front end drives it; it is never torn down before exit.

Every mutating method changes the store exactly once, then recomputes the
active group and persists the state. Errors are never raised out of these
methods: they are recorded in ``Session.errors``, logged, and passed to the
``on_error`` callback, and the previous result stays on display.

Edits to a step's body text go through ``edit_step_source`` and are
debounced per step, so a burst of keystrokes compiles once.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable, List, Optional, Set

from .codec import decode
from .debounce import DEBOUNCE_SECONDS, Debouncer
from .errors import CompileError, FetchError, JfsError, StepRuntimeError
from .executor import PipelineHalted, run, seed
from .loader import HttpLoader, Loader
from .models import Filter, Source, StepKind
from .store import PipelineStore
from .viewer import JsonViewer, Viewer

logger = logging.getLogger(__name__)

_UNSET = object()


def reported(method: Callable[..., Any]) -> Callable[..., Any]:
    """Catch ``JfsError`` from a session action and report it instead."""

    @functools.wraps(method)
    def wrapper(self: "Session", *args: Any, **kwargs: Any) -> Any:
        try:
            return method(self, *args, **kwargs)
        except JfsError as e:
            self.report(e)
            return None

    return wrapper


class Session:
    """Drives one pipeline state for the lifetime of the process.

    Args:
        store: State store (already pointed at its storage)
        loader: Source loader; defaults to ``HttpLoader``
        viewer: Result viewer; defaults to a live ``JsonViewer``
        on_error: Called with each reported error
        debounce: Quiet period for step body edits, in seconds
    """

    def __init__(
        self,
        store: PipelineStore,
        loader: Optional[Loader] = None,
        viewer: Optional[Viewer] = None,
        on_error: Optional[Callable[[JfsError], None]] = None,
        debounce: float = DEBOUNCE_SECONDS,
    ):
        self.store = store
        self.loader = loader or HttpLoader()
        self.viewer = viewer or JsonViewer()
        self.on_error = on_error
        self.debouncer = Debouncer(debounce)
        self.errors: List[JfsError] = []
        self.result: Any = _UNSET
        self._tasks: Set[asyncio.Task] = set()

    @property
    def state(self):
        return self.store.state

    @property
    def has_result(self) -> bool:
        return self.result is not _UNSET

    # Error reporting ---------------------------------------------------

    def report(self, error: JfsError) -> None:
        """Record and surface a non-fatal error."""
        self.errors.append(error)
        logger.info("%s: %s", type(error).__name__, error)
        if self.on_error is not None:
            self.on_error(error)

    # Recompute and persist ---------------------------------------------

    def recompute(self) -> bool:
        """Run the active group over all loaded content and display it.

        Returns:
            True if a new result was displayed
        """
        data = seed(self.state.content_values())
        try:
            value = run(data, self.state.active_group)
        except PipelineHalted as e:
            logger.debug("Pipeline halted: %s", e)
            return False
        except StepRuntimeError as e:
            self.report(e)
            return False

        self.result = value
        self.viewer.set(value)
        return True

    def commit(self) -> None:
        """Recompute, then persist."""
        self.recompute()
        self.store.save()

    # Lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        """Load persisted state, then fetch every source concurrently."""
        for error in self.store.load():
            self.report(error)
        if self.state.sources:
            await self.fetch_all()
        else:
            self.recompute()

    async def fetch_all(self) -> None:
        """Fetch all sources at once; each arrival recomputes on its own."""
        await asyncio.gather(*(self._fetch(s.id, s.url) for s in self.state.sources))

    async def _fetch(self, source_id: str, url: str) -> None:
        try:
            data = await self.loader.fetch(url)
        except FetchError as e:
            self.report(e)
            return
        if self.store.set_content(source_id, data, url=url):
            logger.info("Loaded %s", url)
            self.commit()

    def _spawn(self, source: Source) -> None:
        task = asyncio.get_running_loop().create_task(self._fetch(source.id, source.url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait(self) -> None:
        """Wait for in-flight fetches and apply pending body edits."""
        while self._tasks:
            pending = list(self._tasks)
            await asyncio.gather(*pending)
            self._tasks.difference_update(pending)
        self.debouncer.flush()

    # Sources -----------------------------------------------------------

    @reported
    def add_source(self, url: str) -> Source:
        """Add a source and start fetching it; returns without waiting."""
        source = self.store.add_source(url)
        self.commit()
        self._spawn(source)
        return source

    @reported
    def edit_source(self, source_id: str, url: str) -> Source:
        source = self.store.edit_source(source_id, url)
        self.commit()
        self._spawn(source)
        return source

    @reported
    def remove_source(self, source_id: str) -> Source:
        source = self.store.remove_source(source_id)
        self.commit()
        return source

    # Groups ------------------------------------------------------------

    @reported
    def add_group(self) -> int:
        self.debouncer.flush()
        index = self.store.add_group()
        self.commit()
        return index

    @reported
    def set_active_group(self, index: int) -> int:
        self.store.check_group(index)
        self.debouncer.flush()
        self.store.set_active_group(index)
        self.commit()
        return index

    @reported
    def remove_group(self, index: int) -> List[Filter]:
        self.store.check_group(index)
        self.debouncer.flush()
        removed = self.store.remove_group(index)
        self.commit()
        return removed

    @reported
    def clear_group(self) -> None:
        for step in self.state.active_group or []:
            self.debouncer.cancel(step.id)
        self.store.clear_group()
        self.commit()

    # Steps -------------------------------------------------------------

    @reported
    def add_filter(
        self, kind: StepKind | str = StepKind.SELECT, body: Optional[str] = None
    ) -> Filter:
        step = self.store.add_filter(kind, body)
        self.commit()
        return step

    @reported
    def remove_filter(self, filter_id: str) -> Filter:
        step = self.store.remove_filter(filter_id)
        self.debouncer.cancel(filter_id)
        self.commit()
        return step

    @reported
    def set_filter_kind(self, filter_id: str, kind: StepKind | str) -> Filter:
        step = self.store.set_filter_kind(filter_id, kind)
        self.commit()
        return step

    @reported
    def move_filter(self, filter_id: str, offset: int) -> int:
        index = self.store.move_filter(filter_id, offset)
        self.commit()
        return index

    @reported
    def attach_editor(self, filter_id: str, editor: Any) -> Filter:
        """Remember an editor handle on a step (transient; not saved)."""
        step = self.store.get_filter(filter_id)
        step.editor = editor
        return step

    def edit_step_source(self, filter_id: str, text: str) -> None:
        """Schedule a recompile of a step's body after the quiet period."""
        self.debouncer.call(filter_id, self.recompile, filter_id, text)

    @reported
    def recompile(self, filter_id: str, text: str) -> bool:
        """Compile ``text`` and install it on the step.

        On a CompileError the step keeps its last good transform.

        Returns:
            True if the new transform was installed
        """
        step = self.store.get_filter(filter_id)
        try:
            transform = decode(text)
        except CompileError as e:
            self.report(e.for_step(step.id))
            return False
        self.store.set_filter_transform(step.id, transform)
        self.commit()
        return True


__all__ = ["Session", "reported"]
