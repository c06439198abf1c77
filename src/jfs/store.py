"""Pipeline state store: mutations and load/save of ``PipelineState``.

The store only changes state. Recomputing the result and persisting after
each change is the session's job (see ``jfs.session``).
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from .codec import Transform, decode
from .errors import (
    GroupIndexError,
    InvalidStepError,
    InvalidStepKindError,
    JfsError,
    UnknownSourceError,
    UnknownStepError,
)
from .models import ContentItem, Filter, PipelineState, Source, StepKind
from .storage import Storage

logger = logging.getLogger(__name__)

STORAGE_KEY = "jfs"


def step_kind(kind: StepKind | str) -> StepKind:
    """Validate a step kind given as an enum member or its name."""
    try:
        return StepKind(kind)
    except ValueError:
        raise InvalidStepKindError(str(kind)) from None


class PipelineStore:
    """Owns one ``PipelineState`` and its persisted record."""

    def __init__(self, storage: Storage, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key
        self.state = PipelineState()

    # Sources -----------------------------------------------------------

    def add_source(self, url: str) -> Source:
        """Append a new source; its content arrives later via set_content()."""
        source = Source(url=url.strip())
        self.state.sources.append(source)
        return source

    def get_source(self, source_id: str) -> Source:
        source = self.state.get_source(source_id)
        if source is None:
            raise UnknownSourceError(source_id)
        return source

    def edit_source(self, source_id: str, url: str) -> Source:
        """Point an existing source at a new URL, dropping its stale content."""
        source = self.get_source(source_id)
        source.url = url.strip()
        self._drop_content(source_id)
        return source

    def remove_source(self, source_id: str) -> Source:
        """Remove a source and its content item.

        An in-flight fetch is not cancelled; its result is discarded by
        set_content() when it arrives.
        """
        source = self.get_source(source_id)
        self.state.sources = [s for s in self.state.sources if s.id != source_id]
        self._drop_content(source_id)
        return source

    def set_content(self, source_id: str, data: Any, url: Optional[str] = None) -> bool:
        """Upsert loaded content for a source.

        Args:
            source_id: Id of the source the data was fetched for
            data: Parsed JSON value
            url: URL that was fetched; if the source has since been pointed
                elsewhere the update is stale

        Returns:
            False (and no change) if the source is gone or the update is stale
        """
        source = self.state.get_source(source_id)
        if source is None:
            logger.debug("Discarding content for removed source %s", source_id)
            return False
        if url is not None and source.url != url:
            logger.debug("Discarding stale content for %s from %s", source_id, url)
            return False

        item = self.state.get_content(source_id)
        if item is None:
            self.state.content.append(ContentItem(id=source_id, data=data))
        else:
            item.data = data
        return True

    def _drop_content(self, source_id: str) -> None:
        self.state.content = [c for c in self.state.content if c.id != source_id]

    # Groups ------------------------------------------------------------

    def add_group(self) -> int:
        """Append an empty group and make it active. Returns its index."""
        self.state.groups.append([])
        self.state.active = len(self.state.groups) - 1
        return self.state.active

    def check_group(self, index: int) -> None:
        """Raise GroupIndexError unless ``index`` names an existing group."""
        if not 0 <= index < len(self.state.groups):
            raise GroupIndexError(index, len(self.state.groups))

    def set_active_group(self, index: int) -> None:
        """Switch the active group; group contents are untouched.

        Raises:
            GroupIndexError: If ``index`` is out of range (state unchanged)
        """
        self.check_group(index)
        self.state.active = index

    def remove_group(self, index: int) -> List[Filter]:
        """Delete a group, keeping ``active`` on the same group where possible."""
        self.check_group(index)
        removed = self.state.groups.pop(index)
        if index < self.state.active:
            self.state.active -= 1
        if self.state.active >= len(self.state.groups):
            self.state.active = max(len(self.state.groups) - 1, 0)
        return removed

    def clear_group(self) -> None:
        """Remove every step from the active group."""
        if self.state.active_group is not None:
            self.state.groups[self.state.active] = []

    # Steps (active group only) -----------------------------------------

    def _group(self) -> List[Filter]:
        group = self.state.active_group
        if group is None:
            raise UnknownStepError("<no active group>")
        return group

    def _index(self, filter_id: str) -> int:
        for index, step in enumerate(self.state.active_group or []):
            if step.id == filter_id:
                return index
        raise UnknownStepError(filter_id)

    def get_filter(self, filter_id: str) -> Filter:
        return self._group()[self._index(filter_id)]

    def add_filter(self, kind: StepKind | str = StepKind.SELECT, body: Optional[str] = None) -> Filter:
        """Append a step to the active group, creating a group if needed.

        Raises:
            CompileError: If ``body`` is given and does not compile
            InvalidStepKindError: If ``kind`` is not a step kind
        """
        step = Filter(kind=step_kind(kind))
        if body is not None:
            step.transform = decode(body)

        if self.state.active_group is None:
            self.state.groups.append([])
            self.state.active = len(self.state.groups) - 1
        self.state.groups[self.state.active].append(step)
        return step

    def remove_filter(self, filter_id: str) -> Filter:
        group = self._group()
        index = self._index(filter_id)
        return group.pop(index)

    def set_filter_kind(self, filter_id: str, kind: StepKind | str) -> Filter:
        step = self.get_filter(filter_id)
        step.kind = step_kind(kind)
        return step

    def set_filter_transform(self, filter_id: str, transform: Transform) -> Filter:
        step = self.get_filter(filter_id)
        step.transform = transform
        return step

    def move_filter(self, filter_id: str, offset: int) -> int:
        """Move a step by ``offset`` positions, clamped to the group bounds."""
        group = self._group()
        index = self._index(filter_id)
        target = min(max(index + offset, 0), len(group) - 1)
        group.insert(target, group.pop(index))
        return target

    # Persistence -------------------------------------------------------

    def save(self) -> None:
        """Write the persisted record (sources, groups, active index)."""
        self.storage.set(self.key, json.dumps(self.state.to_record()))

    def load(self) -> List[JfsError]:
        """Replace the state with the persisted record.

        Loading is best-effort: a missing or unreadable record yields empty
        defaults. Each stored step is read on its own, so one bad step does
        not cost the rest of the state. Steps whose body fails to compile are
        kept as broken steps; steps that cannot be read at all are dropped.

        Returns:
            One CompileError per broken step and one InvalidStepError per
            dropped step
        """
        raw = self.storage.get(self.key)
        if raw is None:
            self.state = PipelineState()
            return []

        try:
            record = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring corrupt stored state: %s", e)
            self.state = PipelineState()
            return []
        if not isinstance(record, dict):
            logger.warning("Ignoring stored state of type %s", type(record).__name__)
            self.state = PipelineState()
            return []

        errors: List[JfsError] = []
        record = dict(record)
        if "sources" in record:
            record["sources"] = _valid_sources(record["sources"])
        record["filters"] = _valid_groups(record.get("filters"), errors)
        active = record.get("active")
        if not isinstance(active, int) or isinstance(active, bool):
            record["active"] = 0

        try:
            self.state = PipelineState.model_validate(record)
        except ValidationError as e:
            logger.warning("Ignoring corrupt stored state: %s", e)
            self.state = PipelineState()
            return errors

        if self.state.groups and not 0 <= self.state.active < len(self.state.groups):
            self.state.active = 0

        for group in self.state.groups:
            for step in group:
                if step.transform.broken:
                    errors.append(step.transform.error.for_step(step.id))
        logger.info(
            "Loaded %d source(s), %d group(s), active group %d",
            len(self.state.sources),
            len(self.state.groups),
            self.state.active,
        )
        return errors


def _reason(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'step'}: {err['msg']}"
        for err in error.errors()
    )


def _valid_sources(raw: Any) -> List[Source]:
    """Validate stored sources one by one, dropping unreadable entries."""
    sources = []
    for item in raw if isinstance(raw, list) else []:
        try:
            sources.append(Source.model_validate(item))
        except ValidationError as e:
            logger.warning("Dropping unreadable stored source %r: %s", item, _reason(e))
    return sources


def _valid_groups(raw: Any, errors: List[JfsError]) -> List[List[Filter]]:
    """Validate stored steps one by one, recording an error per dropped step."""
    groups = []
    for index, group in enumerate(raw if isinstance(raw, list) else []):
        steps = []
        for item in group if isinstance(group, list) else []:
            try:
                steps.append(Filter.model_validate(item))
            except ValidationError as e:
                step_id = item.get("id") if isinstance(item, dict) else None
                error = InvalidStepError(step_id, index, _reason(e))
                logger.warning("%s", error)
                errors.append(error)
        groups.append(steps)
    return groups


__all__ = ["STORAGE_KEY", "PipelineStore", "step_kind"]
