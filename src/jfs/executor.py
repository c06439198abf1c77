"""Pipeline execution: fold the active group's steps over the content.

Each step kind has a handler with its own precondition. ``filter``, ``map``
and ``flatmap`` need a list and are skipped when the data is not one.
``select`` needs a dict or list; anything else halts the whole run with
``PipelineHalted`` so the caller keeps showing the previous result.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .errors import StepRuntimeError
from .models import Filter, StepKind

logger = logging.getLogger(__name__)


class PipelineHalted(Exception):
    """A ``select`` step met data it cannot index; nothing is displayed."""

    def __init__(self, step: Filter, data: Any):
        self.step = step
        self.data = data
        super().__init__(
            f"select step {step.id} cannot index {type(data).__name__}"
        )


def _filter(step: Filter, data: Any) -> Any:
    if not isinstance(data, list):
        return data
    return [e for i, e in enumerate(data) if step.transform(e, i, data)]


def _map(step: Filter, data: Any) -> Any:
    if not isinstance(data, list):
        return data
    return [step.transform(e, i, data) for i, e in enumerate(data)]


def _flatmap(step: Filter, data: Any) -> Any:
    if not isinstance(data, list):
        return data
    out: List[Any] = []
    for i, e in enumerate(data):
        value = step.transform(e, i, data)
        if isinstance(value, list):
            out.extend(value)
        else:
            out.append(value)
    return out


def lookup(data: Any, key: Any) -> Any:
    """Index into a dict or list, yielding None for absent keys."""
    if isinstance(data, dict):
        if isinstance(key, int) and not isinstance(key, bool) and key not in data:
            # JSON object keys are strings
            key = str(key)
        try:
            return data.get(key)
        except TypeError:
            # unhashable key
            return None
    if isinstance(key, str) and key.isdigit():
        key = int(key)
    if isinstance(key, int) and not isinstance(key, bool) and 0 <= key < len(data):
        return data[key]
    return None


def _select(step: Filter, data: Any) -> Any:
    if not isinstance(data, (dict, list)):
        raise PipelineHalted(step, data)
    return lookup(data, step.transform())


HANDLERS: Dict[StepKind, Callable[[Filter, Any], Any]] = {
    StepKind.FILTER: _filter,
    StepKind.MAP: _map,
    StepKind.FLATMAP: _flatmap,
    StepKind.SELECT: _select,
}


def apply_step(step: Filter, data: Any) -> Any:
    """Apply one step to ``data``.

    Raises:
        PipelineHalted: If a select step cannot index ``data``
        StepRuntimeError: If the step's transform raises
    """
    if step.transform.broken:
        logger.debug("Skipping broken step %s", step.id)
        return data
    handler = HANDLERS[step.kind]
    try:
        return handler(step, data)
    except PipelineHalted:
        raise
    except Exception as e:
        raise StepRuntimeError(step.id, step.kind.value, e) from e


def seed(values: Iterable[Any]) -> List[Any]:
    """Build the initial pipeline data: one element per loaded source."""
    return list(values)


def run(content: Any, group: Optional[Sequence[Filter]]) -> Any:
    """Run ``group`` over ``content`` and return the final data.

    Args:
        content: Initial data (see ``seed``)
        group: Steps in execution order; None or empty returns ``content``

    Returns:
        The folded value

    Raises:
        PipelineHalted: If a select step met non-indexable data
        StepRuntimeError: If any transform raised
    """
    data = content
    for step in group or ():
        data = apply_step(step, data)
    return data


__all__ = ["HANDLERS", "PipelineHalted", "apply_step", "lookup", "run", "seed"]
