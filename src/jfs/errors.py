"""Exception taxonomy shared by the codec, store, executor and session."""

from typing import Optional


class JfsError(Exception):
    """Base class for all reportable jfs errors."""

    pass


class FetchError(JfsError):
    """A source could not be fetched or its body was not JSON."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to load {url}: {reason}")


class CompileError(JfsError):
    """A step body is not valid Python function body text."""

    def __init__(
        self, message: str, lineno: Optional[int] = None, step_id: Optional[str] = None
    ):
        self.message = message
        self.lineno = lineno
        self.step_id = step_id
        super().__init__(self._format())

    def _format(self) -> str:
        where = f" (line {self.lineno})" if self.lineno else ""
        who = f"step {self.step_id}: " if self.step_id else ""
        return f"{who}{self.message}{where}"

    def for_step(self, step_id: str) -> "CompileError":
        """Return a copy of this error attributed to ``step_id``."""
        return CompileError(self.message, lineno=self.lineno, step_id=step_id)


class StepRuntimeError(JfsError):
    """A compiled transform raised while the pipeline was running."""

    def __init__(self, step_id: str, kind: str, cause: BaseException):
        self.step_id = step_id
        self.kind = kind
        self.cause = cause
        super().__init__(
            f"{kind} step {step_id} raised {type(cause).__name__}: {cause}"
        )


class GroupIndexError(JfsError, IndexError):
    """A filter group index is out of range."""

    def __init__(self, index: int, count: int):
        self.index = index
        self.count = count
        super().__init__(f"Group {index} does not exist ({count} groups)")


class UnknownStepError(JfsError, KeyError):
    """No step in the active group has the given id."""

    def __str__(self) -> str:
        return f"No step with id {self.args[0]!r} in the active group"


class InvalidStepError(JfsError):
    """A stored step could not be read and was dropped on load."""

    def __init__(self, step_id: Optional[str], group: int, reason: str):
        self.step_id = step_id
        self.group = group
        self.reason = reason
        super().__init__(f"Dropped step {step_id or '?'} in group {group}: {reason}")


class InvalidStepKindError(JfsError, ValueError):
    """A step kind is not one of filter, map, flatmap, select."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(
            f"Unknown step kind {kind!r} (expected filter, map, flatmap or select)"
        )


class UnknownSourceError(JfsError, KeyError):
    """No source has the given id."""

    def __str__(self) -> str:
        return f"No source with id {self.args[0]!r}"


__all__ = [
    "CompileError",
    "FetchError",
    "GroupIndexError",
    "InvalidStepError",
    "InvalidStepKindError",
    "JfsError",
    "StepRuntimeError",
    "UnknownSourceError",
    "UnknownStepError",
]
