"""jfs (JSON Filter Studio): remote JSON -> switchable groups of Python steps."""

from .codec import Transform, decode, encode
from .errors import (
    CompileError,
    FetchError,
    GroupIndexError,
    JfsError,
    StepRuntimeError,
)
from .executor import run
from .session import Session
from .store import PipelineStore

__all__ = [
    "CompileError",
    "FetchError",
    "GroupIndexError",
    "JfsError",
    "PipelineStore",
    "Session",
    "StepRuntimeError",
    "Transform",
    "__version__",
    "decode",
    "encode",
    "run",
]

__version__ = "0.1.0"
