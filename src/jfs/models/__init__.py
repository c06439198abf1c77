"""Pydantic models for the pipeline state."""

from .source import ContentItem, Source, new_id
from .state import PipelineState
from .step import Filter, StepKind

__all__ = [
    "ContentItem",
    "Filter",
    "PipelineState",
    "Source",
    "StepKind",
    "new_id",
]
