"""Root pipeline state model."""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .source import ContentItem, Source, new_id
from .step import Filter


class PipelineState(BaseModel):
    """Sources, loaded content, filter groups and the active group index.

    Only ``sources``, ``filters`` (the groups) and ``active`` are persisted;
    ``content`` is rebuilt by fetching the sources.
    """

    model_config = ConfigDict(populate_by_name=True)

    sources: List[Source] = Field(default_factory=list)
    content: List[ContentItem] = Field(default_factory=list, exclude=True)
    groups: List[List[Filter]] = Field(default_factory=list, alias="filters")
    active: int = 0

    @model_validator(mode="before")
    @classmethod
    def migrate_single_source(cls, data: Any) -> Any:
        """Convert a legacy ``{"source": url}`` record into ``sources``."""

        if isinstance(data, dict) and "source" in data:
            data = dict(data)
            url = data.pop("source")
            if url and not data.get("sources"):
                data["sources"] = [{"id": new_id(), "url": url}]
        if isinstance(data, dict) and data.get("filters") is None and "groups" not in data:
            data = dict(data)
            data["filters"] = []
        return data

    @property
    def active_group(self) -> List[Filter] | None:
        """The active group, or None if the index points past the groups."""

        if 0 <= self.active < len(self.groups):
            return self.groups[self.active]
        return None

    def get_source(self, source_id: str) -> Source | None:
        """Get source by id, or None if not found."""

        return next((s for s in self.sources if s.id == source_id), None)

    def has_source(self, source_id: str) -> bool:
        """Check if source exists."""

        return any(s.id == source_id for s in self.sources)

    def get_content(self, source_id: str) -> ContentItem | None:
        """Get the loaded content for a source, or None if not loaded."""

        return next((c for c in self.content if c.id == source_id), None)

    def content_values(self) -> List[Any]:
        """Loaded values in source order, skipping sources not yet loaded."""

        loaded = {c.id: c.data for c in self.content}
        return [loaded[s.id] for s in self.sources if s.id in loaded]

    def to_record(self) -> dict:
        """Serialize to the persisted record shape."""

        return self.model_dump(mode="json", by_alias=True)


__all__ = ["PipelineState"]
