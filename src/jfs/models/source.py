"""Source and loaded content models."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, Field


def new_id() -> str:
    """Return a fresh opaque identifier."""

    return uuid.uuid4().hex


class Source(BaseModel):
    """A remote JSON document to fetch."""

    id: str = Field(default_factory=new_id)
    url: str


class ContentItem(BaseModel):
    """The loaded JSON value of one source (never persisted)."""

    id: str
    data: Any = None


__all__ = ["ContentItem", "Source", "new_id"]
