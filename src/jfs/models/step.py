"""Pipeline step (filter) model."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from ..codec import DEFAULT_BODY, Transform, encode
from .source import new_id


class StepKind(str, Enum):
    """How a step applies its transform to the current data."""

    FILTER = "filter"
    MAP = "map"
    FLATMAP = "flatmap"
    SELECT = "select"

    def __str__(self) -> str:
        return self.value


def _default_transform() -> Transform:
    return Transform.lenient(DEFAULT_BODY)


class Filter(BaseModel):
    """One step of a filter group.

    ``transform`` is persisted as its body text under ``transformBody``.
    ``editor`` holds a transient editor handle and is never persisted.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
        validate_assignment=True,
    )

    id: str = Field(default_factory=new_id)
    kind: StepKind = StepKind.SELECT
    transform: Transform = Field(
        default_factory=_default_transform, alias="transformBody"
    )
    editor: Any = Field(default=None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def migrate_legacy_keys(cls, data: Any) -> Any:
        """Accept records written with the older ``type``/``func`` keys."""

        if isinstance(data, dict) and ("type" in data or "func" in data):
            data = dict(data)
            if "type" in data and "kind" not in data:
                data["kind"] = data.pop("type")
            if "func" in data and "transformBody" not in data and "transform" not in data:
                data["transformBody"] = data.pop("func")
        return data

    @field_validator("transform", mode="before")
    @classmethod
    def decode_transform(cls, value: Any) -> Any:
        """Turn stored body text (or a plain function) into a Transform."""

        if isinstance(value, Transform):
            return value
        if isinstance(value, str):
            return Transform.lenient(value)
        if callable(value):
            return Transform.lenient(encode(value))
        return value

    @field_serializer("transform")
    def encode_transform(self, value: Transform) -> str:
        return encode(value)

    @property
    def body(self) -> str:
        """The step's current body text."""

        return encode(self.transform)


__all__ = ["Filter", "StepKind"]
