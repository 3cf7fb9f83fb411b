"""Persisted record shapes: locators and notes.

Both models serialise to the camelCase JSON layout the store keeps on disk,
so records written by older clients keep loading unchanged.
"""

from __future__ import annotations

import time
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_record(self) -> dict[str, Any]:
        """Dump to the persisted camelCase shape, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Locator(_Record):
    """Durable description of an anchored text region.

    Attributes:
        global_start: Dense offset of the first anchored character at capture.
            Only a hint once the page changes.
        global_end: Dense offset one past the last anchored character.
        dense_text: Exact dense slice; the ground truth for relocation.
        prefix_context: Dense text immediately before the anchor, used only to
            pick between repeated occurrences.
        snippet: The selected text exactly as the user saw it.
    """

    global_start: int = Field(ge=0)
    global_end: int = Field(ge=0)
    dense_text: str = Field(min_length=1)
    prefix_context: str | None = None
    snippet: str = ""

    @model_validator(mode="after")
    def end_not_before_start(self) -> Locator:
        if self.global_end < self.global_start:
            msg = "globalEnd must not be smaller than globalStart"
            raise ValueError(msg)
        return self


class Note(_Record):
    """A user note attached to one page.

    ``locator`` is optional only so records saved before locators existed
    still load; such notes are relocated from their snippet.
    """

    id: str
    url: str
    normalized_url: str = ""
    content: str = ""
    snippet: str = ""
    locator: Locator | None = None
    created_at: int
    updated_at: int | None = None

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Note:
        return cls.model_validate(data)


def new_note_id() -> str:
    """Generate an opaque, unique note id."""
    return f"n_{uuid4().hex[:16]}"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)
