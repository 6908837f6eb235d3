"""Pydantic schemas for notes.

Learn: Separate "Create" schemas (input) from "Read" schemas (output).
NoteUpdate is a partial update — every field optional, but at least one
must be present.
"""

import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import Field, StringConstraints, model_validator

from notekeeper.schemas.common import CamelModel

HEX_COLOR = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"

Tag = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=30)]


class NoteCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=10000)
    tags: list[Tag] = Field(default_factory=list)
    background_color: str = Field(default="#ffffff", pattern=HEX_COLOR)


# Columns that may be omitted from an update but never set to null.
NOT_NULLABLE = ("title", "content", "background_color", "is_pinned")


class NoteUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1, max_length=10000)
    tags: Optional[list[Tag]] = None
    background_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    is_pinned: Optional[bool] = None

    @model_validator(mode="after")
    def require_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        for name in NOT_NULLABLE:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class NoteRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    content: str
    tags: list[str]
    is_pinned: bool
    background_color: str
    created_at: datetime
    updated_at: datetime


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class NoteList(CamelModel):
    notes: list[NoteRead]
    pagination: Pagination


class NoteEnvelope(CamelModel):
    message: Optional[str] = None
    note: NoteRead


class TagCount(CamelModel):
    tag: str
    count: int


class NoteStats(CamelModel):
    total_notes: int
    pinned_notes: int
    top_tags: list[TagCount]
