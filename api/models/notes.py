"""Notes and folder Pydantic models."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator

from .common import CamelModel, UtcDatetime, now_utc

ALL_FOLDER_ID = "all"
FAVORITES_FOLDER_ID = "favorites"
RESERVED_FOLDER_IDS = frozenset({ALL_FOLDER_ID, FAVORITES_FOLDER_ID})

FolderIcon = Literal["inbox", "star", "folder"]


def _unique_tags(tags: list[str]) -> list[str]:
    """Drop blank and duplicate tags, keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


class Folder(CamelModel):
    """A user folder or one of the reserved virtual folders."""

    id: str
    name: str
    icon: FolderIcon = "folder"


DEFAULT_FOLDERS = (
    Folder(id=ALL_FOLDER_ID, name="All Notes", icon="inbox"),
    Folder(id=FAVORITES_FOLDER_ID, name="Favorites", icon="star"),
)


class Note(CamelModel):
    """A single note record. ``content`` is rich-text markup."""

    id: str
    title: str = ""
    content: str = ""
    folder_id: str = ALL_FOLDER_ID
    tags: list[str] = Field(default_factory=list)
    is_favorite: bool = False
    created_at: UtcDatetime = Field(default_factory=now_utc)
    updated_at: UtcDatetime = Field(default_factory=now_utc)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, tags: list[str]) -> list[str]:
        return _unique_tags(tags)

    @field_validator("folder_id", mode="before")
    @classmethod
    def default_folder(cls, value: str | None) -> str:
        return value or ALL_FOLDER_ID


class NoteCreate(CamelModel):
    """Request model for creating a note."""

    folder_id: str | None = None
    title: str = Field(default="", max_length=500)
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    is_favorite: bool = False


class NoteUpdate(CamelModel):
    """Request model for partial note updates."""

    title: str | None = Field(default=None, max_length=500)
    content: str | None = None
    folder_id: str | None = None
    tags: list[str] | None = None
    is_favorite: bool | None = None


class NoteListResponse(CamelModel):
    """Response model for listing notes."""

    notes: list[Note]
    total: int


class TagRequest(CamelModel):
    tag: str = Field(..., min_length=1, max_length=100)


class MoveRequest(CamelModel):
    folder_id: str = Field(..., min_length=1)


class NoteImportRequest(CamelModel):
    """Notes pulled from elsewhere, merged or replacing the collection."""

    notes: list[dict]
    merge: bool = True


class NoteImportResponse(CamelModel):
    imported: int
    total: int


class FolderCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    icon: FolderIcon = "folder"
