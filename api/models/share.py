"""Share token Pydantic models."""

from __future__ import annotations

from pydantic import Field

from ..errors import TokenInvalidReason
from .common import CamelModel, UtcDatetime, now_utc

DEFAULT_NOTE_TITLE = "Untitled Note"


class ShareToken(CamelModel):
    """A read-only share grant for one note.

    ``expires_at`` of ``None`` means the token never expires. Revoked records
    are kept, never deleted.
    """

    token: str
    note_id: str
    note_title: str = DEFAULT_NOTE_TITLE
    created_at: UtcDatetime = Field(default_factory=now_utc)
    expires_at: UtcDatetime | None = None
    revoked: bool = False
    view_count: int = Field(default=0, ge=0)


class ShareCreate(CamelModel):
    """Request body for ``POST /share``."""

    note_id: str | None = None
    note_title: str | None = None
    expires_in: int | None = Field(default=None, ge=1, le=60 * 60 * 24 * 365)


class TokenValidation(CamelModel):
    """Tagged validation result. Never raised, always returned."""

    valid: bool
    note_id: str | None = None
    note_title: str | None = None
    created_at: UtcDatetime | None = None
    reason: TokenInvalidReason | None = None


class SharedNoteView(CamelModel):
    """Public read-only rendering of a shared note.

    ``placeholder`` is set when the note content could not be resolved and the
    body is an explanatory message built from the token's denormalized title.
    """

    note_id: str
    title: str
    content: str
    updated_at: UtcDatetime | None = None
    placeholder: bool = False
