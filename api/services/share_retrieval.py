"""Public read path for shared notes.

Composes the token manager and the notes adapter without owning any state.
The token only names a note; the document it lives in is whichever notes
document this process is configured for, so a token can validate while its
note has since been deleted or the document reconfigured. Those cases render
a placeholder instead of failing.
"""

from __future__ import annotations

import html

import structlog
from pydantic import ValidationError

from ..models import Note, SharedNoteView, TokenValidation
from ..models.share import DEFAULT_NOTE_TITLE
from ..observability import get_tracer
from .background_tasks import BackgroundTaskQueue
from .share_tokens import ShareTokenManager
from .sync_adapter import RemoteSyncAdapter

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)

NOT_CONFIGURED_MESSAGE = "Note content is not available."
NOTE_MISSING_MESSAGE = "This note may have been deleted from the original source."
FETCH_FAILED_MESSAGE = "Unable to load note content. Please try again later."


def _placeholder(validation: TokenValidation, message: str) -> SharedNoteView:
    return SharedNoteView(
        note_id=validation.note_id or "",
        title=validation.note_title or DEFAULT_NOTE_TITLE,
        content=f"<p><em>{html.escape(message)}</em></p>",
        placeholder=True,
    )


class ShareRetrievalService:
    def __init__(
        self,
        tokens: ShareTokenManager,
        notes_adapter: RemoteSyncAdapter,
        task_queue: BackgroundTaskQueue,
    ):
        self._tokens = tokens
        self._notes_adapter = notes_adapter
        self._task_queue = task_queue

    async def resolve(self, token: str) -> tuple[TokenValidation, SharedNoteView | None]:
        """Validate ``token`` and load the note it grants access to.

        Returns the validation and, when it is valid, the note view (real or
        placeholder). The view counter is bumped in the background.
        """
        with tracer.start_as_current_span("share.resolve") as span:
            validation = self._tokens.validate_token(token)
            span.set_attribute("share.valid", validation.valid)
            if not validation.valid:
                return validation, None

            self._task_queue.enqueue(self._tokens.increment_view, token)

            if not self._notes_adapter.is_configured:
                logger.info(
                    "shared_note_unavailable", note_id=validation.note_id, cause="not_configured"
                )
                return validation, _placeholder(validation, NOT_CONFIGURED_MESSAGE)

            result = await self._notes_adapter.fetch()
            if not result.ok:
                logger.warning(
                    "shared_note_unavailable",
                    note_id=validation.note_id,
                    cause="fetch_failed",
                    reason=result.reason,
                )
                return validation, _placeholder(validation, FETCH_FAILED_MESSAGE)

            for item in result.items:
                if item.get("id") == validation.note_id:
                    try:
                        # Nulls in older records mean "unset"
                        note = Note.model_validate(
                            {key: value for key, value in item.items() if value is not None}
                        )
                    except ValidationError as e:
                        logger.warning(
                            "shared_note_unavailable",
                            note_id=validation.note_id,
                            cause="invalid_record",
                            error=str(e),
                        )
                        return validation, _placeholder(validation, FETCH_FAILED_MESSAGE)

                    view = SharedNoteView(
                        note_id=note.id,
                        title=note.title or validation.note_title or DEFAULT_NOTE_TITLE,
                        content=note.content,
                        updated_at=note.updated_at if item.get("updatedAt") is not None else None,
                    )
                    logger.info(
                        "shared_note_served", note_id=validation.note_id, fallback=result.fallback
                    )
                    return validation, view

            logger.info("shared_note_unavailable", note_id=validation.note_id, cause="note_missing")
            return validation, _placeholder(validation, NOTE_MISSING_MESSAGE)
