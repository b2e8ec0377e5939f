"""In-process note and folder store with write-through local persistence."""

from __future__ import annotations

import html
import re
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import structlog
from pydantic import ValidationError

from ..models import (
    ALL_FOLDER_ID,
    FAVORITES_FOLDER_ID,
    RESERVED_FOLDER_IDS,
    Folder,
    Note,
    now_utc,
)
from ..models.notes import DEFAULT_FOLDERS
from ..observability import get_app_metrics
from ..storage import LocalStorage

logger = structlog.get_logger(__name__)

STORAGE_KEY = "notes"
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})

_TAG_PATTERN = re.compile(r"<[^>]+>")

ChangeListener = Callable[[str | None], None]


def strip_markup(content: str) -> str:
    """Reduce rich-text markup to searchable plain text."""
    if not content:
        return ""
    return html.unescape(_TAG_PATTERN.sub(" ", content))


class NoteStore:
    """Authoritative holder of the note collection and folder list.

    Every mutation writes the whole collection through to local storage.
    Storage failures are logged and swallowed; the in-memory state remains the
    source of truth for the running process.
    """

    def __init__(self, storage: LocalStorage, clock: Callable[[], datetime] = now_utc):
        self._storage = storage
        self._clock = clock
        self._notes: list[Note] = []
        self._folders: list[Folder] = list(DEFAULT_FOLDERS)
        self._listeners: list[ChangeListener] = []
        self._metrics = get_app_metrics()
        self._load()

    # ------------------------------------------------------------------ setup

    def _load(self) -> None:
        saved = self._storage.get(STORAGE_KEY)
        if not isinstance(saved, dict):
            logger.info("note_store_initialized", notes=0, source="empty")
            return

        self._notes = self._parse_notes(saved.get("notes") or [])

        folders = []
        for raw in saved.get("folders") or []:
            try:
                folders.append(Folder.model_validate(raw))
            except ValidationError as e:
                logger.warning("note_store_folder_skipped", error=str(e))
        known = {folder.id for folder in folders}
        missing = [folder for folder in DEFAULT_FOLDERS if folder.id not in known]
        self._folders = missing + folders

        logger.info(
            "note_store_initialized",
            notes=len(self._notes),
            folders=len(self._folders),
            source="local",
        )

    @staticmethod
    def _parse_notes(raw_notes: list[Any]) -> list[Note]:
        notes = []
        for raw in raw_notes:
            try:
                notes.append(Note.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    "note_record_skipped",
                    note_id=raw.get("id") if isinstance(raw, dict) else None,
                    error=str(e),
                )
        return notes

    def subscribe(self, listener: ChangeListener) -> None:
        """Register a callback invoked with the changed note id after each mutation."""
        self._listeners.append(listener)

    # ------------------------------------------------------------ persistence

    def _persist(self, note_id: str | None, operation: str) -> None:
        self._metrics.note_mutations.add(1, {"operation": operation})
        try:
            self._storage.set(
                STORAGE_KEY, {"notes": self.snapshot(), "folders": self._folder_wire()}
            )
        except OSError as e:
            logger.error("note_store_persist_failed", operation=operation, error=str(e))

        for listener in self._listeners:
            try:
                listener(note_id)
            except Exception as e:
                logger.error("note_store_listener_failed", operation=operation, error=str(e))

    def _folder_wire(self) -> list[dict]:
        return [folder.to_wire() for folder in self._folders]

    def snapshot(self) -> list[dict]:
        """Wire-form copy of every note, in storage order."""
        return [note.to_wire() for note in self._notes]

    # ------------------------------------------------------------------ notes

    def _index(self, note_id: str) -> int:
        for i, note in enumerate(self._notes):
            if note.id == note_id:
                return i
        return -1

    def _bump(self, previous: datetime | None) -> datetime:
        now = self._clock()
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    def create(self, folder_id: str | None = None, **initial_fields: Any) -> str:
        """Create a note and return its id."""
        now = self._clock()
        fields = {
            key: value for key, value in initial_fields.items() if key not in IMMUTABLE_FIELDS
        }
        fields.pop("updated_at", None)
        note = Note.model_validate(
            {
                "title": "",
                "content": "",
                "tags": [],
                "is_favorite": False,
                **fields,
                "id": uuid.uuid4().hex,
                "folder_id": folder_id or ALL_FOLDER_ID,
                "created_at": now,
                "updated_at": now,
            }
        )
        self._notes.insert(0, note)

        logger.info("note_created", note_id=note.id, folder_id=note.folder_id)
        self._persist(note.id, "create")
        return note.id

    def get(self, note_id: str) -> Note | None:
        index = self._index(note_id)
        return self._notes[index] if index >= 0 else None

    def update(self, note_id: str, fields: dict[str, Any]) -> Note | None:
        """Merge ``fields`` into a note.

        Returns the updated note, or ``None`` when the id is unknown; in that
        case the collection is left untouched.
        """
        index = self._index(note_id)
        if index < 0:
            logger.warning("note_update_unknown_id", note_id=note_id)
            return None

        current = self._notes[index]
        changes = {
            key: value
            for key, value in fields.items()
            if key not in IMMUTABLE_FIELDS and key != "updated_at"
        }
        updated = Note.model_validate(
            {
                **current.model_dump(),
                **changes,
                "updated_at": self._bump(current.updated_at),
            }
        )
        self._notes[index] = updated

        logger.info("note_updated", note_id=note_id, fields=sorted(changes))
        self._persist(note_id, "update")
        return updated

    def delete(self, note_id: str) -> bool:
        """Remove a note. Clearing any UI selection is the caller's job."""
        index = self._index(note_id)
        if index < 0:
            logger.warning("note_delete_unknown_id", note_id=note_id)
            return False

        del self._notes[index]
        logger.info("note_deleted", note_id=note_id)
        self._persist(note_id, "delete")
        return True

    def list_notes(self, folder_id: str = ALL_FOLDER_ID) -> list[Note]:
        """Notes visible in a folder, in storage order."""
        if folder_id == ALL_FOLDER_ID:
            return list(self._notes)
        if folder_id == FAVORITES_FOLDER_ID:
            return [note for note in self._notes if note.is_favorite]
        return [note for note in self._notes if note.folder_id == folder_id]

    def search(self, query: str, folder_id: str = ALL_FOLDER_ID) -> list[Note]:
        """Case-insensitive substring match on title or plain-text content."""
        needle = query.strip().lower()
        if not needle:
            return self.list_notes(folder_id)
        return [
            note
            for note in self.list_notes(folder_id)
            if needle in note.title.lower() or needle in strip_markup(note.content).lower()
        ]

    def toggle_favorite(self, note_id: str) -> Note | None:
        note = self.get(note_id)
        if note is None:
            return None
        return self.update(note_id, {"is_favorite": not note.is_favorite})

    def add_tag(self, note_id: str, tag: str) -> Note | None:
        note = self.get(note_id)
        if note is None:
            return None
        return self.update(note_id, {"tags": [*note.tags, tag]})

    def remove_tag(self, note_id: str, tag: str) -> Note | None:
        note = self.get(note_id)
        if note is None:
            return None
        return self.update(note_id, {"tags": [t for t in note.tags if t != tag]})

    def move_to_folder(self, note_id: str, folder_id: str) -> Note | None:
        return self.update(note_id, {"folder_id": folder_id})

    def import_notes(self, raw_notes: list[dict], merge: bool = True) -> int:
        """Bring in notes from another source.

        With ``merge`` only notes whose ids are not already present are added,
        ahead of the existing ones. Without it the collection is replaced.
        Returns the number of notes added.
        """
        incoming = self._parse_notes(raw_notes)

        if merge:
            existing_ids = {note.id for note in self._notes}
            added: list[Note] = []
            for note in incoming:
                if note.id not in existing_ids:
                    existing_ids.add(note.id)
                    added.append(note)
            self._notes = added + self._notes
            count = len(added)
        else:
            deduped: dict[str, Note] = {}
            for note in incoming:
                deduped.setdefault(note.id, note)
            self._notes = list(deduped.values())
            count = len(self._notes)

        logger.info("notes_imported", merge=merge, imported=count, total=len(self._notes))
        self._persist(None, "import")
        return count

    # ---------------------------------------------------------------- folders

    def folders(self) -> list[Folder]:
        return list(self._folders)

    def add_folder(self, name: str, icon: str = "folder") -> Folder:
        folder = Folder(id=uuid.uuid4().hex, name=name, icon=icon)
        self._folders.append(folder)

        logger.info("folder_created", folder_id=folder.id, name=name)
        self._persist(None, "add_folder")
        return folder

    def delete_folder(self, folder_id: str) -> bool:
        """Delete a user folder, reassigning its notes to the ``all`` folder."""
        if folder_id in RESERVED_FOLDER_IDS:
            logger.warning("folder_delete_reserved", folder_id=folder_id)
            return False
        if not any(folder.id == folder_id for folder in self._folders):
            logger.warning("folder_delete_unknown_id", folder_id=folder_id)
            return False

        self._folders = [folder for folder in self._folders if folder.id != folder_id]
        moved = 0
        for i, note in enumerate(self._notes):
            if note.folder_id == folder_id:
                self._notes[i] = note.model_copy(
                    update={"folder_id": ALL_FOLDER_ID, "updated_at": self._bump(note.updated_at)}
                )
                moved += 1

        logger.info("folder_deleted", folder_id=folder_id, notes_reassigned=moved)
        self._persist(None, "delete_folder")
        return True
