"""Notes endpoints."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_note_store
from ..models import (
    ALL_FOLDER_ID,
    FAVORITES_FOLDER_ID,
    MoveRequest,
    Note,
    NoteCreate,
    NoteImportRequest,
    NoteImportResponse,
    NoteListResponse,
    NoteUpdate,
    TagRequest,
)
from ..observability import get_tracer
from ..services.note_store import NoteStore

# Initialize logger
logger = structlog.get_logger(__name__)

# Get tracer
tracer = get_tracer(__name__)

router = APIRouter(prefix="/notes", tags=["notes"])


def _found(note: Note | None, note_id: str, event: str) -> Note:
    if note is None:
        logger.warning(event, note_id=note_id)
        raise HTTPException(status_code=404, detail="Note not found")
    return note


@router.post("", response_model=Note, status_code=201)
async def create_note(body: NoteCreate, store: NoteStore = Depends(get_note_store)):
    """Create a note, optionally inside a folder, and return it."""
    with tracer.start_as_current_span("create_note") as span:
        fields = body.model_dump(exclude={"folder_id"})
        note_id = store.create(folder_id=body.folder_id, **fields)

        span.set_attribute("note.id", note_id)
        span.set_attribute("note.tags_count", len(body.tags))
        return store.get(note_id)


@router.get("", response_model=NoteListResponse)
async def list_notes(
    folder: str = Query(default=ALL_FOLDER_ID, description="Folder id, 'all' or 'favorites'"),
    q: str | None = Query(default=None, description="Search title and content"),
    store: NoteStore = Depends(get_note_store),
):
    """
    List notes in a folder, newest first.

    With ``q`` only notes whose title or plain-text content contains the
    query (case-insensitive) are returned.
    """
    with tracer.start_as_current_span("list_notes") as span:
        span.set_attribute("query.folder", folder)
        span.set_attribute("query.search", bool(q))

        notes = store.search(q, folder) if q else store.list_notes(folder)
        notes.sort(key=lambda note: note.updated_at, reverse=True)

        span.set_attribute("notes.count", len(notes))
        logger.info("notes_listed", folder=folder, count=len(notes), searched=bool(q))
        return NoteListResponse(notes=notes, total=len(notes))


@router.post("/import", response_model=NoteImportResponse)
async def import_notes(body: NoteImportRequest, store: NoteStore = Depends(get_note_store)):
    """Import notes, merging by id or replacing the collection."""
    with tracer.start_as_current_span("import_notes") as span:
        imported = store.import_notes(body.notes, merge=body.merge)
        total = len(store.list_notes())

        span.set_attribute("notes.imported", imported)
        return NoteImportResponse(imported=imported, total=total)


@router.get("/{note_id}", response_model=Note)
async def get_note(note_id: str, store: NoteStore = Depends(get_note_store)):
    with tracer.start_as_current_span("get_note") as span:
        span.set_attribute("note.id", note_id)
        return _found(store.get(note_id), note_id, "get_note_not_found")


@router.patch("/{note_id}", response_model=Note)
async def update_note(
    note_id: str, body: NoteUpdate, store: NoteStore = Depends(get_note_store)
):
    """Update only the fields present in the request body."""
    with tracer.start_as_current_span("update_note") as span:
        span.set_attribute("note.id", note_id)

        changes = body.model_dump(exclude_unset=True)
        # Explicit nulls mean "leave unchanged"
        changes = {key: value for key, value in changes.items() if value is not None}
        for key in changes:
            span.set_attribute(f"note.{key}_updated", True)

        if not changes:
            logger.info("update_note_no_changes", note_id=note_id)
            return _found(store.get(note_id), note_id, "update_note_not_found")

        return _found(store.update(note_id, changes), note_id, "update_note_not_found")


@router.delete("/{note_id}", status_code=204)
async def delete_note(note_id: str, store: NoteStore = Depends(get_note_store)):
    with tracer.start_as_current_span("delete_note") as span:
        span.set_attribute("note.id", note_id)
        if not store.delete(note_id):
            raise HTTPException(status_code=404, detail="Note not found")


@router.post("/{note_id}/favorite", response_model=Note)
async def toggle_favorite(note_id: str, store: NoteStore = Depends(get_note_store)):
    return _found(store.toggle_favorite(note_id), note_id, "favorite_note_not_found")


@router.post("/{note_id}/tags", response_model=Note)
async def add_tag(note_id: str, body: TagRequest, store: NoteStore = Depends(get_note_store)):
    return _found(store.add_tag(note_id, body.tag), note_id, "tag_note_not_found")


@router.delete("/{note_id}/tags/{tag}", response_model=Note)
async def remove_tag(note_id: str, tag: str, store: NoteStore = Depends(get_note_store)):
    return _found(store.remove_tag(note_id, tag), note_id, "untag_note_not_found")


@router.post("/{note_id}/move", response_model=Note)
async def move_note(note_id: str, body: MoveRequest, store: NoteStore = Depends(get_note_store)):
    """Move a note to another folder."""
    known = {folder.id for folder in store.folders()}
    if body.folder_id == FAVORITES_FOLDER_ID or body.folder_id not in known:
        raise HTTPException(status_code=400, detail="Unknown folder")
    return _found(store.move_to_folder(note_id, body.folder_id), note_id, "move_note_not_found")
