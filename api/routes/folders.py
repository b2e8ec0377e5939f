"""Folder endpoints."""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_note_store
from ..models import RESERVED_FOLDER_IDS, Folder, FolderCreate
from ..services.note_store import NoteStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/folders", tags=["folders"])


@router.get("", response_model=list[Folder])
async def list_folders(store: NoteStore = Depends(get_note_store)):
    """All folders, reserved ones first."""
    return store.folders()


@router.post("", response_model=Folder, status_code=201)
async def create_folder(body: FolderCreate, store: NoteStore = Depends(get_note_store)):
    return store.add_folder(body.name, body.icon)


@router.delete("/{folder_id}", status_code=204)
async def delete_folder(folder_id: str, store: NoteStore = Depends(get_note_store)):
    """Delete a folder. Its notes move to All Notes."""
    if folder_id in RESERVED_FOLDER_IDS:
        logger.warning("delete_folder_reserved", folder_id=folder_id)
        raise HTTPException(status_code=400, detail="Built-in folders cannot be deleted")
    if not store.delete_folder(folder_id):
        logger.warning("delete_folder_not_found", folder_id=folder_id)
        raise HTTPException(status_code=404, detail="Folder not found")
