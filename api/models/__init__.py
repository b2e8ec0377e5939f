"""Pydantic models for API requests, responses and stored documents."""

from .common import CamelModel, now_utc
from .notes import (
    ALL_FOLDER_ID,
    FAVORITES_FOLDER_ID,
    RESERVED_FOLDER_IDS,
    Folder,
    FolderCreate,
    MoveRequest,
    Note,
    NoteCreate,
    NoteImportRequest,
    NoteImportResponse,
    NoteListResponse,
    NoteUpdate,
    TagRequest,
)
from .share import ShareCreate, SharedNoteView, ShareToken, TokenValidation
from .sync import (
    CreateDocumentRequest,
    DecodedPayload,
    MalformedPayloadError,
    PullResponse,
    PushResponse,
    SyncConfigRequest,
    SyncConfigResponse,
    SyncResult,
    decode_payload,
    encode_payload,
)

__all__ = [
    # Notes models
    "ALL_FOLDER_ID",
    "FAVORITES_FOLDER_ID",
    "RESERVED_FOLDER_IDS",
    "CamelModel",
    # Sync models
    "CreateDocumentRequest",
    "DecodedPayload",
    "Folder",
    "FolderCreate",
    "MalformedPayloadError",
    "MoveRequest",
    "Note",
    "NoteCreate",
    "NoteImportRequest",
    "NoteImportResponse",
    "NoteListResponse",
    "NoteUpdate",
    "PullResponse",
    "PushResponse",
    # Share models
    "ShareCreate",
    "ShareToken",
    "SharedNoteView",
    "SyncConfigRequest",
    "SyncConfigResponse",
    "SyncResult",
    "TagRequest",
    "TokenValidation",
    "decode_payload",
    "encode_payload",
    "now_utc",
]
