"""API route handlers organized by domain."""

from .folders import router as folders_router
from .health import router as health_router
from .notes import router as notes_router
from .share import router as share_router
from .sync import router as sync_router

__all__ = ["folders_router", "health_router", "notes_router", "share_router", "sync_router"]
