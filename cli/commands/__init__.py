"""CLI command handlers."""

from .notes import (
    create_folder,
    create_note,
    delete_note,
    edit_note,
    list_folders,
    list_notes,
    search_notes,
    toggle_favorite,
    view_note,
)
from .share import open_shared, share_note, unshare_note
from .sync import configure_sync, pull_notes, push_notes, show_sync

__all__ = [
    # Sync commands
    "configure_sync",
    # Notes commands
    "create_folder",
    "create_note",
    "delete_note",
    "edit_note",
    "list_folders",
    "list_notes",
    # Share commands
    "open_shared",
    "pull_notes",
    "push_notes",
    "search_notes",
    "share_note",
    "show_sync",
    "toggle_favorite",
    "unshare_note",
    "view_note",
]
