"""Configuration and storage utilities for CLI client."""

import os
from pathlib import Path

import httpx

# Configuration
API_URL = os.getenv("GISTNOTES_API_URL", "http://localhost:8000").rstrip("/")
CURRENT_NOTE_FILE = Path.home() / ".gistnotes" / "current_note"
REQUEST_TIMEOUT = 15.0


def save_current_note(note_id: str):
    """Remember the last viewed note."""
    CURRENT_NOTE_FILE.parent.mkdir(parents=True, exist_ok=True)
    CURRENT_NOTE_FILE.write_text(note_id)


def load_current_note() -> str | None:
    """Load the last viewed note id."""
    if CURRENT_NOTE_FILE.exists():
        return CURRENT_NOTE_FILE.read_text().strip() or None
    return None


def delete_current_note():
    """Forget the last viewed note."""
    if CURRENT_NOTE_FILE.exists():
        CURRENT_NOTE_FILE.unlink()


def resolve_note_id(args: str, usage: str) -> str | None:
    """Note id from the command arguments, falling back to the current note."""
    note_id = args.strip() or load_current_note()
    if not note_id:
        print(f"Error: Note ID is required. Usage: {usage}\n")
    return note_id


def report_http_error(error: httpx.HTTPError, action: str, not_found: str = "Not found."):
    """Print a friendly message for a failed API call."""
    if isinstance(error, httpx.ConnectError):
        print("Error: Could not connect to API server.")
        print("Please start the server with: python -m api.server\n")
    elif isinstance(error, httpx.HTTPStatusError):
        if error.response.status_code == 404:
            print(f"Error: {not_found}\n")
            return
        try:
            body = error.response.json()
            detail = body.get("detail") or body.get("error") or body.get("message")
        except ValueError:
            detail = None
        print(f"Error: Failed to {action}: {detail or error.response.status_code}\n")
    else:
        print(f"Error: API request failed: {error}\n")
