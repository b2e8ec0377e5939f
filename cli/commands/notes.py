"""Notes and folder command handlers."""

import os
import subprocess
import sys
import tempfile
from datetime import datetime
from pathlib import Path

import httpx

from ..config import (
    API_URL,
    REQUEST_TIMEOUT,
    delete_current_note,
    load_current_note,
    report_http_error,
    resolve_note_id,
    save_current_note,
)


def _get_editor():
    """Get the user's preferred text editor."""
    # Try environment variables first
    editor = os.environ.get("EDITOR") or os.environ.get("VISUAL")
    if editor:
        return editor

    # Platform-specific defaults
    if sys.platform == "win32":
        return "notepad"
    # Try common Unix editors in order of preference
    for editor_cmd in ["nano", "vim", "vi"]:
        try:
            subprocess.run(
                ["which", editor_cmd],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=True,
            )
            return editor_cmd
        except (subprocess.CalledProcessError, FileNotFoundError):
            continue

    return "vi"


def _edit_text(initial: str, label: str) -> str | None:
    """Open ``initial`` in the user's editor and return the saved text, or None on failure."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".html", delete=False) as tmp_file:
        tmp_file.write(initial)
        tmp_file_path = tmp_file.name

    try:
        editor = _get_editor()
        print(f"\nOpening {label} in {editor}...")
        print("Save and close the editor when you are done.\n")

        try:
            subprocess.run([editor, tmp_file_path], check=True)
        except subprocess.CalledProcessError:
            print(f"\nError: Editor '{editor}' exited with an error.\n")
            return None
        except FileNotFoundError:
            print(f"\nError: Editor '{editor}' not found.\n")
            print("You can set your preferred editor with: export EDITOR=nano\n")
            return None

        return Path(tmp_file_path).read_text(encoding="utf-8")
    finally:
        tmp_path = Path(tmp_file_path)
        if tmp_path.exists():
            tmp_path.unlink()


def _format_time(value: str | None) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value


def create_note():
    """Create a note, writing its content in an external text editor."""
    print("\n=== Create New Note ===")

    title = input("Title: ").strip()
    tags_input = input("Tags (comma-separated, optional): ").strip()
    tags = [tag.strip() for tag in tags_input.split(",") if tag.strip()] if tags_input else []

    content = _edit_text("<p></p>\n", "new note")
    if content is None:
        return

    try:
        response = httpx.post(
            f"{API_URL}/notes",
            json={"title": title, "content": content.strip(), "tags": tags},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        note = response.json()
        save_current_note(note["id"])

        print("\n✓ Note created successfully!")
        print(f"  Note ID: {note['id']}")
        print(f"  Title: {note['title'] or '(untitled)'}\n")
    except httpx.HTTPError as e:
        report_http_error(e, "create note")


def _print_notes(notes: list[dict], heading: str):
    if not notes:
        print("\nNo notes found.\n")
        return

    print(f"\n=== {heading} ({len(notes)}) ===\n")
    current = load_current_note()
    for note in notes:
        marker = "* " if note["id"] == current else "  "
        star = "★ " if note.get("isFavorite") else ""
        tags = ", ".join(note.get("tags") or []) or "no tags"
        print(f"{marker}{star}{note.get('title') or '(untitled)'}")
        print(f"    ID: {note['id']} | Folder: {note.get('folderId')} | Tags: {tags}")
        print(f"    Updated: {_format_time(note.get('updatedAt'))}\n")


def list_notes(args: str = ""):
    """List notes, optionally in one folder."""
    folder = args.strip() or "all"
    try:
        response = httpx.get(
            f"{API_URL}/notes", params={"folder": folder}, timeout=REQUEST_TIMEOUT
        )
        response.raise_for_status()
        _print_notes(response.json().get("notes", []), f"Notes in '{folder}'")
    except httpx.HTTPError as e:
        report_http_error(e, "list notes")


def search_notes(args: str):
    """Search note titles and content."""
    query = args.strip()
    if not query:
        print("Error: Search text is required. Usage: /search <text>\n")
        return
    try:
        response = httpx.get(f"{API_URL}/notes", params={"q": query}, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        _print_notes(response.json().get("notes", []), f"Results for '{query}'")
    except httpx.HTTPError as e:
        report_http_error(e, "search notes")


def _fetch_note(note_id: str) -> dict | None:
    try:
        response = httpx.get(f"{API_URL}/notes/{note_id}", timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPError as e:
        report_http_error(e, "retrieve note", not_found=f"Note with ID '{note_id}' not found.")
        return None


def view_note(args: str = ""):
    """Show one note and make it the current note."""
    note_id = resolve_note_id(args, "/view <note_id>")
    if not note_id:
        return

    note = _fetch_note(note_id)
    if note is None:
        return
    save_current_note(note["id"])

    print(f"\n=== {note.get('title') or '(untitled)'} ===")
    print(f"ID: {note['id']} | Folder: {note.get('folderId')}")
    print(f"Tags: {', '.join(note.get('tags') or []) or 'none'}")
    print(f"Favorite: {'yes' if note.get('isFavorite') else 'no'}")
    print(f"Created: {_format_time(note.get('createdAt'))}")
    print(f"Updated: {_format_time(note.get('updatedAt'))}")
    print("-" * 40)
    print(note.get("content") or "")
    print()


def edit_note(args: str = ""):
    """Edit a note's content in an external text editor."""
    note_id = resolve_note_id(args, "/edit <note_id>")
    if not note_id:
        return

    note = _fetch_note(note_id)
    if note is None:
        return

    current_content = note.get("content") or ""
    edited = _edit_text(current_content, f"note '{note.get('title') or note_id}'")
    if edited is None:
        return
    if edited == current_content:
        print("\nNo changes made. Note not updated.\n")
        return

    try:
        response = httpx.patch(
            f"{API_URL}/notes/{note_id}", json={"content": edited}, timeout=REQUEST_TIMEOUT
        )
        response.raise_for_status()
        print("\n✓ Note updated successfully!\n")
    except httpx.HTTPError as e:
        report_http_error(e, "update note", not_found=f"Note with ID '{note_id}' not found.")


def delete_note(args: str = ""):
    """Delete a note after confirmation."""
    note_id = args.strip()
    if not note_id:
        print("Error: Note ID is required. Usage: /delete <note_id>\n")
        return

    confirm = input(f"Are you sure you want to delete note '{note_id}'? (y/N): ").strip().lower()
    if confirm not in ["y", "yes"]:
        print("\nDeletion cancelled.\n")
        return

    try:
        response = httpx.delete(f"{API_URL}/notes/{note_id}", timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        if load_current_note() == note_id:
            delete_current_note()
        print(f"\n✓ Note {note_id} deleted.\n")
    except httpx.HTTPError as e:
        report_http_error(e, "delete note", not_found=f"Note with ID '{note_id}' not found.")


def toggle_favorite(args: str = ""):
    note_id = resolve_note_id(args, "/fav <note_id>")
    if not note_id:
        return
    try:
        response = httpx.post(f"{API_URL}/notes/{note_id}/favorite", timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        state = "added to" if response.json().get("isFavorite") else "removed from"
        print(f"\n✓ Note {state} favorites.\n")
    except httpx.HTTPError as e:
        report_http_error(e, "update favorite", not_found=f"Note with ID '{note_id}' not found.")


def list_folders():
    try:
        response = httpx.get(f"{API_URL}/folders", timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        print("\n=== Folders ===\n")
        for folder in response.json():
            print(f"  {folder['name']}  ({folder['id']})")
        print()
    except httpx.HTTPError as e:
        report_http_error(e, "list folders")


def create_folder(args: str):
    name = args.strip()
    if not name:
        print("Error: Folder name is required. Usage: /folder <name>\n")
        return
    try:
        response = httpx.post(f"{API_URL}/folders", json={"name": name}, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        print(f"\n✓ Folder created: {response.json()['id']}\n")
    except httpx.HTTPError as e:
        report_http_error(e, "create folder")
