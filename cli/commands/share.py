"""Share link command handlers."""

import httpx

from ..config import API_URL, REQUEST_TIMEOUT, report_http_error, resolve_note_id


def share_note(args: str = ""):
    """Create (or rotate) the share link for a note."""
    note_id = resolve_note_id(args, "/share <note_id>")
    if not note_id:
        return

    try:
        note = httpx.get(f"{API_URL}/notes/{note_id}", timeout=REQUEST_TIMEOUT)
        note.raise_for_status()

        response = httpx.post(
            f"{API_URL}/share",
            json={"noteId": note_id, "noteTitle": note.json().get("title") or None},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()

        print("\n✓ Share link created. Any previous link for this note no longer works.")
        print(f"  Token: {data['data']['token']}")
        print(f"  URL: {data['url']}\n")
    except httpx.HTTPError as e:
        report_http_error(e, "share note", not_found=f"Note with ID '{note_id}' not found.")


def unshare_note(args: str = ""):
    """Revoke a note's share link."""
    note_id = resolve_note_id(args, "/unshare <note_id>")
    if not note_id:
        return

    try:
        response = httpx.delete(
            f"{API_URL}/share", params={"noteId": note_id}, timeout=REQUEST_TIMEOUT
        )
        response.raise_for_status()
        print("\n✓ Share link revoked.\n")
    except httpx.HTTPError as e:
        report_http_error(e, "revoke share link", not_found="This note has no share link.")


def open_shared(args: str):
    """Read a shared note through its public token."""
    token = args.strip()
    if not token:
        print("Error: Token is required. Usage: /open <token>\n")
        return

    try:
        response = httpx.get(
            f"{API_URL}/share/content", params={"token": token}, timeout=REQUEST_TIMEOUT
        )
        response.raise_for_status()
        view = response.json()

        print(f"\n=== {view['title']} (shared) ===")
        if view.get("placeholder"):
            print("[content unavailable]")
        print(view.get("content") or "")
        print()
    except httpx.HTTPError as e:
        report_http_error(e, "open shared note", not_found="This link is invalid or has expired.")
