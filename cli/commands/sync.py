"""Remote sync command handlers."""

import getpass

import httpx

from ..config import API_URL, REQUEST_TIMEOUT, report_http_error


def show_sync():
    """Show the sync configuration and remote diagnostics."""
    try:
        response = httpx.get(f"{API_URL}/sync/status", timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        info = response.json()
    except httpx.HTTPError as e:
        report_http_error(e, "read sync status")
        return

    if not info.get("configured"):
        print("\nSync is not configured. Use /configure to set it up.\n")
        return

    print("\n=== Sync ===")
    print(f"  Document: {info.get('documentId')}")
    print(f"  Mode: {'read-only' if info.get('readOnly') else 'read/write'}")
    if info.get("owner"):
        print(f"  Owner: {info['owner']}")
    if info.get("updatedAt"):
        print(f"  Last remote update: {info['updatedAt']}")
    if info.get("credentialUser"):
        print(f"  Credential user: {info['credentialUser']}")
    for key in ("documentError", "credentialError"):
        if info.get(key):
            print(f"  Problem: {info[key]}")
    print()


def configure_sync():
    """Point sync at an existing document, or create a new one."""
    print("\n=== Configure Sync ===")
    document_id = input("Gist ID (leave empty to create a new one): ").strip()
    credential = getpass.getpass("GitHub token (leave empty for read-only): ").strip()

    try:
        if document_id:
            response = httpx.put(
                f"{API_URL}/sync/config",
                json={"documentId": document_id, "writeCredential": credential or None},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            mode = "read-only" if response.json().get("readOnly") else "read/write"
            print(f"\n✓ Sync configured ({mode}).\n")
            return

        if not credential:
            print("\nError: A token is required to create a new document.\n")
            return

        response = httpx.post(
            f"{API_URL}/sync/document",
            json={"writeCredential": credential},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        print(f"\n✓ Created gist {response.json()['documentId']} and enabled sync.\n")
    except httpx.HTTPError as e:
        report_http_error(e, "configure sync")


def pull_notes(args: str = ""):
    """Import notes from the remote document."""
    replace = args.strip() == "--replace"
    try:
        response = httpx.post(
            f"{API_URL}/sync/pull",
            params={"merge": str(not replace).lower()},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        result = response.json()
    except httpx.HTTPError as e:
        report_http_error(e, "pull notes")
        return

    if not result["ok"]:
        print(f"\nError: Pull failed ({result.get('reason')}).\n")
        return
    source = " from local cache" if result.get("fallback") else ""
    print(f"\n✓ Imported {result['imported']} note(s){source}; {result['total']} total.\n")


def push_notes():
    """Save all notes to the remote document now."""
    try:
        response = httpx.post(f"{API_URL}/sync/push", timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        result = response.json()
    except httpx.HTTPError as e:
        report_http_error(e, "push notes")
        return

    if result.get("fallback"):
        print(f"\n⚠ Saved locally only ({result.get('reason')}).\n")
    elif result["ok"]:
        print("\n✓ Notes pushed.\n")
    else:
        print(f"\nError: Push failed ({result.get('reason')}).\n")
