"""Main CLI client with REPL loop."""

import os

from .commands import (
    configure_sync,
    create_folder,
    create_note,
    delete_note,
    edit_note,
    list_folders,
    list_notes,
    open_shared,
    pull_notes,
    push_notes,
    search_notes,
    share_note,
    show_sync,
    toggle_favorite,
    unshare_note,
    view_note,
)
from .config import API_URL, load_current_note

# Commands that take the rest of the line as an argument
COMMANDS_WITH_ARGS = {
    "/list": list_notes,
    "/search": search_notes,
    "/view": view_note,
    "/edit": edit_note,
    "/delete": delete_note,
    "/fav": toggle_favorite,
    "/folder": create_folder,
    "/share": share_note,
    "/unshare": unshare_note,
    "/open": open_shared,
    "/pull": pull_notes,
}

COMMANDS = {
    "/new": create_note,
    "/folders": list_folders,
    "/sync": show_sync,
    "/configure": configure_sync,
    "/push": push_notes,
}


def print_help():
    print("\nNote Commands:")
    print("  /new - Create a note (content is written in $EDITOR)")
    print("  /list [folder] - List notes, optionally in one folder")
    print("  /search <text> - Search titles and content")
    print("  /view [id] - Show a note (defaults to the current note)")
    print("  /edit [id] - Edit a note's content in $EDITOR")
    print("  /delete <id> - Delete a note")
    print("  /fav [id] - Toggle favorite")
    print("\nFolder Commands:")
    print("  /folders - List folders")
    print("  /folder <name> - Create a folder")
    print("\nShare Commands:")
    print("  /share [id] - Create a public share link (replaces any previous link)")
    print("  /unshare [id] - Revoke the share link")
    print("  /open <token> - Read a shared note")
    print("\nSync Commands:")
    print("  /sync - Show sync status")
    print("  /configure - Set the Gist ID and token")
    print("  /pull [--replace] - Import notes from the Gist")
    print("  /push - Save all notes to the Gist now")
    print("\nUtility Commands:")
    print("  /help - Show this help")
    print("  /clear - Clear the terminal screen")
    print("\nType 'exit' or 'quit' to leave.")


def dispatch(user_input: str) -> bool:
    """Run one command line. Returns False when the line is not a known command."""
    command, _, args = user_input.partition(" ")
    command = command.lower()

    if command in COMMANDS_WITH_ARGS:
        COMMANDS_WITH_ARGS[command](args)
        return True
    if command in COMMANDS:
        COMMANDS[command]()
        return True
    if command == "/help":
        print_help()
        return True
    if command == "/clear":
        # Clear terminal screen (cross-platform)
        os.system("cls" if os.name == "nt" else "clear")
        return True
    return False


def main():
    """CLI client for the gistnotes API."""
    print("Welcome to gistnotes!")
    print_help()
    print(f"\nUsing API at {API_URL}")
    print("Note: Make sure the API server is running (python -m api.server)\n")

    current = load_current_note()
    if current:
        print(f"Current note: {current}\n")

    while True:
        try:
            user_input = input("gistnotes> ").strip()

            if user_input.lower() in ["exit", "quit"]:
                print("\nGoodbye!")
                break

            if not user_input:
                continue

            if not dispatch(user_input):
                print(f"Unknown command: {user_input.split()[0]}. Type /help for commands.\n")

        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except EOFError:
            print("\n\nGoodbye!")
            break


if __name__ == "__main__":
    main()
