import asyncio
import sys

from sparknova import CatalogMatcher, SearchResultItem, launch

CATALOG = [
    SearchResultItem(id="app-notes", title="Notes", type="app", path="/usr/bin/notes"),
    SearchResultItem(id="app-term", title="Terminal", type="app", path="/usr/bin/terminal"),
    SearchResultItem(id="cmd-lock", title="Lock screen", type="command", description="Lock the session"),
]


if __name__ == "__main__":
    # Pass the native host executable (and its arguments) on the command line.
    native_command = sys.argv[1:] or None
    try:
        asyncio.run(launch(native_command, matcher=CatalogMatcher(CATALOG, limit=8)))
    except KeyboardInterrupt:
        print("Launcher stopped.")
