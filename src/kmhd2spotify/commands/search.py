"""
Search command: look through today's KMHD playlist.
"""

from rich.table import Table

from kmhd2spotify.core.config import Config
from kmhd2spotify.core.console import get_console
from kmhd2spotify.core.output import log
from kmhd2spotify.domain.feed import KMHDFeedClient, search_songs
from kmhd2spotify.exceptions import FetchError


def handle_search_command(config: Config, query: str) -> int:
    query = query.strip()
    if not query:
        log("❌ Search query cannot be empty", level="error")
        return 1

    client = KMHDFeedClient(config.kmhd)
    log("Fetching KMHD playlist from API...", level="info")
    try:
        collection = client.scrape_playlist()
    except FetchError as e:
        log(f"❌ Failed to fetch KMHD playlist: {e}", level="error")
        return 1

    if not collection.songs:
        log("⚠ No songs found in KMHD playlist", level="warning")
        return 0

    matches = search_songs(collection.songs, query)
    if not matches:
        log(f"⚠ No matching songs found for '{query}'", level="warning")
        return 0

    table = Table(title=f"🔍 Search Results for '{query}' ({len(matches)} found)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Song", style="cyan")
    table.add_column("Played", style="green")

    for index, song in enumerate(matches, start=1):
        table.add_row(str(index), str(song), song.played_at.astimezone().strftime("%b %d, %Y %H:%M"))

    get_console().print(table)
    return 0


def handle_now_playing_command(config: Config) -> int:
    client = KMHDFeedClient(config.kmhd)
    try:
        current = client.get_currently_playing()
    except FetchError as e:
        log(f"❌ Failed to get currently playing song: {e}", level="error")
        return 1

    log(f"📻 Now playing on KMHD: {current}", level="info")
    log(f"   Started at {current.played_at.astimezone():%H:%M}", level="info")
    return 0
