"""
Playlist commands: add an artist's top tracks, list playlists.
"""

from rich.table import Table

from kmhd2spotify.commands.common import build_catalog
from kmhd2spotify.core.config import Config
from kmhd2spotify.core.console import get_console
from kmhd2spotify.core.output import log
from kmhd2spotify.domain.playlists import PlaylistService
from kmhd2spotify.domain.sync import DuplicateService
from kmhd2spotify.exceptions import CatalogError


def _playlist_service(config: Config) -> PlaylistService:
    catalog = build_catalog(config)
    return PlaylistService(catalog, duplicates=DuplicateService(catalog))


def handle_add_artist_command(
    config: Config, artist_name: str, playlist_id: str, force: bool = False
) -> int:
    service = _playlist_service(config)

    try:
        result = service.add_artist_to_playlist(artist_name, playlist_id, force=force)
    except CatalogError as e:
        log(f"❌ Failed to find artist: {e}", level="error")
        return 1

    if result.success:
        log(f"✅ {result.message}", level="info")
        for track in result.tracks_added:
            log(f"   • {track.name}", level="info")
        return 0

    if result.was_duplicate:
        log(f"⚠ {result.message}", level="warning")
        log("Re-run with --force to add anyway", level="info")
    else:
        log(f"❌ {result.message}", level="error")
    return 1


def handle_playlists_command(config: Config, search_term: str = "") -> int:
    service = _playlist_service(config)

    try:
        playlists = service.get_incoming_playlists()
    except CatalogError as e:
        log(f"❌ Error fetching playlists: {e}", level="error")
        return 1

    playlists = service.filter_playlists_by_search(playlists, search_term)
    if not playlists:
        log("No playlists found", level="info")
        return 0

    table = Table(title=f"Your playlists ({len(playlists)})")
    table.add_column("Name", style="cyan")
    table.add_column("Tracks", justify="right")
    table.add_column("ID", style="dim")
    for playlist in playlists:
        table.add_row(playlist.name, str(playlist.track_count), playlist.id)

    get_console().print(table)
    return 0
