"""
Destination writer: monthly playlist resolution and batched track writes.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional

from loguru import logger

from kmhd2spotify.core.output import log
from kmhd2spotify.domain.catalog.models import Playlist
from kmhd2spotify.domain.catalog.service import CatalogService
from kmhd2spotify.exceptions import (
    CatalogError,
    RateLimitedWriteError,
    WriteError,
)


def period_name(prefix: str, when: datetime) -> str:
    """Monthly playlist name, e.g. "KMHD-2025-10"."""
    return f"{prefix}-{when.year:04d}-{when.month:02d}"


def period_description(prefix: str, when: datetime) -> str:
    return (
        f"KMHD jazz radio songs for {when.strftime('%B')} {when.year}. "
        f"Organize into '{prefix}' folder for better management."
    )


def classify_write_error(error: Exception) -> WriteError:
    """
    Wrap a failed write in the matching WriteError variant.

    Catalog errors carry a status code; only foreign exceptions without one
    fall back to inspecting their text.
    """
    if isinstance(error, CatalogError):
        rate_limited = error.status_code == 429
    else:
        text = str(error).lower()
        rate_limited = "rate limit" in text or "429" in text

    if rate_limited:
        return RateLimitedWriteError("rate limited while adding tracks", cause=error)
    return WriteError(f"failed to add tracks: {error}", cause=error)


class PlaylistWriter:
    """Resolves the current period's playlist and appends tracks to it."""

    def __init__(
        self,
        catalog: CatalogService,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.catalog = catalog
        self._clock = clock or datetime.now
        self._resolved: Dict[str, Playlist] = {}
        self.last_folder_tip: Optional[str] = None
        self.log = logger.bind(component="writer")

    def resolve_or_create_period_playlist(self, prefix: str) -> Playlist:
        """
        Return this month's playlist for the prefix, creating it if missing.

        With an empty prefix the user's first playlist is used instead.
        Resolved playlists are cached per period name.

        Raises:
            CatalogError: If listing/creating fails, or no playlist exists for the empty-prefix fallback
        """
        now = self._clock()
        name = period_name(prefix, now) if prefix else ""

        cached = self._resolved.get(name)
        if cached is not None:
            return cached

        playlists = self.catalog.get_user_playlists("")

        if not prefix:
            if not playlists:
                raise CatalogError(
                    "no playlists found and no prefix configured. "
                    "Please create a playlist or set SPOTIFY_PLAYLIST_NAME_PREFIX"
                )
            self.log.warning(
                "No playlist name prefix configured (SPOTIFY_PLAYLIST_NAME_PREFIX), using first playlist"
            )
            self._resolved[name] = playlists[0]
            return playlists[0]

        for playlist in playlists:
            if playlist.name == name:
                self.log.info(f"Found existing monthly playlist {name} ({playlist.id})")
                self._resolved[name] = playlist
                return playlist

        self.log.info(f"Monthly playlist {name} not found, creating new one")
        playlist = self.catalog.create_playlist(name, period_description(prefix, now), False)
        self.log.info(f"Successfully created new monthly playlist {playlist.name} ({playlist.id})")

        # Playlist folders cannot be managed through the Web API
        self.last_folder_tip = (
            f"📁 Organization Tip: In Spotify Desktop, create a folder named '{prefix}' "
            f"and drag the playlist '{playlist.name}' into it for better organization."
        )
        log(self.last_folder_tip, level="info")

        self._resolved[name] = playlist
        return playlist

    def write(self, playlist_id: str, track_ids: List[str]) -> None:
        """
        Add all track ids to the playlist in one call.

        Raises:
            WriteError: RateLimitedWriteError when throttled, plain WriteError otherwise
        """
        try:
            self.catalog.add_tracks_to_playlist(playlist_id, track_ids)
        except Exception as e:
            write_error = classify_write_error(e)
            if isinstance(write_error, RateLimitedWriteError):
                self.log.warning(f"Spotify API rate limit encountered writing to {playlist_id}")
            else:
                self.log.warning(f"Failed to add {len(track_ids)} tracks to {playlist_id}: {e}")
            raise write_error from e
