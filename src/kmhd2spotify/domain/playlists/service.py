"""
Interactive playlist operations: add an artist's top tracks, list and filter playlists.
"""

from typing import List, Optional

from loguru import logger

from kmhd2spotify.domain.catalog.models import AddResult, Playlist, Track
from kmhd2spotify.domain.catalog.service import CatalogService
from kmhd2spotify.domain.sync.duplicates import DuplicateService
from kmhd2spotify.domain.sync.writer import PlaylistWriter
from kmhd2spotify.exceptions import CatalogError, WriteError

INCOMING_FOLDER = "Incoming"


class PlaylistService:
    """Playlist management for manual, one-artist-at-a-time additions."""

    def __init__(
        self,
        catalog: CatalogService,
        duplicates: Optional[DuplicateService] = None,
        writer: Optional[PlaylistWriter] = None,
    ):
        self.catalog = catalog
        self.duplicates = duplicates
        self.writer = writer or PlaylistWriter(catalog)
        self.log = logger.bind(component="playlist_service")

    def add_artist_to_playlist(
        self, artist_name: str, playlist_id: str, force: bool = False
    ) -> AddResult:
        """
        Add an artist's top tracks to a playlist.

        Unless force is set, the add is refused when any of the tracks is
        already in the playlist. A failing duplicate check does not block the add.

        Raises:
            CatalogError: If the artist lookup or top-track fetch fails
        """
        self.log.info(f"Adding artist {artist_name!r} to playlist {playlist_id} (force={force})")

        artist = self.catalog.search_artist(artist_name)
        tracks = self.catalog.get_artist_top_tracks(artist.id)

        if not tracks:
            self.log.warning(f"Artist {artist.name} has no tracks available")
            return AddResult(
                success=False, artist=artist, message="Artist has no tracks available"
            )

        if not force and self.duplicates is not None:
            try:
                duplicate = self.duplicates.check_artist_in_playlist(playlist_id, artist.id)
            except CatalogError as e:
                self.log.warning(f"Failed to check for duplicates, proceeding anyway: {e}")
            else:
                if duplicate.has_duplicates:
                    self.log.info(f"Artist tracks already exist in playlist: {artist.name}")
                    return AddResult(
                        success=False,
                        artist=artist,
                        was_duplicate=True,
                        message=duplicate.message,
                    )

        try:
            self.writer.write(playlist_id, [t.id for t in tracks])
        except WriteError as e:
            return AddResult(
                success=False,
                artist=artist,
                tracks_added=tracks,
                message=e.user_message,
            )

        self.log.info(
            f"Successfully added {len(tracks)} tracks by {artist.name} to {playlist_id}: "
            f"{[t.name for t in tracks]}"
        )
        return AddResult(
            success=True,
            artist=artist,
            tracks_added=tracks,
            message=f"Successfully added {artist.name}'s top tracks to playlist",
        )

    def get_incoming_playlists(self) -> List[Playlist]:
        playlists = self.catalog.get_user_playlists(INCOMING_FOLDER)
        self.log.info(f"Fetched {len(playlists)} playlists for folder {INCOMING_FOLDER!r}")
        return playlists

    def get_top_tracks(self, artist_id: str) -> List[Track]:
        return self.catalog.get_artist_top_tracks(artist_id)

    def filter_playlists_by_search(
        self, playlists: List[Playlist], search_term: str
    ) -> List[Playlist]:
        """Case-insensitive substring filter on playlist names."""
        if not search_term:
            return playlists

        needle = search_term.lower()
        filtered = [p for p in playlists if needle in p.name.lower()]
        self.log.debug(
            f"Filtered {len(playlists)} playlists to {len(filtered)} for {search_term!r}"
        )
        return filtered
