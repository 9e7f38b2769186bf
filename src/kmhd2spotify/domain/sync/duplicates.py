"""Destination-level duplicate detection."""

from datetime import datetime
from typing import Callable, List, Optional

from loguru import logger

from kmhd2spotify.domain.catalog.models import DuplicateResult, Track
from kmhd2spotify.domain.catalog.service import CatalogService


class DuplicateService:
    """Checks whether tracks are already in a destination playlist."""

    def __init__(
        self,
        catalog: CatalogService,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.catalog = catalog
        self._clock = clock or datetime.now
        self.log = logger.bind(component="duplicate_service")

    def check_duplicates(self, playlist_id: str, tracks: List[Track]) -> DuplicateResult:
        """
        Check tracks against the playlist's current contents.

        An empty track list returns immediately without calling the catalog.
        Catalog errors propagate to the caller.
        """
        if not tracks:
            self.log.debug(f"No tracks provided for duplicate check in {playlist_id}")
            return DuplicateResult(has_duplicates=False, message="No tracks to check")

        self.log.debug(f"Checking {len(tracks)} tracks for duplicates in {playlist_id}")
        exists = self.catalog.check_tracks_in_playlist(playlist_id, [t.id for t in tracks])

        duplicates = [track for track, present in zip(tracks, exists) if present]
        # Playlist item timestamps are not consulted; the check time stands in
        result = DuplicateResult(
            has_duplicates=bool(duplicates),
            duplicate_tracks=duplicates,
            last_added=self._clock(),
        )

        if duplicates:
            names = ", ".join(t.name for t in duplicates)
            result.message = f"Found {len(duplicates)} duplicate track(s): {names}"
            self.log.info(f"Duplicate tracks detected in {playlist_id}: {names}")
        else:
            result.message = "No duplicate tracks found"
            self.log.debug(f"No duplicate tracks found in {playlist_id}")

        return result

    def check_artist_in_playlist(self, playlist_id: str, artist_id: str) -> DuplicateResult:
        """Check an artist's top tracks against the playlist."""
        tracks = self.catalog.get_artist_top_tracks(artist_id)
        if not tracks:
            self.log.debug(f"Artist {artist_id} has no tracks to check for duplicates")
            return DuplicateResult(has_duplicates=False, message="Artist has no tracks")

        artist_name = tracks[0].artists[0].name if tracks[0].artists else ""

        result = self.check_duplicates(playlist_id, tracks)
        result.artist_name = artist_name

        if result.has_duplicates:
            last_added = result.last_added.strftime("%Y-%m-%d %H:%M:%S")
            result.message = (
                f"Artist '{artist_name}' already has {len(result.duplicate_tracks)} "
                f"track(s) in this playlist (last added: {last_added}). "
                "Use 'Add Anyway' to override."
            )
            self.log.info(f"Artist tracks already exist in playlist: {artist_name}")
        else:
            result.message = f"Artist '{artist_name}' tracks not found in playlist, safe to add"

        return result
