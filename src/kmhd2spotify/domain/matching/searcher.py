"""
Fuzzy song search against the catalog.

Takes the first artist hit for the artist query, then picks the best of that
artist's top tracks by weighted artist/song/album confidence.
"""

from dataclasses import dataclass

from loguru import logger

from kmhd2spotify.domain.catalog.models import Artist, Track
from kmhd2spotify.domain.catalog.service import CatalogService
from kmhd2spotify.domain.matching.confidence import (
    album_confidence,
    match_confidence,
    overall_confidence,
)
from kmhd2spotify.exceptions import NoTracksError

HIGH_CONFIDENCE = 0.8
LOW_CONFIDENCE = 0.5


@dataclass(frozen=True)
class SongMatch:
    """Best catalog track for one feed record, with its confidence breakdown."""

    artist: Artist
    track: Track
    artist_query: str
    song_query: str
    album_query: str
    artist_confidence: float
    song_confidence: float
    album_confidence: float
    overall_confidence: float

    def is_high_confidence(self) -> bool:
        return self.overall_confidence >= HIGH_CONFIDENCE

    def is_low_confidence(self) -> bool:
        return self.overall_confidence < LOW_CONFIDENCE


class FuzzySongSearcher:
    """Finds the closest catalog track for an artist/song/album triple."""

    def __init__(self, catalog: CatalogService):
        self.catalog = catalog
        self.log = logger.bind(component="matcher")

    def find_best_song_match(self, artist_query: str, song_query: str) -> SongMatch:
        return self.find_best_match(artist_query, song_query, "")

    def find_best_match(
        self, artist_query: str, song_query: str, album_query: str = ""
    ) -> SongMatch:
        """
        Find the best matching track.

        Args:
            artist_query: Artist name from the feed (required)
            song_query: Song title; empty selects the artist's first top track
            album_query: Album name; empty is scored neutrally

        Returns:
            SongMatch for the highest overall confidence (first wins on ties)

        Raises:
            ValueError: If artist_query is empty
            NoArtistError: If the catalog has no such artist
            NoTracksError: If the artist has no top tracks
        """
        if not artist_query.strip():
            raise ValueError("artist query cannot be empty")

        self.log.debug(
            f"Starting fuzzy song search: artist={artist_query!r} song={song_query!r} album={album_query!r}"
        )

        artist = self.catalog.search_artist(artist_query)
        artist_score = match_confidence(artist_query, artist.name)

        tracks = self.catalog.get_artist_top_tracks(artist.id)
        if not tracks:
            raise NoTracksError(f"no tracks found for artist {artist.name}")

        if not song_query.strip():
            track = tracks[0]
            album_score = album_confidence(album_query, track)
            song_score = 1.0  # Nothing to compare against
            return SongMatch(
                artist=artist,
                track=track,
                artist_query=artist_query,
                song_query="",
                album_query=album_query,
                artist_confidence=artist_score,
                song_confidence=song_score,
                album_confidence=album_score,
                overall_confidence=overall_confidence(artist_score, song_score, album_score),
            )

        best = None
        for track in tracks:
            song_score = match_confidence(song_query, track.name)
            album_score = album_confidence(album_query, track)
            overall = overall_confidence(artist_score, song_score, album_score)
            # Strict comparison keeps the earliest track on ties
            if best is None or overall > best[3]:
                best = (track, song_score, album_score, overall)

        track, song_score, album_score, overall = best
        match = SongMatch(
            artist=artist,
            track=track,
            artist_query=artist_query,
            song_query=song_query,
            album_query=album_query,
            artist_confidence=artist_score,
            song_confidence=song_score,
            album_confidence=album_score,
            overall_confidence=overall,
        )

        self.log.info(
            f"Found song match: {artist.name} - {track.name} "
            f"(confidence {overall:.3f} for {artist_query!r} / {song_query!r})"
        )
        if album_query:
            self.log.debug(
                f"Album matching: {album_query!r} vs {track.album.name!r} -> "
                f"({artist_score:.3f} * 0.5) + ({song_score:.3f} * 0.35) + "
                f"({album_score:.3f} * 0.15) = {overall:.3f}"
            )
        return match
