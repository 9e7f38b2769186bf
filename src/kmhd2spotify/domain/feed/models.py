"""Feed record types."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List


@dataclass(frozen=True)
class FeedRecord:
    """One song played on air, normalized from a raw feed entry."""

    artist: str
    title: str
    album: str = ""
    played_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    raw_text: str = ""

    def is_valid(self) -> bool:
        # Whitespace-only values count as present
        return self.artist != "" and self.title != ""

    def __str__(self) -> str:
        if self.album:
            return f"{self.artist} - {self.title} ({self.album})"
        return f"{self.artist} - {self.title}"


@dataclass
class SongCollection:
    """Records from one feed fetch, in feed order."""

    songs: List[FeedRecord] = field(default_factory=list)
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: str = "kmhd_api"

    def add_song(self, song: FeedRecord) -> None:
        self.songs.append(song)

    def __len__(self) -> int:
        return len(self.songs)


def search_songs(songs: List[FeedRecord], query: str) -> List[FeedRecord]:
    """
    Case-insensitive substring search over artist, title, album, then raw text.

    Each record appears at most once and results keep feed order.
    An empty query returns every record.
    """
    needle = query.strip().lower()
    if not needle:
        return list(songs)

    results = []
    for song in songs:
        haystacks = (song.artist, song.title, song.album, song.raw_text)
        if any(needle in value.lower() for value in haystacks if value):
            results.append(song)
    return results
