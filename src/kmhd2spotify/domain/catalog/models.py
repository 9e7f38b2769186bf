"""Catalog data models (Spotify artists, tracks, playlists)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

EMBED_URL_TEMPLATE = "https://open.spotify.com/embed/playlist/{id}"


@dataclass
class Artist:
    id: str
    name: str
    uri: str = ""
    genres: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Artist":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            uri=data.get("uri") or "",
            genres=list(data.get("genres") or []),
        )


@dataclass
class Album:
    id: str = ""
    name: str = ""
    album_type: str = ""


@dataclass
class Track:
    id: str
    name: str
    uri: str = ""
    artists: List[Artist] = field(default_factory=list)
    duration_ms: int = 0
    album: Album = field(default_factory=Album)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Track":
        album = data.get("album") or {}
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            uri=data.get("uri") or "",
            artists=[Artist.from_api(a) for a in data.get("artists") or []],
            duration_ms=data.get("duration_ms") or 0,
            album=Album(
                id=album.get("id") or "",
                name=album.get("name") or "",
                album_type=album.get("album_type") or "",
            ),
        )

    @property
    def artist_names(self) -> str:
        return ", ".join(a.name for a in self.artists)


@dataclass
class Playlist:
    id: str
    name: str
    uri: str = ""
    track_count: int = 0
    embed_url: str = ""
    is_incoming: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Playlist":
        playlist_id = data.get("id") or ""
        tracks = data.get("tracks") or {}
        return cls(
            id=playlist_id,
            name=data.get("name") or "",
            uri=data.get("uri") or "",
            track_count=tracks.get("total") or 0,
            embed_url=EMBED_URL_TEMPLATE.format(id=playlist_id),
        )


@dataclass
class DuplicateResult:
    """Outcome of checking tracks against a destination playlist."""

    has_duplicates: bool = False
    duplicate_tracks: List[Track] = field(default_factory=list)
    last_added: Optional[datetime] = None
    artist_name: str = ""
    message: str = ""


@dataclass
class AddResult:
    """Outcome of adding an artist's top tracks to a playlist."""

    success: bool
    artist: Optional[Artist] = None
    tracks_added: List[Track] = field(default_factory=list)
    playlist: Optional[Playlist] = None
    was_duplicate: bool = False
    message: str = ""
