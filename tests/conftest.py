"""Shared fixtures: an in-memory catalog standing in for Spotify."""

from typing import Dict, List, Optional, Set

import pytest

from kmhd2spotify.domain.catalog.models import Album, Artist, Playlist, Track
from kmhd2spotify.exceptions import NoArtistError


class FakeCatalog:
    """In-memory CatalogService recording every write."""

    def __init__(self) -> None:
        self.artists: Dict[str, Artist] = {}
        self.top_tracks: Dict[str, List[Track]] = {}
        self.playlists: List[Playlist] = []
        self.playlist_tracks: Dict[str, Set[str]] = {}
        self.added: List[tuple] = []
        self.created: List[tuple] = []
        self.check_calls: List[tuple] = []
        self.search_calls: List[str] = []
        self.add_error: Optional[Exception] = None
        self.check_error: Optional[Exception] = None

    def add_artist(self, artist: Artist, tracks: List[Track], query: Optional[str] = None) -> None:
        self.artists[(query or artist.name).strip().lower()] = artist
        self.top_tracks[artist.id] = tracks

    def search_artist(self, query: str) -> Artist:
        self.search_calls.append(query)
        artist = self.artists.get(query.strip().lower())
        if artist is None:
            raise NoArtistError(f"no artists found for query: {query}")
        return artist

    def get_artist_top_tracks(self, artist_id: str) -> List[Track]:
        return list(self.top_tracks.get(artist_id, []))[:5]

    def get_user_playlists(self, folder_name: str = "") -> List[Playlist]:
        return list(self.playlists)

    def add_tracks_to_playlist(self, playlist_id: str, track_ids: List[str]) -> None:
        if self.add_error is not None:
            raise self.add_error
        self.added.append((playlist_id, list(track_ids)))
        self.playlist_tracks.setdefault(playlist_id, set()).update(track_ids)

    def check_tracks_in_playlist(self, playlist_id: str, track_ids: List[str]) -> List[bool]:
        self.check_calls.append((playlist_id, list(track_ids)))
        if self.check_error is not None:
            raise self.check_error
        existing = self.playlist_tracks.get(playlist_id, set())
        return [track_id in existing for track_id in track_ids]

    def create_playlist(self, name: str, description: str, public: bool = False) -> Playlist:
        playlist = Playlist(id=f"created-{len(self.created) + 1}", name=name)
        self.created.append((name, description, public))
        self.playlists.append(playlist)
        return playlist


def make_track(track_id: str, name: str, album: str = "", artist: Optional[Artist] = None) -> Track:
    return Track(
        id=track_id,
        name=name,
        uri=f"spotify:track:{track_id}",
        artists=[artist] if artist else [],
        album=Album(name=album),
    )


@pytest.fixture
def catalog() -> FakeCatalog:
    """Empty fake catalog."""
    return FakeCatalog()


@pytest.fixture
def miles_catalog(catalog: FakeCatalog) -> FakeCatalog:
    """Catalog holding Miles Davis with a handful of top tracks."""
    miles = Artist(id="miles", name="Miles Davis", uri="spotify:artist:miles")
    catalog.add_artist(
        miles,
        [
            make_track("t-so-what", "So What", "Kind of Blue", miles),
            make_track("t-blue", "Blue in Green", "Kind of Blue", miles),
            make_track("t-freddie", "Freddie Freeloader", "Kind of Blue", miles),
            make_track("t-round", "'Round Midnight", "'Round About Midnight", miles),
            make_track("t-bitches", "Miles Runs the Voodoo Down", "Bitches Brew", miles),
        ],
    )
    return catalog
