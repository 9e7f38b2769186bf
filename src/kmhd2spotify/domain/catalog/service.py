"""Interface the sync engine needs from the music catalog."""

from typing import List, Protocol

from kmhd2spotify.domain.catalog.models import Artist, Playlist, Track


class CatalogService(Protocol):
    """Catalog lookups plus destination playlist operations.

    Implementations raise CatalogError subclasses on failure.
    """

    def search_artist(self, query: str) -> Artist:
        """Return the best artist for the query. Raises NoArtistError if none."""
        ...

    def get_artist_top_tracks(self, artist_id: str) -> List[Track]:
        """Return the artist's top tracks, at most 5."""
        ...

    def get_user_playlists(self, folder_name: str = "") -> List[Playlist]:
        ...

    def add_tracks_to_playlist(self, playlist_id: str, track_ids: List[str]) -> None:
        ...

    def check_tracks_in_playlist(self, playlist_id: str, track_ids: List[str]) -> List[bool]:
        """Return membership flags aligned with track_ids."""
        ...

    def create_playlist(self, name: str, description: str, public: bool = False) -> Playlist:
        ...
