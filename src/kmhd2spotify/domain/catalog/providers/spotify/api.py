"""
Spotify Web API client implementing the catalog interface.

Artist search, top tracks, and the playlist operations used for syncing.
"""

from typing import Any, Callable, Dict, List, Optional

import requests
from loguru import logger

from kmhd2spotify.domain.catalog.models import Artist, Playlist, Track
from kmhd2spotify.exceptions import (
    AuthenticationError,
    CatalogError,
    NoArtistError,
    RateLimitedError,
)

# Spotify API base URL
API_BASE = "https://api.spotify.com/v1"

TOP_TRACKS_LIMIT = 5
PLAYLISTS_PAGE_SIZE = 50
PLAYLIST_ITEMS_PAGE_SIZE = 100


class SpotifyCatalog:
    """requests-based Spotify client.

    Args:
        token_provider: Callable returning a valid access token
        session: Optional requests session (injected in tests)
        market: Market used for top-track lookups
    """

    def __init__(
        self,
        token_provider: Callable[[], str],
        session: Optional[requests.Session] = None,
        market: str = "US",
        timeout: int = 30,
    ):
        self._token_provider = token_provider
        self.session = session or requests.Session()
        self.market = market
        self.timeout = timeout
        self._user_id: Optional[str] = None
        self.log = logger.bind(component="spotify")

    def _request(self, method: str, path_or_url: str, **kwargs: Any) -> Dict[str, Any]:
        url = path_or_url if path_or_url.startswith("http") else f"{API_BASE}{path_or_url}"
        headers = {"Authorization": f"Bearer {self._token_provider()}"}

        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise CatalogError(f"request to Spotify failed: {e}") from e

        status = response.status_code
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            self.log.warning(f"Spotify rate limit hit ({method} {path_or_url})")
            raise RateLimitedError(
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        if status == 401:
            raise AuthenticationError("Spotify rejected the access token (401)", status_code=401)
        if status >= 400:
            raise CatalogError(
                f"Spotify API error {status}: {response.text}", status_code=status
            )

        if status == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise CatalogError(f"invalid JSON from Spotify: {e}", status_code=status) from e

    def current_user_id(self) -> str:
        if self._user_id is None:
            user = self._request("GET", "/me")
            self._user_id = user.get("id") or ""
            self.log.debug(
                f"Authenticated as {user.get('display_name') or self._user_id}"
            )
        return self._user_id

    def search_artist(self, query: str) -> Artist:
        self.log.debug(f"Searching for artist: {query!r}")
        data = self._request(
            "GET", "/search", params={"q": query, "type": "artist", "limit": 10}
        )
        items = (data.get("artists") or {}).get("items") or []
        if not items:
            self.log.warning(f"No artists found for query: {query!r}")
            raise NoArtistError(f"no artists found for query: {query}")

        artist = Artist.from_api(items[0])
        self.log.debug(f"Artist found: {artist.name} ({artist.id})")
        return artist

    def get_artist_top_tracks(self, artist_id: str) -> List[Track]:
        data = self._request(
            "GET", f"/artists/{artist_id}/top-tracks", params={"market": self.market}
        )
        raw_tracks = data.get("tracks") or []
        if not raw_tracks:
            self.log.warning(f"No top tracks found for artist {artist_id}")
            return []

        tracks = [Track.from_api(t) for t in raw_tracks[:TOP_TRACKS_LIMIT]]
        self.log.debug(
            f"Retrieved {len(tracks)} top tracks for {artist_id}: {[t.name for t in tracks]}"
        )
        return tracks

    def get_user_playlists(self, folder_name: str = "") -> List[Playlist]:
        """Return playlists owned by the current user.

        The Web API exposes no folders, so folder_name is informational only.
        """
        user_id = self.current_user_id()
        if folder_name:
            self.log.debug(f"Folder {folder_name!r} requested; the Web API has no folders")

        playlists: List[Playlist] = []
        url: Optional[str] = "/me/playlists"
        params: Optional[Dict[str, Any]] = {"limit": PLAYLISTS_PAGE_SIZE}
        total = 0

        while url:
            data = self._request("GET", url, params=params)
            for item in data.get("items") or []:
                if not item:
                    continue
                total += 1
                if (item.get("owner") or {}).get("id") == user_id:
                    playlists.append(Playlist.from_api(item))
            url = data.get("next")
            params = None  # next URL already carries the query

        self.log.debug(f"Filtered {total} playlists to {len(playlists)} user-owned playlists")
        return playlists

    def add_tracks_to_playlist(self, playlist_id: str, track_ids: List[str]) -> None:
        if not track_ids:
            raise CatalogError("no tracks provided to add")

        uris = [f"spotify:track:{track_id}" for track_id in track_ids]
        self.log.debug(f"Adding {len(uris)} tracks to playlist {playlist_id}")
        self._request("POST", f"/playlists/{playlist_id}/tracks", json={"uris": uris})

    def _playlist_track_ids(self, playlist_id: str) -> List[str]:
        ids: List[str] = []
        url: Optional[str] = f"/playlists/{playlist_id}/tracks"
        params: Optional[Dict[str, Any]] = {
            "limit": PLAYLIST_ITEMS_PAGE_SIZE,
            "fields": "items(track(id,name)),next",
        }

        while url:
            data = self._request("GET", url, params=params)
            for item in data.get("items") or []:
                track = (item or {}).get("track") or {}
                if track.get("id"):
                    ids.append(track["id"])
            url = data.get("next")
            params = None

        return ids

    def check_tracks_in_playlist(self, playlist_id: str, track_ids: List[str]) -> List[bool]:
        if not track_ids:
            return []

        existing = set(self._playlist_track_ids(playlist_id))
        results = [track_id in existing for track_id in track_ids]
        self.log.debug(
            f"Checked {len(track_ids)} tracks against playlist {playlist_id} "
            f"({len(existing)} existing, {sum(results)} duplicates)"
        )
        return results

    def create_playlist(self, name: str, description: str, public: bool = False) -> Playlist:
        user_id = self.current_user_id()
        data = self._request(
            "POST",
            f"/users/{user_id}/playlists",
            json={"name": name, "description": description, "public": public},
        )
        playlist = Playlist.from_api(data)
        self.log.info(f"Created playlist {playlist.name} ({playlist.id})")
        return playlist
