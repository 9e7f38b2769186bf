"""Tests for PlaylistService."""

from datetime import datetime

import pytest

from conftest import FakeCatalog
from kmhd2spotify.domain.catalog.models import Artist, Playlist
from kmhd2spotify.domain.playlists.service import PlaylistService
from kmhd2spotify.domain.sync.duplicates import DuplicateService
from kmhd2spotify.exceptions import (
    CatalogError,
    NoArtistError,
    RateLimitedError,
)


@pytest.fixture
def service(miles_catalog: FakeCatalog) -> PlaylistService:
    duplicates = DuplicateService(miles_catalog, clock=lambda: datetime(2025, 10, 15, 9, 0))
    return PlaylistService(miles_catalog, duplicates=duplicates)


class TestAddArtistToPlaylist:
    """Tests for add_artist_to_playlist."""

    def test_adds_top_tracks(self, service: PlaylistService, miles_catalog: FakeCatalog) -> None:
        result = service.add_artist_to_playlist("Miles Davis", "p1")

        assert result.success
        assert result.artist.name == "Miles Davis"
        assert len(result.tracks_added) == 5
        assert result.message == "Successfully added Miles Davis's top tracks to playlist"
        assert miles_catalog.added == [
            ("p1", ["t-so-what", "t-blue", "t-freddie", "t-round", "t-bitches"])
        ]

    def test_refuses_when_tracks_already_present(
        self, service: PlaylistService, miles_catalog: FakeCatalog
    ) -> None:
        """Existing tracks block the add unless forced."""
        miles_catalog.playlist_tracks["p1"] = {"t-blue"}

        result = service.add_artist_to_playlist("Miles Davis", "p1")

        assert not result.success
        assert result.was_duplicate
        assert "Add Anyway" in result.message
        assert miles_catalog.added == []

    def test_force_skips_duplicate_check(
        self, service: PlaylistService, miles_catalog: FakeCatalog
    ) -> None:
        miles_catalog.playlist_tracks["p1"] = {"t-blue"}

        result = service.add_artist_to_playlist("Miles Davis", "p1", force=True)

        assert result.success
        assert miles_catalog.check_calls == []
        assert len(miles_catalog.added) == 1

    def test_failed_duplicate_check_does_not_block(
        self, service: PlaylistService, miles_catalog: FakeCatalog
    ) -> None:
        miles_catalog.check_error = CatalogError("playlist read failed", status_code=500)

        result = service.add_artist_to_playlist("Miles Davis", "p1")

        assert result.success

    def test_artist_without_tracks(self, service: PlaylistService, miles_catalog: FakeCatalog) -> None:
        miles_catalog.add_artist(Artist(id="quiet", name="Quiet Trio"), [])

        result = service.add_artist_to_playlist("Quiet Trio", "p1")

        assert not result.success
        assert result.message == "Artist has no tracks available"

    def test_unknown_artist_raises(self, service: PlaylistService) -> None:
        with pytest.raises(NoArtistError):
            service.add_artist_to_playlist("Nobody At All", "p1")

    def test_rate_limited_write(self, service: PlaylistService, miles_catalog: FakeCatalog) -> None:
        """Write failures are reported on the result, not raised."""
        miles_catalog.add_error = RateLimitedError()

        result = service.add_artist_to_playlist("Miles Davis", "p1")

        assert not result.success
        assert not result.was_duplicate
        assert result.message == "Rate limited by Spotify API. Please try again later."

    def test_generic_write_failure(self, service: PlaylistService, miles_catalog: FakeCatalog) -> None:
        miles_catalog.add_error = CatalogError("forbidden", status_code=403)

        result = service.add_artist_to_playlist("Miles Davis", "p1")

        assert result.message == "Failed to add tracks to playlist: forbidden"

    def test_without_duplicate_service(self, miles_catalog: FakeCatalog) -> None:
        """No duplicate service means no destination check."""
        service = PlaylistService(miles_catalog)

        result = service.add_artist_to_playlist("Miles Davis", "p1")

        assert result.success
        assert miles_catalog.check_calls == []


class TestPlaylistListing:
    """Tests for listing and filtering playlists."""

    def test_get_incoming_playlists(self, service: PlaylistService, miles_catalog: FakeCatalog) -> None:
        miles_catalog.playlists = [Playlist(id="p1", name="Incoming Jazz")]

        assert [p.id for p in service.get_incoming_playlists()] == ["p1"]

    def test_get_top_tracks(self, service: PlaylistService) -> None:
        assert [t.id for t in service.get_top_tracks("miles")][:2] == ["t-so-what", "t-blue"]

    def test_filter_is_case_insensitive(self, service: PlaylistService) -> None:
        playlists = [
            Playlist(id="1", name="KMHD-2025-10"),
            Playlist(id="2", name="Morning Coffee"),
            Playlist(id="3", name="kmhd favourites"),
        ]

        filtered = service.filter_playlists_by_search(playlists, "KmHd")

        assert [p.id for p in filtered] == ["1", "3"]

    def test_empty_filter_returns_all(self, service: PlaylistService) -> None:
        playlists = [Playlist(id="1", name="A"), Playlist(id="2", name="B")]

        assert service.filter_playlists_by_search(playlists, "") == playlists
