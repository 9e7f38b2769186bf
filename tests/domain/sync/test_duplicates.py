"""Tests for DuplicateService."""

from datetime import datetime

import pytest

from conftest import FakeCatalog, make_track
from kmhd2spotify.domain.sync.duplicates import DuplicateService
from kmhd2spotify.exceptions import CatalogError

CHECKED_AT = datetime(2025, 10, 15, 10, 30, 0)


@pytest.fixture
def service(miles_catalog: FakeCatalog) -> DuplicateService:
    return DuplicateService(miles_catalog, clock=lambda: CHECKED_AT)


class TestCheckDuplicates:
    """Tests for check_duplicates."""

    def test_empty_track_list_skips_catalog(
        self, service: DuplicateService, miles_catalog: FakeCatalog
    ) -> None:
        """Nothing to check means no catalog call at all."""
        result = service.check_duplicates("p1", [])

        assert not result.has_duplicates
        assert result.message == "No tracks to check"
        assert miles_catalog.check_calls == []

    def test_reports_existing_tracks(
        self, service: DuplicateService, miles_catalog: FakeCatalog
    ) -> None:
        miles_catalog.playlist_tracks["p1"] = {"t-blue"}
        tracks = [make_track("t-so-what", "So What"), make_track("t-blue", "Blue in Green")]

        result = service.check_duplicates("p1", tracks)

        assert result.has_duplicates
        assert [t.id for t in result.duplicate_tracks] == ["t-blue"]
        assert result.message == "Found 1 duplicate track(s): Blue in Green"
        assert result.last_added == CHECKED_AT
        assert miles_catalog.check_calls == [("p1", ["t-so-what", "t-blue"])]

    def test_no_duplicates(self, service: DuplicateService) -> None:
        result = service.check_duplicates("p1", [make_track("t-so-what", "So What")])

        assert not result.has_duplicates
        assert result.duplicate_tracks == []
        assert result.message == "No duplicate tracks found"

    def test_catalog_errors_propagate(
        self, service: DuplicateService, miles_catalog: FakeCatalog
    ) -> None:
        miles_catalog.check_error = CatalogError("boom", status_code=500)

        with pytest.raises(CatalogError):
            service.check_duplicates("p1", [make_track("t-so-what", "So What")])


class TestCheckArtistInPlaylist:
    """Tests for check_artist_in_playlist."""

    def test_artist_already_present(
        self, service: DuplicateService, miles_catalog: FakeCatalog
    ) -> None:
        """The message names the artist and suggests overriding."""
        miles_catalog.playlist_tracks["p1"] = {"t-so-what", "t-freddie"}

        result = service.check_artist_in_playlist("p1", "miles")

        assert result.has_duplicates
        assert result.artist_name == "Miles Davis"
        assert len(result.duplicate_tracks) == 2
        assert "Artist 'Miles Davis' already has 2 track(s)" in result.message
        assert "2025-10-15 10:30:00" in result.message
        assert "Add Anyway" in result.message

    def test_artist_not_present(self, service: DuplicateService) -> None:
        result = service.check_artist_in_playlist("p1", "miles")

        assert not result.has_duplicates
        assert result.message == "Artist 'Miles Davis' tracks not found in playlist, safe to add"

    def test_artist_without_tracks(
        self, service: DuplicateService, miles_catalog: FakeCatalog
    ) -> None:
        result = service.check_artist_in_playlist("p1", "unknown-artist")

        assert not result.has_duplicates
        assert result.message == "Artist has no tracks"
        assert miles_catalog.check_calls == []
