"""Tests for the sync scheduler cycle and continuous loop."""

from datetime import datetime, timedelta, timezone
from typing import List
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeCatalog
from kmhd2spotify.domain.catalog.models import Playlist
from kmhd2spotify.domain.feed.models import FeedRecord, SongCollection
from kmhd2spotify.domain.matching.searcher import FuzzySongSearcher
from kmhd2spotify.domain.sync.dedup import InMemoryDedupStore
from kmhd2spotify.domain.sync.scheduler import (
    CycleSummary,
    RecordOutcome,
    SyncScheduler,
    SyncStatus,
    calculate_next_sync_time,
)
from kmhd2spotify.domain.sync.writer import PlaylistWriter
from kmhd2spotify.exceptions import (
    CatalogError,
    RateLimitedError,
    TransientFetchError,
)

NOW = datetime(2025, 10, 15, 10, 0, tzinfo=timezone.utc)


class StopLoop(Exception):
    """Raised by the injected sleep to break out of run_continuous."""


def record(artist: str, title: str, album: str = "") -> FeedRecord:
    return FeedRecord(artist=artist, title=title, album=album, played_at=NOW)


def make_feed(*records: FeedRecord) -> MagicMock:
    feed = MagicMock()
    feed.fetch.return_value = SongCollection(songs=list(records), last_updated=NOW)
    return feed


@pytest.fixture
def target(miles_catalog: FakeCatalog) -> Playlist:
    """This month's playlist, already present in the catalog."""
    playlist = Playlist(id="p1", name="KMHD-2025-10")
    miles_catalog.playlists.append(playlist)
    return playlist


def make_scheduler(catalog: FakeCatalog, feed: MagicMock, **kwargs) -> SyncScheduler:
    kwargs.setdefault("playlist_prefix", "KMHD")
    searcher = kwargs.pop("searcher", None) or FuzzySongSearcher(catalog)
    return SyncScheduler(
        feed=feed,
        searcher=searcher,
        catalog=catalog,
        writer=PlaylistWriter(catalog, clock=lambda: NOW),
        clock=lambda: NOW,
        **kwargs,
    )


class TestRunCycle:
    """Tests for a single cycle."""

    def test_failing_record_does_not_stop_batch(
        self, miles_catalog: FakeCatalog, target: Playlist
    ) -> None:
        """An unknown artist is skipped while the rest still sync."""
        feed = make_feed(
            record("Miles Davis", "So What", "Kind of Blue"),
            record("Unknown Artist", "Unknown Song"),
            record("Miles Davis", "Blue in Green"),
        )
        scheduler = make_scheduler(miles_catalog, feed)

        summary = scheduler.run_once()

        assert summary.error is None
        assert summary.processed == 3
        assert summary.synced == 2
        assert summary.skipped == 1
        assert summary.failed == 0
        assert summary.playlist_name == "KMHD-2025-10"
        assert [o.status for o in summary.outcomes] == [
            SyncStatus.SYNCED,
            SyncStatus.NO_MATCH,
            SyncStatus.SYNCED,
        ]
        assert miles_catalog.added == [("p1", ["t-so-what"]), ("p1", ["t-blue"])]
        feed.fetch.assert_called_once_with(NOW)

    def test_repeats_in_feed_are_processed_once(
        self, miles_catalog: FakeCatalog, target: Playlist
    ) -> None:
        feed = make_feed(record("Miles Davis", "So What"), record("Miles Davis", "So What"))
        scheduler = make_scheduler(miles_catalog, feed)

        summary = scheduler.run_once()

        assert summary.processed == 1
        assert len(miles_catalog.added) == 1

    def test_second_cycle_skips_seen_songs(
        self, miles_catalog: FakeCatalog, target: Playlist
    ) -> None:
        """The process-wide store filters songs already handled."""
        feed = make_feed(record("Miles Davis", "So What"))
        scheduler = make_scheduler(miles_catalog, feed)

        first = scheduler.run_once()
        second = scheduler.run_once()

        assert first.synced == 1
        assert second.processed == 0
        assert len(miles_catalog.added) == 1

    def test_shared_global_store(self, miles_catalog: FakeCatalog, target: Playlist) -> None:
        global_store = InMemoryDedupStore()
        global_store.mark("Miles Davis - So What")
        feed = make_feed(record("Miles Davis", "So What"))
        scheduler = make_scheduler(miles_catalog, feed, global_store=global_store)

        assert scheduler.run_once().processed == 0

    def test_low_confidence_is_skipped(
        self, miles_catalog: FakeCatalog, target: Playlist
    ) -> None:
        """Matches under the threshold are never written."""
        feed = make_feed(record("Miles Davis", "So Wut"))
        scheduler = make_scheduler(miles_catalog, feed, min_confidence=0.95)

        summary = scheduler.run_once()

        outcome = summary.outcomes[0]
        assert outcome.status is SyncStatus.LOW_CONFIDENCE
        assert outcome.match is not None
        assert outcome.match.overall_confidence < 0.95
        assert summary.skipped == 1
        assert miles_catalog.added == []

    def test_track_already_in_playlist(
        self, miles_catalog: FakeCatalog, target: Playlist
    ) -> None:
        miles_catalog.playlist_tracks["p1"] = {"t-so-what"}
        feed = make_feed(record("Miles Davis", "So What"))
        scheduler = make_scheduler(miles_catalog, feed)

        summary = scheduler.run_once()

        assert summary.outcomes[0].status is SyncStatus.DUPLICATE
        assert summary.skipped == 1
        assert miles_catalog.added == []

    def test_failed_duplicate_check_still_writes(
        self, miles_catalog: FakeCatalog, target: Playlist
    ) -> None:
        """A broken destination check does not block the write."""
        miles_catalog.check_error = CatalogError("check failed", status_code=500)
        feed = make_feed(record("Miles Davis", "So What"))
        scheduler = make_scheduler(miles_catalog, feed)

        summary = scheduler.run_once()

        assert summary.outcomes[0].status is SyncStatus.SYNCED
        assert miles_catalog.added == [("p1", ["t-so-what"])]

    def test_write_failure_counts_as_failed(
        self, miles_catalog: FakeCatalog, target: Playlist
    ) -> None:
        miles_catalog.add_error = RateLimitedError()
        feed = make_feed(record("Miles Davis", "So What"), record("Miles Davis", "Blue in Green"))
        scheduler = make_scheduler(miles_catalog, feed)

        summary = scheduler.run_once()

        assert [o.status for o in summary.outcomes] == [SyncStatus.WRITE_FAILED] * 2
        assert summary.failed == 2
        assert summary.outcomes[0].detail == "Rate limited by Spotify API. Please try again later."

    def test_unexpected_error_is_isolated(
        self, miles_catalog: FakeCatalog, target: Playlist
    ) -> None:
        """A crash while handling one record marks only that record."""
        real = FuzzySongSearcher(miles_catalog)
        searcher = MagicMock()

        def find_best_match(artist: str, song: str, album: str = ""):
            if song == "Explodes":
                raise RuntimeError("kaboom")
            return real.find_best_match(artist, song, album)

        searcher.find_best_match.side_effect = find_best_match
        feed = make_feed(record("Miles Davis", "Explodes"), record("Miles Davis", "So What"))
        scheduler = make_scheduler(miles_catalog, feed, searcher=searcher)

        summary = scheduler.run_once()

        assert [o.status for o in summary.outcomes] == [SyncStatus.ERROR, SyncStatus.SYNCED]
        assert summary.outcomes[0].detail == "kaboom"
        assert summary.failed == 1
        assert summary.synced == 1

    def test_fetch_error_aborts_cycle(self, miles_catalog: FakeCatalog, target: Playlist) -> None:
        feed = MagicMock()
        feed.fetch.side_effect = TransientFetchError("API returned status 502 after 3 attempts", 502)
        scheduler = make_scheduler(miles_catalog, feed)

        summary = scheduler.run_once()

        assert summary.error == "API returned status 502 after 3 attempts"
        assert summary.processed == 0
        assert miles_catalog.added == []

    def test_playlist_resolution_failure_aborts_before_fetch(
        self, miles_catalog: FakeCatalog
    ) -> None:
        """No prefix and no playlists means nothing to write to."""
        feed = make_feed(record("Miles Davis", "So What"))
        scheduler = make_scheduler(miles_catalog, feed, playlist_prefix="")

        summary = scheduler.run_once()

        assert summary.error is not None
        feed.fetch.assert_not_called()

    def test_creates_monthly_playlist_when_missing(self, miles_catalog: FakeCatalog) -> None:
        feed = make_feed(record("Miles Davis", "So What"))
        scheduler = make_scheduler(miles_catalog, feed)

        summary = scheduler.run_once()

        assert summary.playlist_name == "KMHD-2025-10"
        assert miles_catalog.added == [("created-1", ["t-so-what"])]

    def test_empty_feed(self, miles_catalog: FakeCatalog, target: Playlist) -> None:
        summary = make_scheduler(miles_catalog, make_feed()).run_once()

        assert summary.processed == 0
        assert summary.error is None


class TestCycleSummary:
    def test_add_tallies_by_status(self) -> None:
        summary = CycleSummary()
        r = record("A", "B")
        for status in SyncStatus:
            summary.add(RecordOutcome(r, status))

        assert summary.processed == 6
        assert summary.synced == 1
        assert summary.skipped == 3
        assert summary.failed == 2


class TestCalculateNextSyncTime:
    """Tests for jittered intervals."""

    def test_within_range(self) -> None:
        base = timedelta(hours=1)
        for _ in range(50):
            delay = calculate_next_sync_time(base, 3600)
            assert base <= delay < base + timedelta(hours=1)

    def test_uses_random_offset(self) -> None:
        with patch("kmhd2spotify.domain.sync.scheduler.secrets.randbelow", return_value=1234) as rand:
            delay = calculate_next_sync_time(timedelta(minutes=30), 600)

        rand.assert_called_once_with(600)
        assert delay == timedelta(minutes=30, seconds=1234)

    def test_no_jitter(self) -> None:
        assert calculate_next_sync_time(timedelta(minutes=5), 0) == timedelta(minutes=5)


class TestRunContinuous:
    """Tests for the continuous loop."""

    def test_runs_cycle_then_sleeps_jittered_interval(
        self, miles_catalog: FakeCatalog, target: Playlist
    ) -> None:
        sleeps: List[float] = []

        def sleep(seconds: float) -> None:
            sleeps.append(seconds)
            raise StopLoop()

        feed = make_feed(record("Miles Davis", "So What"))
        scheduler = make_scheduler(
            miles_catalog,
            feed,
            interval=timedelta(hours=1),
            jitter=timedelta(hours=1),
            sleep=sleep,
        )

        with patch("kmhd2spotify.domain.sync.scheduler.secrets.randbelow", return_value=120):
            with pytest.raises(StopLoop):
                scheduler.run_continuous()

        assert feed.fetch.call_count == 1
        assert sleeps == [3720.0]
        assert miles_catalog.added == [("p1", ["t-so-what"])]

    def test_cycle_crash_does_not_stop_loop(
        self, miles_catalog: FakeCatalog, target: Playlist
    ) -> None:
        """An unexpected cycle error is logged and the loop keeps going."""
        calls = {"sleep": 0}

        def sleep(seconds: float) -> None:
            calls["sleep"] += 1
            if calls["sleep"] == 2:
                raise StopLoop()

        feed = MagicMock()
        feed.fetch.side_effect = RuntimeError("unexpected")
        scheduler = make_scheduler(miles_catalog, feed, jitter=timedelta(0), sleep=sleep)

        with pytest.raises(StopLoop):
            scheduler.run_continuous()

        assert feed.fetch.call_count == 2
