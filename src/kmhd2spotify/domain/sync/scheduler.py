"""
Sync scheduler: fetch -> dedup -> match -> destination check -> write.

One cycle processes records strictly in feed order. Continuous mode repeats
cycles forever, sleeping a jittered interval between them.
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional

from loguru import logger
from rich.table import Table

from kmhd2spotify.core.console import get_console
from kmhd2spotify.core.output import log
from kmhd2spotify.domain.catalog.models import Playlist
from kmhd2spotify.domain.catalog.service import CatalogService
from kmhd2spotify.domain.feed.client import KMHDFeedClient
from kmhd2spotify.domain.feed.models import FeedRecord
from kmhd2spotify.domain.matching.searcher import FuzzySongSearcher, SongMatch
from kmhd2spotify.domain.sync.dedup import (
    DedupStore,
    InMemoryDedupStore,
    filter_new_songs,
)
from kmhd2spotify.domain.sync.duplicates import DuplicateService
from kmhd2spotify.domain.sync.writer import PlaylistWriter
from kmhd2spotify.exceptions import CatalogError, FetchError, WriteError

DEFAULT_INTERVAL = timedelta(hours=1)
DEFAULT_JITTER = timedelta(hours=1)
DEFAULT_MIN_CONFIDENCE = 0.5


class SyncStatus(Enum):
    SYNCED = "synced"
    NO_MATCH = "no_match"
    LOW_CONFIDENCE = "low_confidence"
    DUPLICATE = "duplicate"
    WRITE_FAILED = "write_failed"
    ERROR = "error"


SKIPPED_STATUSES = (SyncStatus.NO_MATCH, SyncStatus.LOW_CONFIDENCE, SyncStatus.DUPLICATE)
FAILED_STATUSES = (SyncStatus.WRITE_FAILED, SyncStatus.ERROR)


@dataclass
class RecordOutcome:
    record: FeedRecord
    status: SyncStatus
    detail: str = ""
    match: Optional[SongMatch] = None


@dataclass
class CycleSummary:
    """Tally for one cycle. error is set when the cycle aborted early."""

    processed: int = 0
    synced: int = 0
    skipped: int = 0
    failed: int = 0
    playlist_name: str = ""
    outcomes: List[RecordOutcome] = field(default_factory=list)
    error: Optional[str] = None

    def add(self, outcome: RecordOutcome) -> None:
        self.outcomes.append(outcome)
        self.processed += 1
        if outcome.status is SyncStatus.SYNCED:
            self.synced += 1
        elif outcome.status in SKIPPED_STATUSES:
            self.skipped += 1
        else:
            self.failed += 1


def calculate_next_sync_time(base: timedelta, jitter_seconds: int = 3600) -> timedelta:
    """Base interval plus a uniformly random 0..jitter_seconds-1 offset."""
    if jitter_seconds <= 0:
        return base
    return base + timedelta(seconds=secrets.randbelow(jitter_seconds))


class SyncScheduler:
    """Drives sync cycles from the KMHD feed into the monthly playlist."""

    def __init__(
        self,
        feed: KMHDFeedClient,
        searcher: FuzzySongSearcher,
        catalog: CatalogService,
        writer: PlaylistWriter,
        playlist_prefix: str = "",
        interval: timedelta = DEFAULT_INTERVAL,
        jitter: timedelta = DEFAULT_JITTER,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        global_store: Optional[DedupStore] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Optional[Callable[[], datetime]] = None,
        duplicates: Optional[DuplicateService] = None,
    ):
        self.feed = feed
        self.searcher = searcher
        self.catalog = catalog
        self.writer = writer
        self.playlist_prefix = playlist_prefix
        self.interval = interval
        self.jitter = jitter
        self.min_confidence = min_confidence
        # Process-lifetime store, shared by every cycle
        self.global_store = global_store if global_store is not None else InMemoryDedupStore()
        self.duplicates = duplicates or DuplicateService(catalog)
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now().astimezone())
        self.log = logger.bind(component="scheduler")

    def run_once(self) -> CycleSummary:
        """Single-pass mode: one cycle with a fresh cycle store."""
        self.log.info("Starting single KMHD to Spotify sync operation")
        return self.run_cycle(InMemoryDedupStore())

    def run_continuous(self) -> None:
        """Run a cycle now, then forever on a jittered interval. Never returns."""
        self.log.info(f"Starting continuous sync mode (interval {self.interval})")
        log(
            f"🎵 Monitoring KMHD every {self.interval} (with randomization) for new songs...\n"
            "Press Ctrl+C to stop\n",
            level="info",
        )

        self._run_cycle_guarded()
        while True:
            delay = calculate_next_sync_time(self.interval, int(self.jitter.total_seconds()))
            next_sync = self._clock() + delay
            log(
                f"⏰ Next sync scheduled for: {next_sync:%Y-%m-%d %H:%M:%S} (in {delay})",
                level="info",
            )
            self._sleep(delay.total_seconds())

            self.log.debug("Running scheduled sync check")
            self._run_cycle_guarded()

    def _run_cycle_guarded(self) -> Optional[CycleSummary]:
        try:
            return self.run_cycle(InMemoryDedupStore())
        except Exception:
            # Keep the loop alive; the next cycle starts from scratch
            self.log.exception("Unexpected error during sync cycle")
            return None

    def run_cycle(self, cycle_store: DedupStore) -> CycleSummary:
        """
        Run one fetch -> match -> dedup -> write pass.

        Fetch and playlist-resolution failures end the cycle early with
        summary.error set. Per-record failures never stop the batch.
        """
        summary = CycleSummary()

        try:
            playlist = self.writer.resolve_or_create_period_playlist(self.playlist_prefix)
        except CatalogError as e:
            self.log.error(f"Failed to get or create monthly playlist: {e}")
            summary.error = str(e)
            return summary
        summary.playlist_name = playlist.name
        self.log.debug(f"Using playlist {playlist.name} as sync target")

        try:
            collection = self.feed.fetch(self._clock())
        except FetchError as e:
            self.log.error(f"Failed to fetch KMHD playlist from API: {e}")
            summary.error = str(e)
            return summary

        if not collection.songs:
            self.log.debug("No songs found in KMHD playlist")
            return summary

        new_songs = filter_new_songs(collection.songs, cycle_store, self.global_store)
        if not new_songs:
            self.log.debug("No new songs found")
            return summary

        self.log.info(f"Found {len(new_songs)} new songs to sync")

        for index, record in enumerate(new_songs, start=1):
            log(f"🎵 Found on KMHD: {record}", level="info")
            self.log.debug(f"Processing song {index}/{len(new_songs)}: {record}")
            try:
                outcome = self._process_record(record, playlist)
            except Exception as e:
                self.log.exception(f"Unexpected error processing {record}")
                log(f"   ❌ Error: {e}", level="error")
                outcome = RecordOutcome(record, SyncStatus.ERROR, str(e))
            summary.add(outcome)

        self._print_summary(summary)
        return summary

    def _process_record(self, record: FeedRecord, playlist: Playlist) -> RecordOutcome:
        try:
            match = self.searcher.find_best_match(record.artist, record.title, record.album)
        except (CatalogError, ValueError) as e:
            self.log.warning(f"Failed to find song match for {record}, skipping: {e}")
            log(f"   ❌ Could not find song on Spotify: {e}", level="info")
            return RecordOutcome(record, SyncStatus.NO_MATCH, str(e))

        if match.overall_confidence < self.min_confidence:
            self.log.debug(
                f"Low confidence match for {record}: overall={match.overall_confidence:.3f} "
                f"artist={match.artist_confidence:.3f} song={match.song_confidence:.3f}"
            )
            log(
                f"   ❌ Low confidence match ({match.overall_confidence:.2f}), skipping",
                level="info",
            )
            return RecordOutcome(
                record,
                SyncStatus.LOW_CONFIDENCE,
                f"confidence {match.overall_confidence:.2f}",
                match,
            )

        log(
            f"   🎯 Found match: {match.artist.name} - {match.track.name} "
            f"(artist: {match.artist_confidence:.2f}, song: {match.song_confidence:.2f}, "
            f"overall: {match.overall_confidence:.2f})",
            level="info",
        )

        try:
            duplicate = self.duplicates.check_duplicates(playlist.id, [match.track])
        except CatalogError as e:
            self.log.warning(
                f"Failed to check existing tracks in {playlist.name}, attempting to add anyway: {e}"
            )
        else:
            if duplicate.has_duplicates:
                log(f"   ⏭️  Track already in playlist: {match.track.name}", level="info")
                return RecordOutcome(record, SyncStatus.DUPLICATE, duplicate.message, match)

        try:
            self.writer.write(playlist.id, [match.track.id])
        except WriteError as e:
            log(f"   ❌ Failed to add to playlist: {e.user_message}", level="info")
            return RecordOutcome(record, SyncStatus.WRITE_FAILED, e.user_message, match)

        self.log.info(f"Successfully synced {record} -> {match.track.name} ({playlist.name})")
        log(f"   ✅ Added to playlist: {match.track.name}", level="info")
        return RecordOutcome(record, SyncStatus.SYNCED, match.track.name, match)

    def _print_summary(self, summary: CycleSummary) -> None:
        if summary.processed == 0:
            return

        self.log.info(
            f"Sync summary: processed={summary.processed} synced={summary.synced} "
            f"skipped={summary.skipped} failed={summary.failed} playlist={summary.playlist_name}"
        )

        table = Table(title="📊 Sync Summary", show_header=False)
        table.add_column("Metric", style="bold")
        table.add_column("Value")
        table.add_row("Songs processed", str(summary.processed))
        table.add_row("Songs synced", str(summary.synced), style="green")
        table.add_row("Songs skipped", str(summary.skipped), style="yellow")
        table.add_row("Songs failed", str(summary.failed), style="red")
        table.add_row("Target playlist", summary.playlist_name)
        get_console().print(table)
