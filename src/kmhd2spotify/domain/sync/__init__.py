"""Sync engine: dedup, destination checks, playlist writer, and scheduler."""

from .dedup import DedupStore, InMemoryDedupStore, filter_new_songs, song_key
from .duplicates import DuplicateService
from .scheduler import (
    CycleSummary,
    RecordOutcome,
    SyncScheduler,
    SyncStatus,
    calculate_next_sync_time,
)
from .writer import PlaylistWriter, classify_write_error, period_name

__all__ = [
    "CycleSummary",
    "DedupStore",
    "DuplicateService",
    "InMemoryDedupStore",
    "PlaylistWriter",
    "RecordOutcome",
    "SyncScheduler",
    "SyncStatus",
    "calculate_next_sync_time",
    "classify_write_error",
    "filter_new_songs",
    "period_name",
    "song_key",
]
