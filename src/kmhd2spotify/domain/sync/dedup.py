"""
In-process dedup of feed records.

Two stores are consulted: one per cycle (fresh every cycle) and one for the
whole process lifetime. A record is new only if neither has seen its key.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from loguru import logger

from kmhd2spotify.domain.feed.models import FeedRecord

log = logger.bind(component="dedup")


class DedupStore(Protocol):
    """Set of song keys that have already been handled."""

    def seen(self, key: str) -> bool: ...

    def mark(self, key: str) -> None: ...

    def __len__(self) -> int: ...


class InMemoryDedupStore:
    """Dict-backed store remembering when each key was first seen.

    Never pruned; lives as long as the object does.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._first_seen: Dict[str, datetime] = {}

    def seen(self, key: str) -> bool:
        return key in self._first_seen

    def mark(self, key: str) -> None:
        self._first_seen.setdefault(key, self._clock())

    def first_seen(self, key: str) -> Optional[datetime]:
        return self._first_seen.get(key)

    def __len__(self) -> int:
        return len(self._first_seen)

    def __contains__(self, key: str) -> bool:
        return self.seen(key)


def song_key(record: FeedRecord) -> str:
    return f"{record.artist} - {record.title}"


def filter_new_songs(
    records: Iterable[FeedRecord],
    cycle_store: DedupStore,
    global_store: DedupStore,
) -> List[FeedRecord]:
    """
    Return records not yet seen in this cycle or earlier in the process.

    Invalid records are dropped. Every returned record is marked in both stores,
    so repeats within the same batch are also filtered.
    """
    records = list(records)
    new_songs: List[FeedRecord] = []

    log.debug(
        f"Filtering {len(records)} songs (cycle seen: {len(cycle_store)}, global seen: {len(global_store)})"
    )

    for index, record in enumerate(records):
        if not record.is_valid():
            log.debug(f"Skipping invalid song at index {index}: {record.raw_text!r}")
            continue

        key = song_key(record)
        if cycle_store.seen(key):
            log.debug(f"Song already seen in this cycle, skipping: {key}")
            continue
        if global_store.seen(key):
            log.debug(f"Song already seen in a previous cycle, skipping: {key}")
            continue

        cycle_store.mark(key)
        global_store.mark(key)
        new_songs.append(record)
        log.debug(f"Song marked as new for processing: {key}")

    log.debug(f"Song filtering completed: {len(new_songs)} new of {len(records)}")
    return new_songs
