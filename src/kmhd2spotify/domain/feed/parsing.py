"""
Tolerant parsing of KMHD playlist entries.

Entries are heterogeneous: most carry full iTunes metadata, some only the
basic fields, and a few have unexpected types. Each entry is tried against a
fixed sequence of shapes (complete, minimal, generic key/value) and the first
one yielding an artist and a title wins.
"""

import json
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kmhd2spotify.domain.feed.models import FeedRecord, SongCollection
from kmhd2spotify.exceptions import RecordParseError

log = logger.bind(component="kmhd_parser")

# Tried in order; %z accepts both "Z" and "+07:00"
TIMESTAMP_FORMATS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
)


class CompleteTrack(BaseModel):
    """Entry with the scheduling fields and iTunes metadata."""

    model_config = ConfigDict(strict=True, populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")
    duration: int = Field(alias="_duration")
    start_time: str = Field(alias="_start_time")
    artist_name: str = Field(alias="artistName")
    track_name: str = Field(alias="trackName")
    collection_name: str = Field(default="", alias="collectionName")
    artist_id: int = Field(default=0, alias="artistId")
    collection_id: int = Field(default=0, alias="collectionId")
    track_id: int = Field(default=0, alias="trackId")
    preview_url: str = Field(default="", alias="previewUrl")
    artwork_url_100: str = Field(default="", alias="artworkUrl100")
    release_date: str = Field(default="", alias="releaseDate")
    primary_genre: str = Field(default="", alias="primaryGenreName")


class MinimalTrack(BaseModel):
    """Entry with only the fields needed to build a record."""

    model_config = ConfigDict(strict=True, populate_by_name=True, extra="ignore")

    artist_name: str = Field(alias="artistName")
    track_name: str = Field(alias="trackName")
    collection_name: str = Field(default="", alias="collectionName")
    start_time: str = Field(default="", alias="_start_time")


class GenericTrack:
    """Last resort: pick string values out of an arbitrary JSON object."""

    def __init__(self, raw: dict):
        self.artist_name = _string_field(raw, "artistName")
        self.track_name = _string_field(raw, "trackName")
        self.collection_name = _string_field(raw, "collectionName")
        self.start_time = _string_field(raw, "_start_time")


def _string_field(raw: dict, key: str) -> str:
    value = raw.get(key)
    return value if isinstance(value, str) else ""


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp using the known formats, or return None."""
    for fmt in TIMESTAMP_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def _to_record(shape: Any, raw_text: str, now: datetime) -> FeedRecord:
    played_at = now
    if shape.start_time:
        parsed = parse_timestamp(shape.start_time)
        if parsed is None:
            log.warning(f"Failed to parse timestamp {shape.start_time!r}, using current time")
        else:
            played_at = parsed

    return FeedRecord(
        artist=shape.artist_name.strip(),
        title=shape.track_name.strip(),
        album=shape.collection_name.strip(),
        played_at=played_at,
        raw_text=raw_text,
    )


def parse_track_object(raw: Any, now: Optional[datetime] = None) -> FeedRecord:
    """
    Turn one raw feed entry into a FeedRecord.

    Raises:
        RecordParseError: If no known shape yields a non-empty artist and title
    """
    now = now or datetime.now(timezone.utc)
    if not isinstance(raw, dict):
        raise RecordParseError(f"track entry is not an object: {type(raw).__name__}")

    raw_text = json.dumps(raw, ensure_ascii=False)

    for model in (CompleteTrack, MinimalTrack):
        try:
            shape = model.model_validate(raw)
        except ValidationError:
            continue
        if shape.artist_name and shape.track_name:
            return _to_record(shape, raw_text, now)

    shape = GenericTrack(raw)
    if not shape.artist_name or not shape.track_name:
        raise RecordParseError(
            f"missing required fields: artistName={shape.artist_name!r}, trackName={shape.track_name!r}"
        )
    return _to_record(shape, raw_text, now)


def parse_entries(raw_entries: Iterable[Any], now: Optional[datetime] = None) -> SongCollection:
    """
    Parse a feed response body into a SongCollection.

    Malformed entries are logged and skipped; they never fail the batch.
    """
    now = now or datetime.now(timezone.utc)
    collection = SongCollection(last_updated=now)

    for index, raw in enumerate(raw_entries):
        try:
            song = parse_track_object(raw, now=now)
        except RecordParseError as e:
            log.warning(f"Failed to parse track object at index {index}, skipping: {e}")
            continue

        if not song.is_valid():
            # Values are trimmed, so whitespace-only fields end up here
            log.warning(
                f"Invalid song parsed at index {index}: missing required fields "
                f"(artist: {song.artist!r}, title: {song.title!r})"
            )
            continue

        collection.add_song(song)
        log.debug(f"Parsed song: {song}")

    return collection
