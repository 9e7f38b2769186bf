"""KMHD feed ingestion: HTTP client, record shapes, and tolerant parsing."""

from .client import KMHDFeedClient
from .models import FeedRecord, SongCollection, search_songs
from .parsing import parse_entries, parse_timestamp, parse_track_object

__all__ = [
    "KMHDFeedClient",
    "FeedRecord",
    "SongCollection",
    "search_songs",
    "parse_entries",
    "parse_timestamp",
    "parse_track_object",
]
