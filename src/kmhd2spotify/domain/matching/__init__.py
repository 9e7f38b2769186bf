"""Weighted fuzzy matching of feed records to catalog tracks."""

from .confidence import album_confidence, match_confidence, overall_confidence
from .searcher import FuzzySongSearcher, SongMatch

__all__ = [
    "FuzzySongSearcher",
    "SongMatch",
    "album_confidence",
    "match_confidence",
    "overall_confidence",
]
