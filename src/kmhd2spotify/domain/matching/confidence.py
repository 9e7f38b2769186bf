"""
Confidence scoring between free-text feed fields and catalog names.

All scores are in [0.0, 1.0]. Comparison is case-insensitive and ignores
surrounding whitespace.
"""

from rapidfuzz import fuzz, process

from kmhd2spotify.domain.catalog.models import Track

# Overall confidence weights
WEIGHTS = {
    "artist": 0.50,
    "song": 0.35,
    "album": 0.15,
}

# Substring matches land in these bands
CONTAINS_BASE = 0.8
CONTAINED_BASE = 0.7
SUBSTRING_SPAN = 0.2

# Fuzzy matches are capped below any substring match
FUZZY_MAX = 0.7
FUZZY_MIN = 0.1
FUZZY_SCORE_CUTOFF = 40.0  # rapidfuzz 0-100 scale

NEUTRAL_ALBUM_CONFIDENCE = 0.5


def _normalize(value: str) -> str:
    return value.strip().lower()


def fuzzy_confidence(query: str, candidate: str) -> float:
    """Map rapidfuzz WRatio onto [0.1, 0.7]. No hit above the cutoff scores 0.1."""
    result = process.extractOne(
        query, [candidate], scorer=fuzz.WRatio, score_cutoff=FUZZY_SCORE_CUTOFF
    )
    if result is None:
        return FUZZY_MIN

    _, score, _ = result
    confidence = (score / 100.0) * FUZZY_MAX
    return min(FUZZY_MAX, max(FUZZY_MIN, confidence))


def match_confidence(query: str, candidate: str) -> float:
    """Score how well a catalog name matches a query string.

    - exact match: 1.0
    - candidate contains query: 0.8 + 0.2 * len(query)/len(candidate)
    - query contains candidate: 0.7 + 0.2 * len(candidate)/len(query)
    - otherwise fuzzy similarity in [0.1, 0.7]
    """
    norm_query = _normalize(query)
    norm_candidate = _normalize(candidate)

    if norm_query == norm_candidate:
        return 1.0

    if norm_query in norm_candidate:
        ratio = len(norm_query) / len(norm_candidate)
        return CONTAINS_BASE + ratio * SUBSTRING_SPAN

    if norm_candidate in norm_query:
        ratio = len(norm_candidate) / len(norm_query)
        return CONTAINED_BASE + ratio * SUBSTRING_SPAN

    return fuzzy_confidence(norm_query, norm_candidate)


def album_confidence(album_query: str, track: Track | None) -> float:
    """Album agreement, neutral (0.5) when either side has no album."""
    if not album_query.strip():
        return NEUTRAL_ALBUM_CONFIDENCE
    if track is None or not track.album.name.strip():
        return NEUTRAL_ALBUM_CONFIDENCE
    return match_confidence(album_query, track.album.name)


def overall_confidence(artist: float, song: float, album: float) -> float:
    return (
        artist * WEIGHTS["artist"]
        + song * WEIGHTS["song"]
        + album * WEIGHTS["album"]
    )
