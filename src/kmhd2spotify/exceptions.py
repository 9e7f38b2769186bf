"""Exception hierarchy for kmhd2spotify.

Feed, catalog, and writer failures each get their own branch so callers can
decide whether an error ends a whole cycle or only the current record.
"""

from enum import Enum
from typing import Optional


class Kmhd2SpotifyError(Exception):
    """Base exception for all kmhd2spotify errors."""

    pass


class ConfigError(Kmhd2SpotifyError):
    """Raised when configuration cannot be loaded or is invalid."""

    pass


# ==================== FEED ====================


class FeedError(Kmhd2SpotifyError):
    """Base exception for feed ingestion."""

    pass


class FetchError(FeedError):
    """Raised when the feed could not be fetched. Aborts the current cycle."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TransientFetchError(FetchError):
    """Network failure or 502/504 that outlasted the retry budget."""

    pass


class PermanentFetchError(FetchError):
    """Non-retryable status code or undecodable response body."""

    pass


class RecordParseError(FeedError):
    """Raised when a single feed entry cannot be turned into a record."""

    pass


# ==================== CATALOG ====================


class CatalogError(Kmhd2SpotifyError):
    """Base exception for catalog (Spotify) operations."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(CatalogError):
    """Raised when a catalog lookup returns nothing."""

    pass


class NoArtistError(NotFoundError):
    """Raised when an artist search has no results."""

    pass


class NoTracksError(CatalogError):
    """Raised when an artist has no top tracks."""

    pass


class RateLimitedError(CatalogError):
    """Raised when the catalog rate limits the request (HTTP 429)."""

    def __init__(self, message: str = "Rate limit exceeded (429)", retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__(message, status_code=429)


class AuthenticationError(CatalogError):
    """Raised when the catalog rejects our credentials."""

    pass


# ==================== WRITER ====================


class WriteErrorKind(Enum):
    GENERIC = "generic"
    RATE_LIMITED = "rate_limited"


class WriteError(Kmhd2SpotifyError):
    """Raised when tracks could not be written to the destination playlist."""

    kind = WriteErrorKind.GENERIC

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return f"Failed to add tracks to playlist: {self.cause or self}"


class RateLimitedWriteError(WriteError):
    """Write rejected because the destination is rate limiting us."""

    kind = WriteErrorKind.RATE_LIMITED

    @property
    def user_message(self) -> str:
        return "Rate limited by Spotify API. Please try again later."
