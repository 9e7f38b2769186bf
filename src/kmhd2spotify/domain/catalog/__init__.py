"""Music catalog models and the service interface the sync engine talks to."""

from .models import AddResult, Album, Artist, DuplicateResult, Playlist, Track
from .service import CatalogService

__all__ = [
    "AddResult",
    "Album",
    "Artist",
    "CatalogService",
    "DuplicateResult",
    "Playlist",
    "Track",
]
