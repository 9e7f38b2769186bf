"""Interactive playlist management."""

from .service import PlaylistService

__all__ = ["PlaylistService"]
