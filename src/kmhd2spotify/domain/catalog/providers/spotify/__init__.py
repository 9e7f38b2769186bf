"""Spotify provider: Web API client and OAuth token handling."""

from .api import SpotifyCatalog
from .auth import TokenManager, authenticate

__all__ = ["SpotifyCatalog", "TokenManager", "authenticate"]
