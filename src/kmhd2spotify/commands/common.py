"""Service wiring shared by the command handlers."""

from kmhd2spotify.core.config import Config
from kmhd2spotify.core.output import log
from kmhd2spotify.domain.catalog.providers.spotify import (
    SpotifyCatalog,
    TokenManager,
    authenticate,
)
from kmhd2spotify.exceptions import ConfigError


def build_token_manager(config: Config) -> TokenManager:
    if not config.spotify.client_id or not config.spotify.client_secret:
        raise ConfigError(
            "SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET must be set to talk to Spotify"
        )
    return TokenManager(config.spotify)


def build_catalog(config: Config, interactive_auth: bool = True) -> SpotifyCatalog:
    """Create an authenticated Spotify client, running the auth flow if no token is stored.

    Raises:
        ConfigError: If Spotify credentials are missing
        AuthenticationError: If authentication is needed and fails
    """
    tokens = build_token_manager(config)

    if not tokens.is_authenticated() and interactive_auth:
        log("🔐 Spotify authentication required. Starting authentication flow...", level="info")
        authenticate(config.spotify, config.server)
        tokens.invalidate()
        log("✅ Spotify authentication completed successfully", level="info")

    return SpotifyCatalog(tokens.access_token)
