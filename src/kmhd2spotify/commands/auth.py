"""
Auth command: run the Spotify authorization flow and store the token.
"""

from kmhd2spotify.core.config import Config
from kmhd2spotify.core.output import log
from kmhd2spotify.domain.catalog.providers.spotify import authenticate


def handle_auth_command(config: Config) -> int:
    if not config.spotify.client_id or not config.spotify.client_secret:
        log("❌ Spotify credentials not configured", level="error")
        log("\nTo get Spotify API credentials:", level="info")
        log("1. Visit: https://developer.spotify.com/dashboard", level="info")
        log("2. Create an application", level="info")
        log(f"3. Add redirect URI: {config.spotify.redirect_uri}", level="info")
        log("4. Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET (or edit config.toml)", level="info")
        return 1

    authenticate(config.spotify, config.server)
    log("✓ Authentication successful!", level="info")
    return 0
