"""
Spotify OAuth 2.0 authentication and token management.

Handles the authorization-code + PKCE flow, token refresh, and secure token storage.
"""

import base64
import hashlib
import json
import secrets
import threading
import webbrowser
from datetime import datetime, timedelta
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import requests
from loguru import logger

from kmhd2spotify.core.config import ServerConfig, SpotifyConfig
from kmhd2spotify.core.output import log
from kmhd2spotify.exceptions import AuthenticationError

# Spotify OAuth URLs
AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"

SPOTIFY_SCOPES = [
    "user-read-private",
    "playlist-read-private",
    "playlist-modify-private",
    "playlist-modify-public",
]

CALLBACK_TIMEOUT = 300  # seconds
EXPIRY_BUFFER = timedelta(minutes=5)


def generate_pkce() -> Dict[str, str]:
    """Generate PKCE code verifier and challenge."""
    code_verifier = (
        base64.urlsafe_b64encode(secrets.token_bytes(32)).decode("utf-8").rstrip("=")
    )
    challenge_bytes = hashlib.sha256(code_verifier.encode("utf-8")).digest()
    code_challenge = (
        base64.urlsafe_b64encode(challenge_bytes).decode("utf-8").rstrip("=")
    )

    return {"code_verifier": code_verifier, "code_challenge": code_challenge}


def build_authorize_url(
    config: SpotifyConfig, code_challenge: str, csrf_state: str
) -> str:
    params = {
        "client_id": config.client_id,
        "response_type": "code",
        "redirect_uri": config.redirect_uri,
        "code_challenge_method": "S256",
        "code_challenge": code_challenge,
        "state": csrf_state,
        "scope": " ".join(SPOTIFY_SCOPES),
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def _basic_auth_header(config: SpotifyConfig) -> Dict[str, str]:
    # Spotify requires Basic auth for token exchange and refresh
    credentials = base64.b64encode(
        f"{config.client_id}:{config.client_secret}".encode("utf-8")
    ).decode("utf-8")
    return {"Authorization": f"Basic {credentials}"}


def _stamp_expiry(token_data: Dict[str, Any]) -> datetime:
    expires_in = token_data.get("expires_in", 3600)  # Default 1 hour
    expires_at = datetime.now() + timedelta(seconds=expires_in)
    token_data["expires_at"] = expires_at.isoformat()
    return expires_at


def load_token(token_file: Path) -> Optional[Dict[str, Any]]:
    """Load OAuth tokens from file. Missing or unreadable files yield None."""
    if not token_file.exists():
        return None

    try:
        with open(token_file) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load Spotify tokens from {token_file}: {e}")
        return None


def save_token(token_file: Path, token_data: Dict[str, Any]) -> None:
    """Save OAuth tokens atomically with owner-only permissions."""
    temp_file = token_file.with_suffix(token_file.suffix + ".tmp")

    with open(temp_file, "w") as f:
        json.dump(token_data, f, indent=2)

    # Set file permissions to 0600 (owner read/write only)
    temp_file.chmod(0o600)
    temp_file.replace(token_file)
    logger.debug(f"Saved Spotify tokens to {token_file}")


def is_token_expired(token_data: Dict[str, Any]) -> bool:
    """Check if token is expired (with 5-minute buffer)."""
    if "expires_at" not in token_data:
        return True

    expires_at = datetime.fromisoformat(token_data["expires_at"])
    return datetime.now() >= (expires_at - EXPIRY_BUFFER)


def refresh_token(
    config: SpotifyConfig, token_data: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Refresh an expired OAuth token.

    Args:
        config: Spotify credentials
        token_data: Current token data with refresh_token

    Returns:
        New token data or None if refresh fails
    """
    refresh_token_value = token_data.get("refresh_token")

    if not config.client_id or not config.client_secret or not refresh_token_value:
        logger.warning("Missing credentials or refresh token for Spotify token refresh")
        return None

    try:
        response = requests.post(
            TOKEN_URL,
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token_value,
            },
            headers=_basic_auth_header(config),
            timeout=30,
        )
        response.raise_for_status()
        new_token_data = response.json()
    except requests.HTTPError as e:
        logger.warning(f"Failed to refresh Spotify token: {e}")
        if e.response is not None:
            logger.error(f"Spotify token refresh error: {e.response.text}")
        return None
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Failed to refresh Spotify token: {e}")
        return None

    expires_at = _stamp_expiry(new_token_data)

    # Preserve refresh token if not included in response
    if "refresh_token" not in new_token_data:
        new_token_data["refresh_token"] = refresh_token_value

    logger.info(f"Spotify token refreshed successfully, expires: {expires_at}")
    return new_token_data


def exchange_code(
    config: SpotifyConfig, code: str, code_verifier: str
) -> Dict[str, Any]:
    """Exchange an authorization code for tokens.

    Raises:
        AuthenticationError: If Spotify rejects the exchange
    """
    try:
        response = requests.post(
            TOKEN_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": config.redirect_uri,
                "code_verifier": code_verifier,
            },
            headers=_basic_auth_header(config),
            timeout=30,
        )
        response.raise_for_status()
        token_data = response.json()
    except requests.HTTPError as e:
        logger.exception("Token exchange HTTP error")
        detail = e.response.text if e.response is not None else str(e)
        raise AuthenticationError(f"failed to exchange code for token: {detail}") from e
    except (requests.RequestException, ValueError) as e:
        logger.exception("Token exchange failed")
        raise AuthenticationError(f"failed to exchange code for token: {e}") from e

    _stamp_expiry(token_data)
    return token_data


def _parse_host_port(address: str):
    host, _, port = address.rpartition(":")
    return host or "127.0.0.1", int(port)


def wait_for_callback(server_config: ServerConfig, timeout: int = CALLBACK_TIMEOUT) -> Dict[str, Optional[str]]:
    """Serve a single OAuth callback request and return its query parameters.

    Raises:
        AuthenticationError: If no callback arrives before the timeout
    """
    auth_result: Dict[str, Optional[str]] = {"code": None, "state": None, "error": None}
    received = threading.Event()

    class CallbackHandler(BaseHTTPRequestHandler):
        def do_GET(self):
            params = parse_qs(urlparse(self.path).query)
            auth_result["code"] = params.get("code", [None])[0]
            auth_result["state"] = params.get("state", [None])[0]
            auth_result["error"] = params.get("error", [None])[0]

            self.send_response(200)
            self.send_header("Content-type", "text/html")
            self.end_headers()

            if auth_result["code"]:
                html = """
                <html><body style="font-family: sans-serif; text-align: center; padding: 50px;">
                <h1 style="color: #28a745;">✓ Authentication Successful!</h1>
                <p>You can close this window and return to kmhd2spotify.</p>
                </body></html>
                """
            else:
                error_msg = auth_result["error"] or "Unknown error"
                html = f"""
                <html><body style="font-family: sans-serif; text-align: center; padding: 50px;">
                <h1 style="color: #dc3545;">✗ Authentication Failed</h1>
                <p>Error: {error_msg}</p>
                </body></html>
                """
            self.wfile.write(html.encode())
            received.set()

        def log_message(self, format, *args):
            pass  # Suppress server logs

    host, port = _parse_host_port(server_config.address())
    server = HTTPServer((host, port), CallbackHandler)
    server.timeout = timeout
    server_thread = threading.Thread(target=server.handle_request, daemon=True)
    server_thread.start()
    log(f"Callback server listening on {host}:{port}", level="info")

    try:
        if not received.wait(timeout=timeout):
            raise AuthenticationError("authorization timeout - no response received")
    finally:
        server.server_close()

    return auth_result


def authenticate(
    config: SpotifyConfig,
    server_config: ServerConfig,
    open_browser: Callable[[str], bool] = webbrowser.open,
) -> Dict[str, Any]:
    """Run the interactive authorization flow and persist the resulting token.

    Returns:
        Token data as saved to the token file

    Raises:
        AuthenticationError: On missing credentials, timeout, denial, or CSRF mismatch
    """
    if not config.client_id or not config.client_secret:
        raise AuthenticationError("Spotify client ID and secret are required")
    if not config.redirect_uri:
        raise AuthenticationError("redirect URL is required but not configured")

    pkce = generate_pkce()
    csrf_state = (
        base64.urlsafe_b64encode(secrets.token_bytes(32)).decode("utf-8").rstrip("=")
    )
    auth_url = build_authorize_url(config, pkce["code_challenge"], csrf_state)

    log("🔐 Starting Spotify authentication...", level="info")
    logger.debug(f"Authorization URL: {auth_url}")

    if open_browser(auth_url):
        log("✓ Browser opened for authorization", level="info")
    else:
        log("⚠ Could not open browser automatically", level="warning")
        log(f"Please open this URL in your browser:\n\n{auth_url}\n", level="info")

    log(f"⏳ Waiting for authorization ({CALLBACK_TIMEOUT} seconds timeout)...", level="info")
    try:
        result = wait_for_callback(server_config)
    except OSError as e:
        raise AuthenticationError(f"could not start callback server: {e}") from e

    if result["error"]:
        raise AuthenticationError(f"authorization error: {result['error']}")
    if not result["code"]:
        raise AuthenticationError("no authorization code received")
    if result["state"] != csrf_state:
        logger.error(f"CSRF state mismatch: expected {csrf_state}, got {result['state']}")
        raise AuthenticationError("invalid state parameter")

    log("🔄 Exchanging authorization code for access token...", level="info")
    token_data = exchange_code(config, result["code"], pkce["code_verifier"])

    token_file = config.resolve_token_file_path()
    save_token(token_file, token_data)
    log(f"💾 Authentication token saved to {token_file}", level="info")
    return token_data


class TokenManager:
    """Supplies a valid access token, refreshing and persisting it as needed."""

    def __init__(self, config: SpotifyConfig, token_file: Optional[Path] = None):
        self.config = config
        self.token_file = token_file or config.resolve_token_file_path()
        self._token_data: Optional[Dict[str, Any]] = None

    def is_authenticated(self) -> bool:
        return self._load() is not None

    def _load(self) -> Optional[Dict[str, Any]]:
        if self._token_data is None:
            self._token_data = load_token(self.token_file)
        return self._token_data

    def access_token(self) -> str:
        """Return a valid access token.

        Raises:
            AuthenticationError: If no token is stored or refresh fails
        """
        token_data = self._load()
        if not token_data or not token_data.get("access_token"):
            raise AuthenticationError(
                "user not authenticated to Spotify, run 'kmhd2spotify auth' first"
            )

        if is_token_expired(token_data):
            logger.info("Spotify token expired, attempting refresh")
            new_token_data = refresh_token(self.config, token_data)
            if new_token_data is None:
                raise AuthenticationError("failed to refresh Spotify token, re-authenticate")
            save_token(self.token_file, new_token_data)
            self._token_data = new_token_data

        return self._token_data["access_token"]

    def invalidate(self) -> None:
        """Force the next access_token() call to re-read the token file."""
        self._token_data = None
