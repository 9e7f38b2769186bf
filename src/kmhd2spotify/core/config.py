"""
Configuration management for kmhd2spotify
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from kmhd2spotify.exceptions import ConfigError

DEFAULT_API_ENDPOINT = "https://www.kmhd.org/pf/api/v3/content/fetch/playlist"


@dataclass
class SpotifyConfig:
    """Configuration for Spotify API integration."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://127.0.0.1:8080/callback"
    # Monthly playlists are named "{prefix}-YYYY-MM" (e.g., "KMHD-2025-10")
    playlist_name_prefix: str = ""
    token_file_path: str = "~/.config/kmhd2spotify/spotify_token.json"

    def resolve_token_file_path(self) -> Path:
        """Return the absolute token file path, creating its directory if needed."""
        token_path = Path(self.token_file_path).expanduser().resolve()
        token_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        return token_path


@dataclass
class KMHDConfig:
    """Configuration for the KMHD playlist JSON API."""

    api_endpoint: str = DEFAULT_API_ENDPOINT
    http_timeout: int = 30  # seconds
    timezone: str = "America/Los_Angeles"  # KMHD broadcasts from Portland


@dataclass
class ServerConfig:
    """Configuration for the temporary OAuth callback server."""

    host: str = "127.0.0.1"
    port: int = 8080

    def address(self) -> str:
        host = self.host or "127.0.0.1"
        port = self.port or 8080
        return f"{host}:{port}"


@dataclass
class SyncConfig:
    """Configuration for the sync scheduler."""

    interval_minutes: int = 60
    jitter_minutes: int = 60  # Random 0..jitter added to every interval
    min_confidence: float = 0.5


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = None  # default: ~/.local/share/kmhd2spotify/kmhd2spotify.log
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = True


@dataclass
class Config:
    """Main configuration object."""

    spotify: SpotifyConfig = field(default_factory=SpotifyConfig)
    kmhd: KMHDConfig = field(default_factory=KMHDConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "kmhd2spotify"
    return Path.home() / ".config" / "kmhd2spotify"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "kmhd2spotify"
    return Path.home() / ".local" / "share" / "kmhd2spotify"


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Current working directory
    2. XDG_CONFIG_HOME/kmhd2spotify (or ~/.config/kmhd2spotify)
    """
    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config
    return get_config_dir() / "config.toml"


def _load_env_files() -> None:
    from dotenv import load_dotenv

    # Existing environment always wins over .env values
    for env_path in (Path.cwd() / ".env", get_config_dir() / ".env"):
        if env_path.is_file():
            load_dotenv(env_path, override=False)


def _apply_env_overrides(config: Config) -> None:
    """Environment variables take priority over TOML values."""
    env = os.environ

    if env.get("SPOTIFY_CLIENT_ID"):
        config.spotify.client_id = env["SPOTIFY_CLIENT_ID"]
    if env.get("SPOTIFY_CLIENT_SECRET"):
        config.spotify.client_secret = env["SPOTIFY_CLIENT_SECRET"]
    if env.get("SPOTIFY_REDIRECT_URI"):
        config.spotify.redirect_uri = env["SPOTIFY_REDIRECT_URI"]
    if env.get("SPOTIFY_PLAYLIST_NAME_PREFIX"):
        config.spotify.playlist_name_prefix = env["SPOTIFY_PLAYLIST_NAME_PREFIX"]
    if env.get("SPOTIFY_TOKEN_FILE_PATH"):
        config.spotify.token_file_path = env["SPOTIFY_TOKEN_FILE_PATH"]

    if env.get("KMHD_API_ENDPOINT"):
        config.kmhd.api_endpoint = env["KMHD_API_ENDPOINT"]
    if env.get("KMHD_HTTP_TIMEOUT"):
        config.kmhd.http_timeout = _parse_int("KMHD_HTTP_TIMEOUT", env["KMHD_HTTP_TIMEOUT"])

    if env.get("SERVER_HOST"):
        config.server.host = env["SERVER_HOST"]
    if env.get("SERVER_PORT"):
        config.server.port = _parse_int("SERVER_PORT", env["SERVER_PORT"])

    if env.get("LOG_LEVEL"):
        config.logging.level = env["LOG_LEVEL"].upper()


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from .env, config.toml, and the environment.

    Priority order (highest first):
    1. Environment variables
    2. .env file in the current directory or config directory
    3. config.toml
    4. Defaults

    Raises:
        ConfigError: If the TOML file exists but cannot be parsed
    """
    _load_env_files()

    config_path = path or get_config_path()
    config = Config()

    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Error loading configuration from {config_path}: {e}") from e

        if "spotify" in toml_data:
            spotify_data = toml_data["spotify"]
            config.spotify = SpotifyConfig(
                client_id=spotify_data.get("client_id", config.spotify.client_id),
                client_secret=spotify_data.get(
                    "client_secret", config.spotify.client_secret
                ),
                redirect_uri=spotify_data.get(
                    "redirect_uri", config.spotify.redirect_uri
                ),
                playlist_name_prefix=spotify_data.get(
                    "playlist_name_prefix", config.spotify.playlist_name_prefix
                ),
                token_file_path=spotify_data.get(
                    "token_file_path", config.spotify.token_file_path
                ),
            )

        if "kmhd" in toml_data:
            kmhd_data = toml_data["kmhd"]
            config.kmhd = KMHDConfig(
                api_endpoint=kmhd_data.get("api_endpoint", config.kmhd.api_endpoint),
                http_timeout=kmhd_data.get("http_timeout", config.kmhd.http_timeout),
                timezone=kmhd_data.get("timezone", config.kmhd.timezone),
            )

        if "server" in toml_data:
            server_data = toml_data["server"]
            config.server = ServerConfig(
                host=server_data.get("host", config.server.host),
                port=server_data.get("port", config.server.port),
            )

        if "sync" in toml_data:
            sync_data = toml_data["sync"]
            config.sync = SyncConfig(
                interval_minutes=sync_data.get(
                    "interval_minutes", config.sync.interval_minutes
                ),
                jitter_minutes=sync_data.get(
                    "jitter_minutes", config.sync.jitter_minutes
                ),
                min_confidence=sync_data.get(
                    "min_confidence", config.sync.min_confidence
                ),
            )

        if "logging" in toml_data:
            logging_data = toml_data["logging"]
            log_file = logging_data.get("log_file")
            if log_file:
                log_file = str(Path(log_file).expanduser())
            config.logging = LoggingConfig(
                level=logging_data.get("level", config.logging.level).upper(),
                log_file=log_file,
                max_file_size_mb=logging_data.get(
                    "max_file_size_mb", config.logging.max_file_size_mb
                ),
                backup_count=logging_data.get(
                    "backup_count", config.logging.backup_count
                ),
                console_output=logging_data.get(
                    "console_output", config.logging.console_output
                ),
            )

    _apply_env_overrides(config)
    return config


def validate_config(config: Config) -> List[str]:
    """Validate configuration values.

    Returns:
        List of warnings (missing Spotify credentials never fail validation)

    Raises:
        ConfigError: If configuration values are invalid
    """
    errors = []
    warnings = []

    if not 1 <= config.server.port <= 65535:
        errors.append("server port must be between 1 and 65535")

    if not config.spotify.client_id:
        warnings.append(
            "SPOTIFY_CLIENT_ID is not set. The application will not be able to connect to Spotify."
        )
    if not config.spotify.client_secret:
        warnings.append(
            "SPOTIFY_CLIENT_SECRET is not set. The application will not be able to connect to Spotify."
        )

    if not config.kmhd.api_endpoint:
        errors.append("KMHD API endpoint is required")
    if config.kmhd.http_timeout <= 0:
        errors.append("KMHD HTTP timeout must be greater than 0")

    if config.sync.interval_minutes < 0:
        errors.append("sync interval must not be negative")
    if config.sync.jitter_minutes < 0:
        errors.append("sync jitter must not be negative")
    if not 0.0 <= config.sync.min_confidence <= 1.0:
        errors.append("min_confidence must be between 0.0 and 1.0")

    if errors:
        raise ConfigError("configuration errors:\n- " + "\n- ".join(errors))

    return warnings


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
