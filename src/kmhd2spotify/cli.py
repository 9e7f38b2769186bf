"""
kmhd2spotify CLI - Entry point

Parses arguments, loads configuration, sets up logging, and dispatches to
the command handlers.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from kmhd2spotify import __version__
from kmhd2spotify.core.config import ensure_directories, load_config, validate_config
from kmhd2spotify.core.output import log, setup_logging
from kmhd2spotify.exceptions import AuthenticationError, ConfigError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kmhd2spotify",
        description="Sync songs played on KMHD jazz radio into monthly Spotify playlists",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global options
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    sync_parser = subparsers.add_parser("sync", help="Sync the KMHD playlist to Spotify")
    sync_parser.add_argument(
        "-c",
        "--continuous",
        action="store_true",
        help="Run continuously, checking for new songs on a randomized interval",
    )
    sync_parser.add_argument(
        "-i",
        "--interval",
        type=int,
        metavar="MINUTES",
        help="Base interval between checks in continuous mode (default from config: 60)",
    )

    search_parser = subparsers.add_parser("search", help="Search today's KMHD playlist")
    search_parser.add_argument("query", help="Artist, title, or album text to look for")

    subparsers.add_parser("now-playing", help="Show the song KMHD is playing right now")

    subparsers.add_parser("auth", help="Authenticate with Spotify and store the token")

    add_parser = subparsers.add_parser(
        "add-artist", help="Add an artist's top tracks to a playlist"
    )
    add_parser.add_argument("artist", help="Artist name")
    add_parser.add_argument("--playlist", required=True, help="Spotify playlist ID")
    add_parser.add_argument(
        "--force", action="store_true", help="Add even if the artist is already in the playlist"
    )

    playlists_parser = subparsers.add_parser("playlists", help="List your Spotify playlists")
    playlists_parser.add_argument("--search", default="", help="Filter playlists by name")

    return parser


def run(args: argparse.Namespace) -> int:
    """Dispatch parsed arguments to a command handler.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    config = load_config(args.config)
    ensure_directories()
    setup_logging(config.logging, debug=args.debug)
    for warning in validate_config(config):
        log(f"⚠ {warning}", level="warning")

    if args.subcommand == "sync":
        from kmhd2spotify.commands.sync import handle_sync_command

        return handle_sync_command(config, continuous=args.continuous, interval_minutes=args.interval)

    elif args.subcommand == "search":
        from kmhd2spotify.commands.search import handle_search_command

        return handle_search_command(config, args.query)

    elif args.subcommand == "now-playing":
        from kmhd2spotify.commands.search import handle_now_playing_command

        return handle_now_playing_command(config)

    elif args.subcommand == "auth":
        from kmhd2spotify.commands.auth import handle_auth_command

        return handle_auth_command(config)

    elif args.subcommand == "add-artist":
        from kmhd2spotify.commands.playlist import handle_add_artist_command

        return handle_add_artist_command(config, args.artist, args.playlist, force=args.force)

    elif args.subcommand == "playlists":
        from kmhd2spotify.commands.playlist import handle_playlists_command

        return handle_playlists_command(config, args.search)

    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the kmhd2spotify command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.subcommand:
        parser.print_help()
        print("\nTry 'kmhd2spotify sync' to sync once, or 'kmhd2spotify sync -c' to keep syncing.")
        sys.exit(0)

    if args.subcommand == "sync" and args.interval is not None and args.interval < 0:
        parser.error("--interval must not be negative")

    try:
        sys.exit(run(args))
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except AuthenticationError as e:
        print(f"Authentication failed: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nStopped.")
        sys.exit(0)


if __name__ == "__main__":
    main()
