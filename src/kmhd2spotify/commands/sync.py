"""
Sync command: copy KMHD plays into the monthly Spotify playlist.
"""

from datetime import timedelta
from typing import Optional

from loguru import logger

from kmhd2spotify.commands.common import build_catalog
from kmhd2spotify.core.config import Config
from kmhd2spotify.core.output import log
from kmhd2spotify.domain.feed import KMHDFeedClient
from kmhd2spotify.domain.matching import FuzzySongSearcher
from kmhd2spotify.domain.sync import PlaylistWriter, SyncScheduler


def build_scheduler(config: Config, interval_minutes: Optional[int] = None) -> SyncScheduler:
    catalog = build_catalog(config)
    minutes = interval_minutes if interval_minutes is not None else config.sync.interval_minutes

    return SyncScheduler(
        feed=KMHDFeedClient(config.kmhd),
        searcher=FuzzySongSearcher(catalog),
        catalog=catalog,
        writer=PlaylistWriter(catalog),
        playlist_prefix=config.spotify.playlist_name_prefix,
        interval=timedelta(minutes=minutes),
        jitter=timedelta(minutes=config.sync.jitter_minutes),
        min_confidence=config.sync.min_confidence,
    )


def handle_sync_command(
    config: Config, continuous: bool = False, interval_minutes: Optional[int] = None
) -> int:
    """Run one sync cycle, or cycle forever in continuous mode.

    Returns:
        Exit code (0 when the cycle completed, 1 when it aborted)
    """
    scheduler = build_scheduler(config, interval_minutes)

    if continuous:
        logger.info(f"Starting continuous KMHD to Spotify sync (interval {scheduler.interval})")
        scheduler.run_continuous()
        return 0

    summary = scheduler.run_once()
    if summary.error:
        log(f"❌ Sync aborted: {summary.error}", level="error")
        return 1
    if summary.processed == 0:
        log("No new songs found on KMHD", level="info")
    return 0
