"""
KMHD playlist API client.

Fetches the day's playlist from the KMHD JSON API and normalizes it into
FeedRecords. Network errors and gateway failures (502/504) are retried.
"""

import json
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests
from loguru import logger

from kmhd2spotify.core.config import DEFAULT_API_ENDPOINT, KMHDConfig
from kmhd2spotify.core.useragent import get_latest_chrome_user_agent
from kmhd2spotify.domain.feed.models import FeedRecord, SongCollection
from kmhd2spotify.domain.feed.parsing import parse_entries
from kmhd2spotify.exceptions import (
    FetchError,
    PermanentFetchError,
    TransientFetchError,
)

MAX_ATTEMPTS = 3
RETRYABLE_STATUS_CODES = (502, 504)
BACKOFF_SECONDS = 2  # wait = attempt * BACKOFF_SECONDS -> 2s, 4s

CURRENTLY_PLAYING_WINDOW = timedelta(hours=24)


class KMHDFeedClient:
    """Client for the KMHD playlist JSON API."""

    def __init__(
        self,
        config: Optional[KMHDConfig] = None,
        session: Optional[requests.Session] = None,
        user_agent: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or KMHDConfig()
        self.base_url = self.config.api_endpoint or DEFAULT_API_ENDPOINT
        self.timeout = self.config.http_timeout if self.config.http_timeout > 0 else 30
        self.session = session or requests.Session()
        self._user_agent = user_agent
        self._sleep = sleep
        self.log = logger.bind(component="kmhd_api_client")

    @property
    def user_agent(self) -> str:
        if self._user_agent is None:
            self._user_agent = get_latest_chrome_user_agent()
        return self._user_agent

    def _feed_timezone(self):
        try:
            return ZoneInfo(self.config.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            self.log.warning(f"Failed to load timezone {self.config.timezone!r}, using local time: {e}")
            return None

    def build_query(self, date: datetime) -> Dict[str, str]:
        """
        Build the query parameters for a given day.

        The date is converted to the station's timezone first so the
        requested day does not drift with the host's timezone.
        """
        tz = self._feed_timezone()
        # astimezone(None) converts to the local zone
        local_date = date.astimezone(tz)
        day = local_date.isoformat(timespec="milliseconds")
        query = json.dumps({"day": day}, separators=(",", ":"))

        self.log.debug(f"Built API query for {date.isoformat()} -> {day}")
        return {"query": query}

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": "en-US,en;q=0.5",
            "User-Agent": self.user_agent,
            "Referer": self.base_url,
        }

    def _request_with_retry(self, params: Dict[str, str]) -> requests.Response:
        headers = self._headers()
        response: Optional[requests.Response] = None
        last_error: Optional[requests.RequestException] = None

        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                response = self.session.get(
                    self.base_url, params=params, headers=headers, timeout=self.timeout
                )
                last_error = None
            except requests.RequestException as e:
                response = None
                last_error = e

            if response is not None and response.status_code not in RETRYABLE_STATUS_CODES:
                return response

            if attempt < MAX_ATTEMPTS:
                wait = attempt * BACKOFF_SECONDS
                status = response.status_code if response is not None else 0
                self.log.warning(
                    f"API request failed, retrying in {wait}s "
                    f"(attempt {attempt}/{MAX_ATTEMPTS}, status={status}, error={last_error})"
                )
                self._sleep(wait)

        if response is None:
            self.log.error(f"API request failed after {MAX_ATTEMPTS} attempts: {last_error}")
            raise TransientFetchError(
                f"failed to make HTTP request after {MAX_ATTEMPTS} attempts: {last_error}"
            ) from last_error

        self.log.error(f"API returned status {response.status_code} after {MAX_ATTEMPTS} attempts")
        raise TransientFetchError(
            f"API returned status {response.status_code} after {MAX_ATTEMPTS} attempts",
            status_code=response.status_code,
        )

    def fetch(self, date: datetime) -> SongCollection:
        """
        Fetch and parse the playlist for the given date.

        Raises:
            TransientFetchError: Network or gateway failures outlasted the retries
            PermanentFetchError: Any other non-200 status or an undecodable body
        """
        self.log.info("Fetching playlist from KMHD JSON API")
        params = self.build_query(date)

        started = time.monotonic()
        response = self._request_with_retry(params)
        duration_ms = int((time.monotonic() - started) * 1000)

        if response.status_code != 200:
            self.log.error(f"API returned non-200 status code {response.status_code} ({duration_ms}ms)")
            raise PermanentFetchError(
                f"API returned status {response.status_code}", status_code=response.status_code
            )

        try:
            payload: Any = response.json()
        except ValueError as e:
            self.log.error(f"Failed to decode JSON response from API: {e}")
            raise PermanentFetchError(f"failed to decode JSON response: {e}") from e

        if not isinstance(payload, list):
            raise PermanentFetchError(
                f"unexpected JSON response: expected an array, got {type(payload).__name__}"
            )

        self.log.info(f"Successfully received API response: {len(payload)} tracks in {duration_ms}ms")
        collection = parse_entries(payload)
        self.log.info(f"Successfully parsed {len(collection.songs)} songs from KMHD API")
        return collection

    def scrape_playlist(self) -> SongCollection:
        """Fetch today's playlist."""
        return self.fetch(datetime.now(timezone.utc))

    def get_currently_playing(self, now: Optional[datetime] = None) -> FeedRecord:
        """
        Return the song most recently started, ignoring future start times.

        Falls back to the first song when nothing started within the last 24 hours.

        Raises:
            FetchError: If the playlist could not be fetched or is empty
        """
        now = now or datetime.now(timezone.utc)
        self.log.info("Fetching currently playing song from KMHD JSON API")
        collection = self.fetch(now)

        if not collection.songs:
            raise FetchError("no songs found in current playlist")

        current = None
        min_diff = CURRENTLY_PLAYING_WINDOW
        for song in collection.songs:
            diff = now - song.played_at
            if timedelta(0) <= diff < min_diff:
                min_diff = diff
                current = song

        if current is None:
            current = collection.songs[0]

        self.log.info(f"Found currently playing song: {current}")
        return current
