"""
Spotify playback snapshot fetcher

Polls the "currently playing" endpoint of the Spotify Web API for the single
configured account and converts each response into a PlaybackSnapshot.

Error Handling Strategy:

HTTP 204 / empty body / no item:
- The canonical "nothing is playing" signal
- Returned as a not-playing snapshot, never raised

401 Unauthorized:
- The cached access token is invalidated and a fresh one requested
- The request is retried exactly once with the new token
- A second 401 raises AuthError, which the engine propagates

429 Rate Limited and other HTTP errors:
- Raised as UpstreamError; the caller freezes its display and retries on the
  next poll instead of sleeping here

Timeouts:
- Every request carries an explicit timeout
- Raised as UpstreamError(is_timeout=True) and retried once within the call

spotipy is synchronous, so each request runs in a worker thread via
asyncio.to_thread and never blocks the event loop's other timers.
"""

import asyncio
import logging
from typing import Optional, Dict, Any, Callable

import requests
import spotipy
from spotipy.exceptions import SpotifyException
from asyncio_throttle import Throttler

from ..config.auth import get_auth
from ..config.settings import get_settings
from ..exceptions import AuthError, UpstreamError
from .models import PlaybackSnapshot
from ..utils.helpers import monotonic_ms, retry_on_timeout
from ..utils.logger import get_logger

# Suppress Spotipy's verbose logging to reduce noise in application logs
logging.getLogger('spotipy.client').setLevel(logging.ERROR)
logging.getLogger('requests.packages.urllib3').setLevel(logging.ERROR)


class SpotifyPlaybackClient:
    """
    Fetcher for the account's currently playing item

    The client keeps one spotipy.Spotify instance per access token and
    rebuilds it whenever the token provider hands out a different token.
    spotipy's own retry machinery is disabled: the retry policy (one retry for
    timeouts, one re-authentication for 401) lives here.
    """

    def __init__(self, auth=None, settings=None, clock: Optional[Callable[[], float]] = None):
        """
        Initialize the fetcher

        Args:
            auth: Access token provider with get_token()/invalidate() (defaults to global SpotifyAuth)
            settings: Settings instance (defaults to global settings)
            clock: Millisecond clock used to stamp observations (defaults to monotonic_ms)
        """
        self.auth = auth or get_auth()
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self.clock = clock or monotonic_ms

        self.timeout = self.settings.network.request_timeout
        self.max_attempts = 1 + max(0, self.settings.network.timeout_retries)

        self._client: Optional[spotipy.Spotify] = None
        self._client_token: Optional[str] = None

        # Never more than one poll request per half second, whatever the caller does
        self.throttler = Throttler(rate_limit=2, period=1.0)

    def _client_for(self, token: str) -> spotipy.Spotify:
        """
        Get a spotipy client bound to the given bearer token

        Args:
            token: Valid access token

        Returns:
            spotipy.Spotify instance with retries disabled
        """
        if self._client is None or self._client_token != token:
            self._client = spotipy.Spotify(
                auth=token,
                requests_timeout=self.timeout,
                retries=0,
                status_retries=0
            )
            self._client_token = token
        return self._client

    def _request_currently_playing(self) -> Optional[Dict[str, Any]]:
        """
        Blocking request for the currently playing item

        Runs in a worker thread. Handles the single re-authentication on 401
        and translates transport failures into UpstreamError.

        Returns:
            Decoded JSON body, or None for HTTP 204

        Raises:
            AuthError: Token unavailable or rejected twice
            UpstreamError: Any other HTTP or network failure
        """
        for attempt in (1, 2):
            token = self.auth.get_token()
            try:
                return self._client_for(token).current_user_playing_track()
            except SpotifyException as e:
                if e.http_status == 401:
                    if attempt == 1:
                        # Token expired or revoked - force a refresh and retry once
                        self.logger.debug("Spotify rejected access token, refreshing...")
                        self.auth.invalidate()
                        continue
                    raise AuthError(
                        "Spotify rejected a freshly refreshed access token",
                        details={'status_code': 401}
                    )
                if e.http_status == 429:
                    retry_after = (e.headers or {}).get('Retry-After', '?')
                    raise UpstreamError(
                        f"Spotify rate limit reached (retry after {retry_after}s)",
                        source='spotify',
                        status_code=429,
                        details={'retry_after': retry_after}
                    )
                raise UpstreamError(
                    f"Spotify returned HTTP {e.http_status}: {e.msg}",
                    source='spotify',
                    status_code=e.http_status
                )
            except requests.exceptions.Timeout as e:
                raise UpstreamError(f"Spotify request timed out: {e}", source='spotify', is_timeout=True)
            except requests.exceptions.RequestException as e:
                raise UpstreamError(f"Spotify request failed: {e}", source='spotify')

        # Unreachable: the loop either returns or raises
        raise AuthError("Spotify authentication failed")

    async def _fetch_once(self) -> PlaybackSnapshot:
        async with self.throttler:
            try:
                data = await asyncio.wait_for(
                    asyncio.to_thread(self._request_currently_playing),
                    timeout=self.timeout + 1.0
                )
            except asyncio.TimeoutError:
                raise UpstreamError("Spotify request timed out", source='spotify', is_timeout=True)

        snapshot = PlaybackSnapshot.from_spotify_data(data, observed_at_ms=self.clock())
        self.logger.debug(
            f"Snapshot: playing={snapshot.is_playing} track={snapshot.track_id} "
            f"progress={snapshot.progress_ms}ms"
        )
        return snapshot

    async def fetch(self) -> PlaybackSnapshot:
        """
        Poll the currently playing endpoint once

        Returns:
            PlaybackSnapshot (not-playing when nothing is playing)

        Raises:
            AuthError: When no valid token can be obtained
            UpstreamError: On network/HTTP failure after the timeout retry
        """
        return await retry_on_timeout(max_attempts=self.max_attempts)(self._fetch_once)()


# Global client instance for singleton pattern implementation
_client_instance: Optional[SpotifyPlaybackClient] = None


def get_playback_client() -> SpotifyPlaybackClient:
    """
    Get the global playback client instance

    Returns:
        Global SpotifyPlaybackClient instance
    """
    global _client_instance
    if not _client_instance:
        _client_instance = SpotifyPlaybackClient()
    return _client_instance


def reset_playback_client() -> None:
    """Reset the global playback client (tests and configuration changes)"""
    global _client_instance
    _client_instance = None
