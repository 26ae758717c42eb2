"""
Companion video locator backed by YouTube Music search

Given a track title, artist and (optionally) duration, returns the video id of
the best-matching YouTube Music song, or None. The engine decides when to ask
and what to do with the answer; this module only ranks candidates.

Scoring System (per candidate, same weights as a track matcher):
- Title similarity: 0-40 points
- Artist similarity: 0-30 points
- Duration match: 0-20 points (10 when either duration is unknown)
- Quality bonus/penalty: -10 to +10 (official audio up; live, cover,
  karaoke, remix down)

Candidates below the configured threshold are rejected; if none remains the
answer is None, which is cached briefly like any other negative result. The
scoring lives in `score_candidate()` so it can be swapped for another strategy.

ytmusicapi is synchronous; searches run in a worker thread with an explicit
timeout, one retry for timeouts, and asyncio-throttle rate limiting. Any
failure is logged and reported as "no companion video".
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from asyncio_throttle import Throttler
from ytmusicapi import YTMusic

from ..config.settings import get_settings
from ..exceptions import UpstreamError
from ..utils.cache import TTLCache
from ..utils.helpers import (
    calculate_similarity,
    make_track_key,
    normalize_artist_name,
    normalize_track_title,
    parse_duration_string,
    retry_on_timeout
)
from ..utils.logger import get_logger


@dataclass
class CompanionCandidate:
    """
    One YouTube Music search result with its ranking breakdown

    Attributes:
        video_id: YouTube video identifier
        title: Result title
        artist: Primary artist of the result
        duration: Length in seconds if known
        title_score: Title similarity (0-40)
        artist_score: Artist similarity (0-30)
        duration_score: Duration match (0-20)
        quality_bonus: Quality adjustment (-10 to +10)
    """
    video_id: str
    title: str
    artist: str
    duration: Optional[int] = None
    title_score: float = 0.0
    artist_score: float = 0.0
    duration_score: float = 0.0
    quality_bonus: float = 0.0

    @property
    def total_score(self) -> float:
        return self.title_score + self.artist_score + self.duration_score + self.quality_bonus

    @classmethod
    def from_ytmusic_data(cls, result: Dict[str, Any]) -> Optional['CompanionCandidate']:
        """
        Build a candidate from a raw ytmusicapi search result

        Returns:
            CompanionCandidate, or None if the result has no video id
        """
        if not isinstance(result, dict) or not result.get('videoId'):
            return None

        artists = result.get('artists') or []
        artist = ''
        if artists and isinstance(artists[0], dict):
            artist = artists[0].get('name') or ''

        duration = result.get('duration_seconds')
        if not isinstance(duration, (int, float)) or isinstance(duration, bool):
            duration = parse_duration_string(result['duration']) if isinstance(result.get('duration'), str) else None

        return cls(
            video_id=result['videoId'],
            title=result.get('title') or '',
            artist=artist,
            duration=int(duration) if duration is not None else None
        )


# Title markers and their quality adjustment
QUALITY_MARKERS = [
    ('official audio', 5),
    ('provided to youtube', 5),
    ('live', -8),
    ('concert', -8),
    ('cover', -6),
    ('karaoke', -10),
    ('instrumental', -6),
    ('remix', -3),
    ('reaction', -10),
    ('full album', -10),
]


def score_candidate(
    candidate: CompanionCandidate,
    title: str,
    artist: str,
    duration: Optional[int] = None,
    duration_tolerance: int = 15
) -> CompanionCandidate:
    """
    Fill in the score breakdown of a candidate against the target track

    Args:
        candidate: Candidate to score (modified in place)
        title: Target track title
        artist: Target artist
        duration: Target length in seconds
        duration_tolerance: Seconds of difference still counted as a perfect match

    Returns:
        The same candidate, for chaining
    """
    candidate.title_score = calculate_similarity(
        normalize_track_title(title), normalize_track_title(candidate.title)
    ) * 40
    candidate.artist_score = calculate_similarity(
        normalize_artist_name(artist), normalize_artist_name(candidate.artist)
    ) * 30

    if duration and candidate.duration:
        duration_diff = abs(duration - candidate.duration)
        if duration_diff <= duration_tolerance:
            candidate.duration_score = 20
        elif duration_diff <= duration_tolerance * 3:
            penalty = (duration_diff - duration_tolerance) / (duration_tolerance * 2)
            candidate.duration_score = 20 * (1 - penalty)
        else:
            candidate.duration_score = 0
    else:
        # Unknown duration is neutral
        candidate.duration_score = 10

    # Markers already present in the target title are not penalized
    result_title = candidate.title.lower()
    target_title = (title or '').lower()
    bonus = 0
    for marker, adjustment in QUALITY_MARKERS:
        if marker in result_title and marker not in target_title:
            bonus += adjustment
    candidate.quality_bonus = max(-10, min(10, bonus))

    return candidate


class YouTubeMusicLocator:
    """
    Finds the companion video for a track on YouTube Music

    Results (hits and misses) are cached per normalized (artist, title) key.
    """

    def __init__(
        self,
        settings=None,
        client: Optional[YTMusic] = None,
        cache: Optional[TTLCache] = None,
        scorer: Optional[Callable[..., CompanionCandidate]] = None
    ):
        """
        Args:
            settings: Settings instance (defaults to global settings)
            client: YTMusic client (created lazily when omitted)
            cache: Result cache (defaults to a new bounded cache)
            scorer: Replacement for score_candidate()
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)

        config = self.settings.companion
        self.search_filter = config.search_filter
        self.max_results = config.max_results
        self.score_threshold = config.score_threshold
        self.duration_tolerance = config.duration_tolerance
        self.found_ttl = config.found_ttl
        self.missing_ttl = config.missing_ttl

        self.timeout = self.settings.network.request_timeout
        self.max_attempts = 1 + max(0, self.settings.network.timeout_retries)

        self._ytmusic: Optional[YTMusic] = client
        self.cache = cache if cache is not None else TTLCache(max_entries=256)
        self.scorer = scorer or score_candidate

        # One search per second at most
        self.throttler = Throttler(rate_limit=1, period=1.0)

    @property
    def ytmusic(self) -> YTMusic:
        """YouTube Music client, created without authentication on first access"""
        if not self._ytmusic:
            self._ytmusic = YTMusic()
            self.logger.debug("YouTube Music API initialized")
        return self._ytmusic

    @staticmethod
    def build_query(title: str, artist: str) -> str:
        return f"{artist} {title}".strip()

    def _search(self, query: str) -> List[Dict[str, Any]]:
        """Blocking search call, executed in a worker thread"""
        return self.ytmusic.search(query, filter=self.search_filter, limit=self.max_results) or []

    async def _search_once(self, query: str) -> List[Dict[str, Any]]:
        async with self.throttler:
            try:
                return await asyncio.wait_for(asyncio.to_thread(self._search, query), timeout=self.timeout)
            except asyncio.TimeoutError:
                raise UpstreamError("YouTube Music search timed out", source='ytmusic', is_timeout=True)

    def rank(self, results: List[Dict[str, Any]], title: str, artist: str,
             duration_ms: Optional[int] = None) -> List[CompanionCandidate]:
        """
        Score raw search results and return the acceptable ones, best first

        Args:
            results: Raw ytmusicapi search results
            title: Target track title
            artist: Target artist
            duration_ms: Target length in milliseconds

        Returns:
            Candidates at or above the score threshold, sorted by total score
        """
        duration = int(round(duration_ms / 1000)) if duration_ms else None
        candidates = []
        for result in results:
            candidate = CompanionCandidate.from_ytmusic_data(result)
            if candidate is None:
                continue
            self.scorer(candidate, title, artist, duration, self.duration_tolerance)
            if candidate.total_score >= self.score_threshold:
                candidates.append(candidate)
        candidates.sort(key=lambda c: c.total_score, reverse=True)
        return candidates

    async def find(self, title: str, artist: str, duration_ms: Optional[int] = None) -> Optional[str]:
        """
        Locate the companion video for a track

        Args:
            title: Track title
            artist: Primary artist
            duration_ms: Track length in milliseconds

        Returns:
            Video id of the best match, or None
        """
        if not title:
            return None

        key = make_track_key(artist, title)
        entry = self.cache.lookup(key)
        if entry is not None:
            return entry.value

        query = self.build_query(title, artist)
        try:
            results = await retry_on_timeout(max_attempts=self.max_attempts)(self._search_once)(query)
        except Exception as e:
            # Not cached: the next track change retries
            self.logger.debug(f"YouTube Music search failed for '{query}': {e}")
            return None

        candidates = self.rank(results, title, artist, duration_ms)
        if not candidates:
            self.logger.debug(f"No companion video above threshold for '{query}'")
            self.cache.set(key, None, self.missing_ttl)
            return None

        best = candidates[0]
        self.logger.debug(
            f"Companion video for '{query}': {best.video_id} "
            f"('{best.title}' by {best.artist}, score {best.total_score:.1f})"
        )
        self.cache.set(key, best.video_id, self.found_ttl)
        return best.video_id


# Global locator instance management
_locator_instance: Optional[YouTubeMusicLocator] = None


def get_companion_locator() -> YouTubeMusicLocator:
    """
    Get the global companion video locator (singleton pattern)

    Returns:
        Global YouTubeMusicLocator instance
    """
    global _locator_instance
    if not _locator_instance:
        _locator_instance = YouTubeMusicLocator()
    return _locator_instance


def reset_companion_locator() -> None:
    """Reset the global locator, dropping its cache"""
    global _locator_instance
    _locator_instance = None
