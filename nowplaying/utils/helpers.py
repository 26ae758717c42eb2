"""
Helper functions for nowplaying-sync
Text normalization, similarity scoring, time formatting and retry utilities
"""

import re
import time
import asyncio
import functools
from typing import Optional, Tuple, Union

import requests


def monotonic_ms() -> float:
    """Current monotonic time in milliseconds, used as the engine's wall clock"""
    return time.monotonic() * 1000.0


def format_duration(seconds: Union[int, float]) -> str:
    """
    Format duration in seconds to human-readable string

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds < 0:
        return "0:00"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    else:
        return f"{minutes}:{secs:02d}"


def format_timestamp_ms(offset_ms: int) -> str:
    """
    Format a millisecond offset as an LRC timestamp (mm:ss.xx)

    Args:
        offset_ms: Offset into the track in milliseconds

    Returns:
        Timestamp string such as "01:05.30"
    """
    offset_ms = max(0, int(offset_ms))
    minutes, remainder = divmod(offset_ms, 60000)
    seconds, millis = divmod(remainder, 1000)
    return f"{minutes:02d}:{seconds:02d}.{millis // 10:02d}"


def parse_duration_string(duration_str: str) -> Optional[int]:
    """
    Parse duration string to seconds

    Args:
        duration_str: Duration string (e.g., "3:45", "1:23:45")

    Returns:
        Duration in seconds or None if invalid
    """
    try:
        parts = duration_str.split(':')
        if len(parts) == 2:
            minutes, seconds = map(int, parts)
            return minutes * 60 + seconds
        elif len(parts) == 3:
            hours, minutes, seconds = map(int, parts)
            return hours * 3600 + minutes * 60 + seconds
        else:
            return None
    except (ValueError, IndexError, AttributeError):
        return None


def calculate_similarity(str1: str, str2: str) -> float:
    """
    Calculate string similarity using Levenshtein distance

    Args:
        str1: First string
        str2: Second string

    Returns:
        Similarity score between 0.0 and 1.0
    """
    s1 = (str1 or "").lower().strip()
    s2 = (str2 or "").lower().strip()

    if s1 == s2:
        return 1.0

    if not s1 or not s2:
        return 0.0

    len1, len2 = len(s1), len(s2)

    # Single-row dynamic programming over the edit matrix
    previous = list(range(len2 + 1))
    for i in range(1, len1 + 1):
        current = [i] + [0] * len2
        for j in range(1, len2 + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            current[j] = min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost   # substitution
            )
        previous = current

    distance = previous[len2]
    similarity = 1 - (distance / max(len1, len2))

    return max(0.0, similarity)


def normalize_artist_name(artist: str) -> str:
    """
    Normalize artist name for better matching

    Args:
        artist: Original artist name

    Returns:
        Normalized artist name
    """
    normalized = (artist or "").lower()

    prefixes = ['the ', 'a ', 'an ']
    for prefix in prefixes:
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix):]

    feat_patterns = [
        r'\s*\(feat\.?.*?\)',
        r'\s*\(ft\.?.*?\)',
        r'\s+feat\..*',
        r'\s+feat\s.*',
        r'\s+ft\..*',
        r'\s+ft\s.*',
        r'\s+featuring\s.*',
    ]

    for pattern in feat_patterns:
        normalized = re.sub(pattern, '', normalized, flags=re.IGNORECASE)

    normalized = re.sub(r'\s+', ' ', normalized).strip()

    return normalized


def normalize_track_title(title: str) -> str:
    """
    Normalize track title for better matching

    Args:
        title: Original track title

    Returns:
        Normalized track title
    """
    normalized = (title or "").lower()

    # Version information in parentheses or brackets
    version_patterns = [
        r'\s*[\(\[].*?version.*?[\)\]]',
        r'\s*[\(\[].*?mix.*?[\)\]]',
        r'\s*[\(\[].*?edit.*?[\)\]]',
        r'\s*[\(\[].*?remaster.*?[\)\]]',
        r'\s+-\s+.*remaster.*$',
    ]

    for pattern in version_patterns:
        normalized = re.sub(pattern, '', normalized, flags=re.IGNORECASE)

    feat_patterns = [
        r'\s*\(feat\.?.*?\)',
        r'\s*\(ft\.?.*?\)',
        r'\s+feat\..*',
        r'\s+ft\..*',
        r'\s+featuring\s.*',
    ]

    for pattern in feat_patterns:
        normalized = re.sub(pattern, '', normalized, flags=re.IGNORECASE)

    normalized = re.sub(r'\s+', ' ', normalized).strip()

    return normalized


def make_track_key(artist: str, title: str) -> Tuple[str, str]:
    """
    Build the cache key for a track: lower-cased, trimmed, whitespace-collapsed

    Args:
        artist: Artist name as reported by the player
        title: Track title as reported by the player

    Returns:
        (artist, title) tuple suitable as a dictionary key
    """
    def _clean(value: str) -> str:
        return re.sub(r'\s+', ' ', (value or "").strip().lower())

    return _clean(artist), _clean(title)


def is_timeout_error(error: BaseException) -> bool:
    """
    Decide whether an exception represents a transient timeout

    Covers asyncio/aiohttp timeouts, requests timeouts (used underneath
    spotipy, lyricsgenius and ytmusicapi) and UpstreamError flagged as timeout.
    """
    from ..exceptions import UpstreamError

    if isinstance(error, UpstreamError):
        return error.is_timeout
    return isinstance(error, (asyncio.TimeoutError, TimeoutError, requests.exceptions.Timeout))


def retry_on_timeout(max_attempts: int = 2, delay: float = 0.0):
    """
    Decorator for retrying coroutines that fail with a transient timeout

    Only timeouts are retried; any other exception propagates immediately so
    that a hard failure never costs a second round trip in the same pass.

    Args:
        max_attempts: Total number of attempts including the first one
        delay: Seconds to wait before retrying
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if attempt >= max_attempts or not is_timeout_error(e):
                        raise
                    attempt += 1
                    if delay:
                        await asyncio.sleep(delay)
        return wrapper
    return decorator
