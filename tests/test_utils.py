# tests/test_utils.py
"""Test utilities and helpers"""

import asyncio
import pytest
import requests

from nowplaying.exceptions import UpstreamError
from nowplaying.utils.helpers import (
    format_duration,
    format_timestamp_ms,
    calculate_similarity,
    normalize_artist_name,
    normalize_track_title,
    parse_duration_string,
    make_track_key,
    is_timeout_error,
    retry_on_timeout
)
from nowplaying.utils.logger import parse_size


class TestHelpers:
    """Test helper functions"""

    def test_format_duration(self):
        """Test duration formatting"""
        assert format_duration(90) == "1:30"
        assert format_duration(3661) == "1:01:01"
        assert format_duration(0) == "0:00"
        assert format_duration(-10) == "0:00"

    def test_format_timestamp_ms(self):
        """Test LRC timestamp formatting"""
        assert format_timestamp_ms(0) == "00:00.00"
        assert format_timestamp_ms(65300) == "01:05.30"
        assert format_timestamp_ms(-5) == "00:00.00"

    def test_calculate_similarity(self):
        """Test string similarity calculation"""
        assert calculate_similarity("hello", "hello") == 1.0
        assert calculate_similarity("hello", "world") < 0.5
        assert calculate_similarity("", "") == 1.0
        assert calculate_similarity("test", "") == 0.0
        assert calculate_similarity("Hello", "hello ") == 1.0

    def test_normalize_artist_name(self):
        """Test artist name normalization"""
        assert normalize_artist_name("The Beatles") == "beatles"
        assert normalize_artist_name("Artist feat. Other") == "artist"
        assert normalize_artist_name("A Artist") == "artist"

    def test_normalize_track_title(self):
        """Test track title normalization"""
        assert normalize_track_title("Song (Remix)") == "song"
        assert normalize_track_title("Track feat. Artist") == "track"
        assert normalize_track_title("Title [Remaster]") == "title"

    def test_parse_duration_string(self):
        """Test duration string parsing"""
        assert parse_duration_string("3:45") == 225
        assert parse_duration_string("1:23:45") == 5025
        assert parse_duration_string("invalid") is None
        assert parse_duration_string(None) is None

    def test_make_track_key(self):
        """Cache keys are case and whitespace insensitive"""
        assert make_track_key("Artist", "Song") == ("artist", "song")
        assert make_track_key("  The   Band ", "My  Song") == ("the band", "my song")
        assert make_track_key(None, "Song") == ("", "song")

    def test_parse_size(self):
        """Test log size parsing"""
        assert parse_size("10MB") == 10 * 1024 * 1024
        assert parse_size("512KB") == 512 * 1024


class TestTimeoutRetry:
    """Test timeout classification and retry"""

    def test_is_timeout_error(self):
        assert is_timeout_error(asyncio.TimeoutError())
        assert is_timeout_error(requests.exceptions.ReadTimeout())
        assert is_timeout_error(UpstreamError("slow", is_timeout=True))
        assert not is_timeout_error(UpstreamError("HTTP 500", status_code=500))
        assert not is_timeout_error(ValueError("boom"))

    @pytest.mark.asyncio
    async def test_retries_timeout_once(self):
        calls = []

        @retry_on_timeout(max_attempts=2)
        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise asyncio.TimeoutError()
            return "ok"

        assert await flaky() == "ok"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        calls = []

        @retry_on_timeout(max_attempts=2)
        async def always_slow():
            calls.append(1)
            raise UpstreamError("slow", is_timeout=True)

        with pytest.raises(UpstreamError):
            await always_slow()
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        calls = []

        @retry_on_timeout(max_attempts=3)
        async def broken():
            calls.append(1)
            raise UpstreamError("HTTP 500", status_code=500)

        with pytest.raises(UpstreamError):
            await broken()
        assert len(calls) == 1
