"""Test configuration and fixtures"""

import asyncio
import pytest
import tempfile
from pathlib import Path
from typing import List, Optional

from nowplaying.config.settings import Settings
from nowplaying.lyrics.base import LyricPayload, LyricSource
from nowplaying.spotify.models import PlaybackSnapshot
from nowplaying.sync.handle import HeadlessPlaybackHandle


class FakeClock:
    """Manually advanced millisecond clock"""

    def __init__(self, start_ms: float = 1_000_000.0):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms

    def seconds(self) -> float:
        """Same clock in seconds, for TTLCache"""
        return self.now_ms / 1000.0


class FakeFetcher:
    """Returns queued snapshots (or raises queued exceptions) in order; repeats the last one"""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def push(self, result) -> None:
        self.results.append(result)

    async def fetch(self) -> PlaybackSnapshot:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BaseException):
            raise result
        return result


class StubSource(LyricSource):
    """Lyric source returning a fixed payload, or raising a fixed error"""

    def __init__(self, name: str, settings, payload: Optional[LyricPayload] = None,
                 error: Optional[BaseException] = None, available: bool = True):
        super().__init__(settings)
        self.name = name
        self.payload = payload
        self.error = error
        self._available = available
        self.calls: List[tuple] = []

    @property
    def available(self) -> bool:
        return self._available

    async def _query(self, title, artist, duration_ms):
        self.calls.append((title, artist, duration_ms))
        if self.error is not None:
            raise self.error
        return self.payload


def make_snapshot(track_id: Optional[str] = "track-1", progress_ms: int = 0, is_playing: bool = True,
                  observed_at_ms: float = 0.0, title: str = "Song", artists=("Artist",),
                  duration_ms: Optional[int] = 200000) -> PlaybackSnapshot:
    """Build a snapshot; track_id=None means nothing playing"""
    if track_id is None:
        return PlaybackSnapshot.not_playing(observed_at_ms)
    return PlaybackSnapshot(
        is_playing=is_playing,
        track_id=track_id,
        track_title=title,
        artists=tuple(artists),
        progress_ms=progress_ms,
        duration_ms=duration_ms,
        album_name="Album",
        artwork_url="https://i.scdn.co/image/large",
        observed_at_ms=observed_at_ms
    )


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def settings(temp_dir):
    """Fresh settings with test-friendly values"""
    settings = Settings()
    settings.spotify.client_id = "test-client"
    settings.spotify.client_secret = "test-secret"
    settings.spotify.refresh_token = "test-refresh"
    settings.security.token_storage_path = str(temp_dir / "tokens.json")
    settings.lyrics.sources = ["lrclib", "syncedlyrics", "genius"]
    settings.lyrics.genius_api_key = ""
    settings.lyrics.requests_per_second = 100
    settings.network.request_timeout = 1.0
    settings.network.timeout_retries = 1
    return settings


@pytest.fixture
def clock():
    """Manually advanced millisecond clock"""
    return FakeClock()


@pytest.fixture
def sample_playing_data():
    """Sample currently-playing payload for a track"""
    return {
        'is_playing': True,
        'progress_ms': 65000,
        'currently_playing_type': 'track',
        'item': {
            'id': 'test_track_123',
            'name': 'Test Song',
            'type': 'track',
            'artists': [
                {'id': 'artist_123', 'name': 'Test Artist'},
                {'id': 'artist_456', 'name': 'Guest Artist'}
            ],
            'album': {
                'id': 'album_123',
                'name': 'Test Album',
                'images': [
                    {'url': 'https://i.scdn.co/image/large', 'height': 640, 'width': 640},
                    {'url': 'https://i.scdn.co/image/small', 'height': 64, 'width': 64}
                ]
            },
            'duration_ms': 210000  # 3:30
        }
    }


class GatedHandle(HeadlessPlaybackHandle):
    """Headless handle whose load() suspends until the gate is released"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.loading = asyncio.Event()
        self.gate = asyncio.Event()

    async def load(self, video_id):
        self.loading.set()
        await self.gate.wait()
        await super().load(video_id)
