"""
syncedlyrics lyric source (plain text, second in the fallback chain)

Wraps the `syncedlyrics` library, which aggregates several public lyric
providers behind one search call. This source requests plain text only: any
timing markers a provider still returns are stripped, and the resolver
synthesizes evenly paced timing from the text.

The library is synchronous and talks to the network through requests, so each
search runs in a worker thread via asyncio.to_thread. The base class puts an
explicit timeout around it; a timed-out thread is abandoned, never joined.

Noise Suppression:
The library and some of its providers log verbosely; their loggers are
silenced at import so that search misses do not reach the console.
"""

import asyncio
import logging
import os
from typing import List, Optional

# Configure environment variables BEFORE importing to minimize third-party noise
os.environ.setdefault('SYNCEDLYRICS_VERBOSE', '0')
os.environ.setdefault('MUSIXMATCH_VERBOSE', '0')

import syncedlyrics

from .base import LyricPayload, LyricSource
from .models import strip_timestamps

# Disable logging from noisy third-party components
for _noisy_logger in ('syncedlyrics', 'Musixmatch'):
    logging.getLogger(_noisy_logger).setLevel(logging.CRITICAL)


class SyncedLyricsSource(LyricSource):
    """Plain-text search through the syncedlyrics library"""

    name = "syncedlyrics"

    def __init__(self, settings=None):
        super().__init__(settings)
        self.providers: List[str] = list(self.settings.lyrics.syncedlyrics_providers or [])

    @staticmethod
    def build_search_term(title: str, artist: str) -> str:
        return f"{artist} {title}".strip()

    def _search(self, search_term: str) -> Optional[str]:
        """Blocking library call, executed in a worker thread"""
        kwargs = {'plain_only': True}
        if self.providers:
            kwargs['providers'] = self.providers
        return syncedlyrics.search(search_term, **kwargs)

    async def _query(self, title: str, artist: str, duration_ms: Optional[int]) -> Optional[LyricPayload]:
        search_term = self.build_search_term(title, artist)
        self.logger.debug(f"Searching syncedlyrics for: {search_term}")

        text = await asyncio.to_thread(self._search, search_term)
        if not text or not isinstance(text, str):
            self.logger.debug(f"No syncedlyrics results for: {search_term}")
            return None

        plain_text = strip_timestamps(text)
        if not plain_text.strip():
            return None
        return LyricPayload(plain_text=plain_text)
