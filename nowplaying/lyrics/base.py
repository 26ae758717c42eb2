"""
Common interface for lyric sources

Each source (LRCLIB, syncedlyrics, Genius) implements a single coroutine,
_query(), returning a LyricPayload or None. The base class wraps it with the
behavior every upstream call shares:

- Rate limiting through an asyncio-throttle Throttler
- An explicit timeout on the whole query
- One bounded retry when, and only when, the failure is a timeout

Sources raise UpstreamError/ParseError freely; the resolver catches them at
its boundary and treats the source as having nothing.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from asyncio_throttle import Throttler

from ..config.settings import get_settings
from ..exceptions import UpstreamError
from ..utils.helpers import retry_on_timeout
from ..utils.logger import get_logger
from .models import LyricLine


@dataclass
class LyricPayload:
    """
    Raw result of one source query, already split into its two possible shapes

    Attributes:
        synced_lines: Time-aligned lines parsed from the source's response
        plain_text: Untimed lyrics block, to be synthesized by the resolver
    """
    synced_lines: List[LyricLine] = field(default_factory=list)
    plain_text: Optional[str] = None

    @property
    def has_synced(self) -> bool:
        return bool(self.synced_lines)

    @property
    def has_plain(self) -> bool:
        return bool(self.plain_text and self.plain_text.strip())

    @property
    def is_empty(self) -> bool:
        return not self.has_synced and not self.has_plain


class LyricSource(ABC):
    """
    Base class for lyric sources

    Subclasses set `name` and implement `_query()`. `available` lets a source
    opt out (e.g. missing credentials); unavailable sources are skipped
    without being counted as failures.
    """

    name = "source"

    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        self.logger = get_logger(self.__class__.__module__)

        self.timeout = self.settings.network.request_timeout
        self.max_attempts = 1 + max(0, self.settings.network.timeout_retries)
        self.throttler = Throttler(rate_limit=max(1, self.settings.lyrics.requests_per_second), period=1.0)

    @property
    def available(self) -> bool:
        return True

    @property
    def call_timeout(self) -> float:
        """Upper bound for one complete _query() call, in seconds"""
        return self.timeout

    async def query(self, title: str, artist: str, duration_ms: Optional[int] = None) -> Optional[LyricPayload]:
        """
        Query the source for one track

        Args:
            title: Track title
            artist: Primary artist
            duration_ms: Track length hint

        Returns:
            LyricPayload, or None when the source has nothing for this track

        Raises:
            UpstreamError: Network/HTTP failure (after one retry for timeouts)
            ParseError: Malformed response
        """
        if not self.available:
            return None
        return await retry_on_timeout(max_attempts=self.max_attempts)(self._query_once)(title, artist, duration_ms)

    async def _query_once(self, title: str, artist: str, duration_ms: Optional[int]) -> Optional[LyricPayload]:
        async with self.throttler:
            try:
                return await asyncio.wait_for(self._query(title, artist, duration_ms), timeout=self.call_timeout)
            except asyncio.TimeoutError:
                raise UpstreamError(f"{self.name} query timed out", source=self.name, is_timeout=True)

    @abstractmethod
    async def _query(self, title: str, artist: str, duration_ms: Optional[int]) -> Optional[LyricPayload]:
        """Perform the upstream request(s) and convert the response"""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
