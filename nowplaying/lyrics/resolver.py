"""
Lyric resolver - ordered multi-source fallback with TTL caching

Resolution order for one (artist, title):

1. Cache: any live entry is returned immediately, including a cached empty
   result ("confirmed no lyrics").
2. Sources, in configured order (default: lrclib, syncedlyrics, genius). The
   first source producing a non-empty result wins:
   - time-aligned lines are used as they are
   - plain text is synthesized into evenly paced lines over the duration hint
3. Nothing usable anywhere: an empty LyricSet is cached and returned.

Every source call is best-effort. Any exception raised by a source is logged
and the source is treated as having nothing; the resolver itself never raises
for upstream failures.

Cache policy: written exactly once per resolution, with a long TTL for found
lyrics and a short one for empty results so transiently failing sources get
retried soon. Concurrent resolutions of the same key share one in-flight task,
so duplicate requests collapse into a single upstream pass.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Tuple

from ..config.settings import get_settings
from ..exceptions import ParseError, UpstreamError
from ..utils.cache import TTLCache
from ..utils.helpers import make_track_key
from ..utils.logger import get_logger
from .base import LyricPayload, LyricSource
from .genius import GeniusSource
from .lrclib import LrclibSource
from .models import LyricSet, synthesize_even
from .syncedlyrics import SyncedLyricsSource


# Source registry: configuration name -> implementation
SOURCE_TYPES = {
    'lrclib': LrclibSource,
    'syncedlyrics': SyncedLyricsSource,
    'genius': GeniusSource,
}


def build_sources(settings=None) -> List[LyricSource]:
    """
    Instantiate the configured lyric sources in fallback order

    Args:
        settings: Settings instance (defaults to global settings)

    Returns:
        List of LyricSource instances; unknown names are skipped
    """
    settings = settings or get_settings()
    logger = get_logger(__name__)

    sources: List[LyricSource] = []
    for name in settings.lyrics.sources:
        source_type = SOURCE_TYPES.get(name)
        if source_type is None:
            logger.warning(f"Unknown lyrics source ignored: {name}")
            continue
        sources.append(source_type(settings))
    return sources


class LyricResolver:
    """
    Resolves a LyricSet for a track from an ordered list of sources

    The resolver owns its cache; pass one in to share or inspect it.
    """

    def __init__(
        self,
        sources: Optional[Iterable[LyricSource]] = None,
        cache: Optional[TTLCache] = None,
        settings=None
    ):
        """
        Args:
            sources: Lyric sources in fallback order (defaults to configured sources)
            cache: TTL cache for resolved sets (defaults to a new bounded cache)
            settings: Settings instance (defaults to global settings)
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)

        config = self.settings.lyrics
        self.sources: List[LyricSource] = list(sources) if sources is not None else build_sources(self.settings)
        self.cache = cache if cache is not None else TTLCache(max_entries=config.cache_max_entries)
        self.found_ttl = config.found_ttl
        self.empty_ttl = config.empty_ttl
        self.default_duration_ms = config.default_duration_ms
        self.min_line_spacing_ms = config.min_line_spacing_ms

        self._inflight: Dict[Tuple[str, str], asyncio.Task] = {}

        self.stats = {
            'resolutions': 0,
            'cache_hits': 0,
            'found': 0,
            'not_found': 0,
            'source_failures': {source.name: 0 for source in self.sources},
            'source_hits': {source.name: 0 for source in self.sources},
        }

    async def resolve(self, title: str, artist: str, duration_hint_ms: Optional[int] = None) -> LyricSet:
        """
        Resolve lyrics for a track

        Args:
            title: Track title
            artist: Primary artist
            duration_hint_ms: Track length, used to pace synthesized lines

        Returns:
            LyricSet, empty when no source had lyrics
        """
        key = make_track_key(artist, title)

        entry = self.cache.lookup(key)
        if entry is not None:
            self.stats['cache_hits'] += 1
            return entry.value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._resolve_uncached(key, title, artist, duration_hint_ms))
            self._inflight[key] = task
            task.add_done_callback(lambda done, k=key: self._forget(k, done))
        else:
            self.logger.debug(f"Joining in-flight lyric resolution for {key}")

        # A cancelled caller must not cancel the shared resolution
        return await asyncio.shield(task)

    def _forget(self, key: Tuple[str, str], task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _resolve_uncached(
        self,
        key: Tuple[str, str],
        title: str,
        artist: str,
        duration_hint_ms: Optional[int]
    ) -> LyricSet:
        self.stats['resolutions'] += 1

        for source in self.sources:
            if not source.available:
                self.logger.debug(f"Lyric source {source.name} unavailable, skipping")
                continue

            try:
                payload = await source.query(title, artist, duration_hint_ms)
            except (UpstreamError, ParseError) as e:
                self.stats['source_failures'][source.name] = self.stats['source_failures'].get(source.name, 0) + 1
                self.logger.debug(f"Lyric source {source.name} failed for '{artist} - {title}': {e}")
                continue
            except Exception as e:
                self.stats['source_failures'][source.name] = self.stats['source_failures'].get(source.name, 0) + 1
                self.logger.warning(f"Unexpected error from lyric source {source.name}: {e}")
                continue

            lyric_set = self.to_lyric_set(source.name, payload, duration_hint_ms)
            if lyric_set:
                self.stats['found'] += 1
                self.stats['source_hits'][source.name] = self.stats['source_hits'].get(source.name, 0) + 1
                self.cache.set(key, lyric_set, self.found_ttl)
                self.logger.debug(
                    f"Lyrics for '{artist} - {title}' from {source.name} "
                    f"({len(lyric_set)} lines, {'synced' if lyric_set.synced else 'synthesized'})"
                )
                return lyric_set

        self.stats['not_found'] += 1
        empty = LyricSet.empty()
        self.cache.set(key, empty, self.empty_ttl)
        self.logger.debug(f"No lyrics found for '{artist} - {title}'")
        return empty

    def to_lyric_set(self, source_name: str, payload: Optional[LyricPayload],
                     duration_hint_ms: Optional[int]) -> LyricSet:
        """
        Normalize a source payload into a LyricSet

        Time-aligned lines take precedence over plain text from the same payload.
        """
        if payload is None or payload.is_empty:
            return LyricSet.empty()

        if payload.has_synced:
            return LyricSet(lines=tuple(payload.synced_lines), source=source_name, synced=True)

        lines = synthesize_even(
            payload.plain_text,
            duration_ms=duration_hint_ms,
            min_spacing_ms=self.min_line_spacing_ms,
            default_duration_ms=self.default_duration_ms
        )
        if not lines:
            return LyricSet.empty()
        return LyricSet(lines=tuple(lines), source=source_name, synced=False)

    def invalidate(self, title: str, artist: str) -> bool:
        """Drop the cached result for a track; returns True if one was cached"""
        return self.cache.evict(make_track_key(artist, title))

    def get_stats(self) -> Dict[str, object]:
        """Resolution statistics plus the current cache size"""
        return {**self.stats, 'cached_entries': len(self.cache)}


# Global resolver instance management using singleton pattern
_lyric_resolver: Optional[LyricResolver] = None


def get_lyric_resolver() -> LyricResolver:
    """
    Get the global lyric resolver instance (singleton pattern)

    Returns:
        Global LyricResolver instance
    """
    global _lyric_resolver
    if not _lyric_resolver:
        _lyric_resolver = LyricResolver()
    return _lyric_resolver


def reset_lyric_resolver() -> None:
    """Reset the global lyric resolver, dropping its cache"""
    global _lyric_resolver
    _lyric_resolver = None
