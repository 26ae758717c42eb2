"""
Lyrics package - multi-source lyric resolution for the currently playing track

Key components:
- LyricResolver: ordered fallback over sources, TTL cache, in-flight barrier
- LrclibSource: time-aligned lyrics from LRCLIB (first choice)
- SyncedLyricsSource: plain-text lyrics through the syncedlyrics library
- GeniusSource: plain-text lyrics scraped from Genius song pages (needs a token)
- LyricLine / LyricSet: the immutable timed-lyrics model

Plain-text results are turned into timed lines by spreading them evenly over
the track, so every consumer deals with one shape only.

Usage:
    resolver = get_lyric_resolver()
    lyric_set = await resolver.resolve("Song", "Artist", duration_hint_ms=200000)
    for line in lyric_set:
        print(line.time_ms, line.text)
"""

# Data model and text conversions
from .models import (
    LyricLine,
    LyricSet,
    parse_lrc,
    strip_timestamps,
    synthesize_even
)

# Source interface and implementations
from .base import LyricSource, LyricPayload
from .lrclib import LrclibSource
from .syncedlyrics import SyncedLyricsSource
from .genius import GeniusSource

# Resolver - primary interface for lyric lookups
from .resolver import LyricResolver, get_lyric_resolver, reset_lyric_resolver, build_sources

__all__ = [
    # Data model
    'LyricLine',
    'LyricSet',
    'parse_lrc',
    'strip_timestamps',
    'synthesize_even',

    # Sources
    'LyricSource',
    'LyricPayload',
    'LrclibSource',
    'SyncedLyricsSource',
    'GeniusSource',

    # Resolver
    'LyricResolver',
    'get_lyric_resolver',
    'reset_lyric_resolver',
    'build_sources'
]
