"""
nowplaying-sync: live lyrics and a synced companion video for what Spotify is playing

nowplaying-sync polls the "currently playing" endpoint of a single Spotify
account, resolves time-aligned lyrics for the current track from several
sources, follows the active lyric line between polls, and keeps a companion
video from YouTube Music in step with the music.

## Core Architecture

**Configuration Management (`nowplaying/config/`)**
- Settings from YAML files and environment variables
- Access token provider using the Spotify refresh-token grant

**Spotify Integration (`nowplaying/spotify/`)**
- Snapshot fetcher for the currently playing item
- Immutable PlaybackSnapshot model, normalized at ingestion

**Lyrics (`nowplaying/lyrics/`)**
- LRCLIB (time-aligned), syncedlyrics and Genius (plain text) sources
- Ordered fallback, TTL cache, even-distribution timing for plain text

**YouTube Music (`nowplaying/ytmusic/`)**
- Companion video locator with title/artist/duration scoring

**Synchronization (`nowplaying/sync/`)**
- Playback clock model extrapolating between polls
- Lyric line scheduler and named recurring task scheduler
- Companion synchronizer with drift hysteresis and seek cooldown
- NowPlayingEngine composing everything on one asyncio loop

**Utilities (`nowplaying/utils/`)**
- Colored console and rotating file logging
- TTL cache, text normalization, timeout retry

## Concurrency Model

One asyncio event loop runs three independent timers: the snapshot poll
(2 s), the lyric tick (500 ms) and the companion drift check (4 s).
Blocking client libraries run in worker threads. Lyric and companion
lookups never hold up the next poll, and results that arrive after the
track has changed are discarded.

## Error Handling

Only AuthError (no usable access token) stops the engine. Upstream failures
degrade the affected feature for the current tick or track; "no lyrics" and
"no companion video" are normal, cached outcomes.
"""

# Package version information
__version__ = "1.0.0"

__description__ = "Live lyrics and companion video sync for the track currently playing on Spotify"

__all__ = [
    "__version__",
    "__description__"
]
