"""
Synchronization package - keeping lyrics and the companion video on the beat

Components:

1. **Playback Clock (clock.py)**:
   - Extrapolates the current offset between polls
   - Frozen while paused or while snapshot fetches are failing

2. **Scheduling (scheduler.py)**:
   - active_line() / LyricLineScheduler: which lyric line is active now
   - TaskScheduler: named, individually cancellable recurring asyncio tasks

3. **Companion Playback (handle.py, synchronizer.py)**:
   - CompanionPlaybackHandle: the player interface the synchronizer drives
   - HeadlessPlaybackHandle: in-process simulated player
   - CompanionSynchronizer: drift correction with hysteresis and cooldown

4. **Engine (engine.py)**:
   - NowPlayingEngine: poll, lyric and drift tasks on one event loop
   - CurrentPlaybackView / ActiveLyricLine: what presentation code reads

Usage:
    engine = NowPlayingEngine(on_lyric_change=print)
    await engine.run()
"""

from .clock import PlaybackClock
from .scheduler import active_line, LyricLineScheduler, TaskScheduler
from .handle import CompanionPlaybackHandle, HeadlessPlaybackHandle, PlayerState
from .synchronizer import CompanionSynchronizer, SyncPhase, SyncState
from .engine import NowPlayingEngine, LyricsStatus, ActiveLyricLine

__all__ = [
    # Clock model
    'PlaybackClock',

    # Scheduling
    'active_line',
    'LyricLineScheduler',
    'TaskScheduler',

    # Companion playback
    'CompanionPlaybackHandle',
    'HeadlessPlaybackHandle',
    'PlayerState',
    'CompanionSynchronizer',
    'SyncPhase',
    'SyncState',

    # Engine
    'NowPlayingEngine',
    'LyricsStatus',
    'ActiveLyricLine'
]
