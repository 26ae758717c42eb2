"""
Playback clock model

Keeps the believed current offset into the track between polls. Snapshots are
sampled every couple of seconds; in between, the offset is extrapolated from
the time elapsed since the last observation, so the active lyric line and the
companion stream do not stall between polls.

Rules:
- observe() replaces the whole state; nothing is patched
- while playing: estimate = progress + (now - observed_at), elapsed never negative
- while paused, stopped or before any observation: estimate is frozen
- the estimate never exceeds the track duration (the next poll corrects it)
"""

from typing import Callable, Optional

from ..spotify.models import PlaybackSnapshot
from ..utils.helpers import monotonic_ms


class PlaybackClock:
    """Extrapolating offset model for the primary stream"""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """
        Args:
            clock: Millisecond clock, must share its timebase with the snapshots'
                   observed_at_ms (defaults to monotonic_ms)
        """
        self._clock = clock or monotonic_ms
        self._snapshot: Optional[PlaybackSnapshot] = None

    @property
    def snapshot(self) -> Optional[PlaybackSnapshot]:
        return self._snapshot

    @property
    def is_playing(self) -> bool:
        return bool(self._snapshot and self._snapshot.is_playing)

    def now(self) -> float:
        return self._clock()

    def observe(self, snapshot: PlaybackSnapshot) -> None:
        """Replace the clock state with a fresh observation"""
        self._snapshot = snapshot

    def estimate_offset_ms(self, now_ms: Optional[float] = None) -> int:
        """
        Extrapolated offset into the current track

        Args:
            now_ms: Current time on the clock's timebase (defaults to now)

        Returns:
            Offset in milliseconds, 0 when nothing has been observed
        """
        snapshot = self._snapshot
        if snapshot is None:
            return 0

        offset = snapshot.progress_ms
        if snapshot.is_playing:
            now = self._clock() if now_ms is None else now_ms
            offset += int(max(0.0, now - snapshot.observed_at_ms))

        if snapshot.duration_ms is not None:
            offset = min(offset, snapshot.duration_ms)
        return int(offset)

    def freeze(self, now_ms: Optional[float] = None) -> None:
        """
        Stop extrapolating at the current estimate

        Used when a poll fails: the display holds its last position instead of
        running ahead on stale data.
        """
        if self._snapshot is None or not self._snapshot.is_playing:
            return
        now = self._clock() if now_ms is None else now_ms
        self._snapshot = self._snapshot.paused_at(self.estimate_offset_ms(now), now)

    def reset(self) -> None:
        self._snapshot = None
