"""
Companion stream synchronizer

Keeps an externally controlled companion player aligned with the primary
stream's estimated offset.

State machine:
    UNLOADED --load()--> LOADED --drift check--> CORRECTING --seek--> LOADED
    any --reset()--> UNLOADED (track change, companion unavailable)

A load() still awaiting the handle when reset() or a newer load() runs is
superseded and sends no further commands.

Drift policy:
- drift = |companion position - estimated offset|
- no seek while drift <= threshold (hysteresis)
- no two corrective seeks within the cooldown window, unless the check is
  forced (play/pause transition, fresh load)
- a companion that has ENDED is never sought
- play/pause state is realigned on every check, independent of drift

The companion's own clock is not perfectly steady and the primary offset is
only sampled every poll, so correcting on every small difference would seek
constantly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..config.settings import get_settings
from ..utils.helpers import monotonic_ms
from ..utils.logger import get_logger
from .handle import CompanionPlaybackHandle, PlayerState


class SyncPhase(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    CORRECTING = "correcting"


@dataclass
class SyncState:
    """
    Synchronizer-owned state

    Attributes:
        phase: Current state machine phase
        video_id: Loaded companion video
        track_id: Primary track the video belongs to
        last_correction_ms: Time of the last load or corrective seek
        corrections: Number of corrective seeks for the current video
    """
    phase: SyncPhase = SyncPhase.UNLOADED
    video_id: Optional[str] = None
    track_id: Optional[str] = None
    last_correction_ms: Optional[float] = None
    corrections: int = 0


class CompanionSynchronizer:
    """Drives a CompanionPlaybackHandle to follow the primary stream"""

    def __init__(self, handle: CompanionPlaybackHandle, settings=None,
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            handle: Companion player to drive
            settings: Settings instance (defaults to global settings)
            clock: Millisecond clock for the cooldown (defaults to monotonic_ms)
        """
        self.handle = handle
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self._clock = clock or monotonic_ms

        self.drift_threshold_ms = self.settings.companion.drift_threshold_ms
        self.cooldown_ms = self.settings.companion.cooldown_ms

        self.state = SyncState()
        self._generation = 0

    @property
    def phase(self) -> SyncPhase:
        return self.state.phase

    @property
    def is_loaded(self) -> bool:
        return self.state.phase != SyncPhase.UNLOADED

    @property
    def video_id(self) -> Optional[str]:
        return self.state.video_id

    def _superseded(self, generation: int) -> bool:
        return generation != self._generation

    async def load(self, video_id: str, track_id: Optional[str], offset_ms: int, is_playing: bool) -> bool:
        """
        Load a companion video and align it with the primary stream

        A reset() or a newer load() while this one is awaiting the handle
        supersedes it: the remaining commands are not sent.

        Args:
            video_id: Companion video to load
            track_id: Primary track the video belongs to
            offset_ms: Current estimated offset of the primary stream
            is_playing: Whether the primary stream is playing

        Returns:
            True if the load completed, False if it was superseded
        """
        self._generation += 1
        generation = self._generation
        self.state = SyncState(phase=SyncPhase.LOADED, video_id=video_id, track_id=track_id)

        await self.handle.load(video_id)
        if self._superseded(generation):
            return await self._abandon_load(video_id)

        await self.handle.seek(int(offset_ms))
        if self._superseded(generation):
            return await self._abandon_load(video_id)

        if is_playing:
            await self.handle.play()
        else:
            await self.handle.pause()
        if self._superseded(generation):
            return await self._abandon_load(video_id)

        self.state.last_correction_ms = self._clock()
        self.logger.debug(f"Companion {video_id} loaded at {offset_ms}ms ({'playing' if is_playing else 'paused'})")
        return True

    async def _abandon_load(self, video_id: str) -> bool:
        # Nothing newer owns the handle: make sure the abandoned video is not left playing
        if self.state.phase == SyncPhase.UNLOADED:
            await self.handle.pause()
        self.logger.debug(f"Companion load of {video_id} superseded")
        return False

    async def _align_play_state(self, is_playing: bool, player_state: PlayerState) -> None:
        if is_playing and player_state in (PlayerState.PAUSED, PlayerState.UNSTARTED):
            await self.handle.play()
        elif not is_playing and player_state == PlayerState.PLAYING:
            await self.handle.pause()

    async def check_drift(self, offset_ms: int, is_playing: bool, force: bool = False) -> bool:
        """
        Compare the companion position with the primary offset and correct it

        Args:
            offset_ms: Current estimated offset of the primary stream
            is_playing: Whether the primary stream is playing
            force: Bypass the cooldown window

        Returns:
            True if a corrective seek was issued
        """
        if self.state.phase == SyncPhase.UNLOADED:
            return False
        generation = self._generation
        state = self.state

        player_state = await self.handle.get_state()
        await self._align_play_state(is_playing, player_state)

        if player_state == PlayerState.ENDED or self._superseded(generation):
            return False

        companion_ms = await self.handle.get_current_time_ms()
        drift = abs(companion_ms - offset_ms)
        if drift <= self.drift_threshold_ms or self._superseded(generation):
            return False

        now = self._clock()
        last = state.last_correction_ms
        if not force and last is not None and now - last < self.cooldown_ms:
            self.logger.debug(f"Companion drift {drift:.0f}ms inside cooldown, not correcting")
            return False

        state.phase = SyncPhase.CORRECTING
        try:
            await self.handle.seek(int(offset_ms))
        finally:
            if state.phase == SyncPhase.CORRECTING:
                state.phase = SyncPhase.LOADED
        state.last_correction_ms = now
        state.corrections += 1
        self.logger.debug(f"Companion drift {drift:.0f}ms corrected, seek to {offset_ms}ms")
        return True

    async def on_play_state(self, offset_ms: int, is_playing: bool) -> bool:
        """Play/pause transition of the primary stream: forced check"""
        return await self.check_drift(offset_ms, is_playing, force=True)

    async def reset(self) -> None:
        """
        Discard the current companion (track change or no companion available)

        A loaded video is paused so it does not keep playing the previous track.
        Any load() still awaiting the handle is superseded.
        """
        previous = self.state
        self._generation += 1
        self.state = SyncState()
        if previous.phase != SyncPhase.UNLOADED:
            await self.handle.pause()
            self.logger.debug(f"Companion {previous.video_id} unloaded")
