"""
Companion playback handle interface

The companion synchronizer never talks to a concrete player. It drives a
CompanionPlaybackHandle that is built once per session and passed in
explicitly. A browser-embedded video player, a media player controlled over
IPC, or the in-process simulation below all fit behind the same interface.

HeadlessPlaybackHandle simulates a player with its own clock. It is used by the
CLI when no real player is attached and by the tests; its `rate` lets it run
slightly fast or slow so drift correction can be observed.
"""

import time
from collections import deque
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Deque, List, Optional, Tuple

from ..utils.logger import get_logger


class PlayerState(Enum):
    """Companion player states, as reported by get_state()"""
    UNSTARTED = "unstarted"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


class CompanionPlaybackHandle(ABC):
    """Commands and queries the synchronizer needs from a companion player"""

    @abstractmethod
    async def load(self, video_id: str) -> None:
        """Load a video; playback position starts at 0"""

    @abstractmethod
    async def play(self) -> None:
        """Start or resume playback"""

    @abstractmethod
    async def pause(self) -> None:
        """Pause playback"""

    @abstractmethod
    async def seek(self, offset_ms: int) -> None:
        """Jump to an offset in milliseconds"""

    @abstractmethod
    async def get_current_time_ms(self) -> float:
        """Current playback position in milliseconds"""

    @abstractmethod
    async def get_state(self) -> PlayerState:
        """Current player state"""


class HeadlessPlaybackHandle(CompanionPlaybackHandle):
    """
    In-process simulated player

    Attributes:
        video_id: Loaded video (None before the first load)
        duration_ms: Length after which the player reports ENDED (None = endless)
        rate: Playback speed relative to real time (1.0 = exact)
        commands: Recent (command, argument) tuples, newest last, bounded by history
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None, rate: float = 1.0,
                 duration_ms: Optional[int] = None, history: int = 256):
        """
        Args:
            clock: Millisecond clock (defaults to time.monotonic() * 1000)
            rate: Playback speed relative to the clock
            duration_ms: Video length, None for endless
            history: Number of commands kept in `commands`
        """
        self.logger = get_logger(__name__)
        self._clock = clock or (lambda: time.monotonic() * 1000.0)
        self.rate = rate
        self.duration_ms = duration_ms

        self.video_id: Optional[str] = None
        self.commands: Deque[Tuple[str, object]] = deque(maxlen=history)
        self._state = PlayerState.UNSTARTED
        self._position_ms = 0.0
        self._anchor_ms = self._clock()

    def _position(self) -> float:
        position = self._position_ms
        if self._state == PlayerState.PLAYING:
            position += (self._clock() - self._anchor_ms) * self.rate
        if self.duration_ms is not None:
            position = min(position, float(self.duration_ms))
        return max(0.0, position)

    def _settle(self) -> None:
        """Fold elapsed playing time into the stored position"""
        self._position_ms = self._position()
        self._anchor_ms = self._clock()

    async def load(self, video_id: str) -> None:
        self.commands.append(('load', video_id))
        self.video_id = video_id
        self._state = PlayerState.UNSTARTED
        self._position_ms = 0.0
        self._anchor_ms = self._clock()
        self.logger.debug(f"Companion loaded: {video_id}")

    async def play(self) -> None:
        self.commands.append(('play', None))
        if self.video_id is None:
            return
        self._settle()
        self._state = PlayerState.PLAYING

    async def pause(self) -> None:
        self.commands.append(('pause', None))
        if self.video_id is None:
            return
        self._settle()
        self._state = PlayerState.PAUSED

    async def seek(self, offset_ms: int) -> None:
        self.commands.append(('seek', int(offset_ms)))
        self._position_ms = float(max(0, offset_ms))
        self._anchor_ms = self._clock()
        if self._state == PlayerState.ENDED:
            self._state = PlayerState.PAUSED

    async def get_current_time_ms(self) -> float:
        return self._position()

    async def get_state(self) -> PlayerState:
        if (self._state == PlayerState.PLAYING and self.duration_ms is not None
                and self._position() >= self.duration_ms):
            self._settle()
            self._state = PlayerState.ENDED
        return self._state

    def command_names(self) -> List[str]:
        return [name for name, _ in self.commands]
