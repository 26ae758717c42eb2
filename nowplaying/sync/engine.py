"""
Now-playing engine - composition of fetcher, clock, lyrics and companion

Runs three named recurring tasks on one event loop:

- poll (2 s): fetch a snapshot, update the clock, react to track changes and
  play/pause transitions
- lyrics (500 ms): re-evaluate the active lyric line from the clock estimate
- drift (4 s, only with a companion handle): companion drift correction

Lyric resolution and companion lookup are started as background tasks on a
track change and never awaited by the poll tick. Their results are applied
only if the engine is still on the track they were started for; stale
results are discarded, the requests themselves are not cancelled.

Failure policy: AuthError ends the engine; a failed poll freezes the clock
and the display until the next successful poll; everything else degrades the
affected feature for the current track.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Set

from ..config.settings import get_settings
from ..exceptions import AuthError
from ..lyrics.models import LyricSet
from ..lyrics.resolver import get_lyric_resolver
from ..spotify.client import get_playback_client
from ..spotify.models import CurrentPlaybackView, PlaybackSnapshot
from ..utils.helpers import monotonic_ms
from ..utils.logger import get_logger
from ..ytmusic.locator import get_companion_locator
from .clock import PlaybackClock
from .handle import CompanionPlaybackHandle
from .scheduler import LyricLineScheduler, TaskScheduler
from .synchronizer import CompanionSynchronizer


class LyricsStatus(Enum):
    """
    Lyric state of the current track, as shown to the user

    Values:
        IDLE: Nothing is playing
        PENDING: Resolution in progress
        FOUND: Lyrics available
        NOT_FOUND: No source had lyrics (explicit "no lyrics" state)
        DISABLED: Lyrics turned off in configuration
    """
    IDLE = "idle"
    PENDING = "pending"
    FOUND = "found"
    NOT_FOUND = "not_found"
    DISABLED = "disabled"


@dataclass(frozen=True)
class ActiveLyricLine:
    """The lyric line active now"""
    index: int
    text: str
    time_ms: int


LyricChangeCallback = Callable[[Optional[ActiveLyricLine]], None]
TrackChangeCallback = Callable[[PlaybackSnapshot], None]


class NowPlayingEngine:
    """
    Single-account now-playing synchronization engine

    Collaborators are injected; omitted ones default to the global singletons
    (fetcher, resolver, locator). Without a companion handle the drift task
    and companion lookups are disabled.
    """

    def __init__(
        self,
        fetcher=None,
        resolver=None,
        locator=None,
        handle: Optional[CompanionPlaybackHandle] = None,
        settings=None,
        clock: Optional[Callable[[], float]] = None,
        on_lyric_change: Optional[LyricChangeCallback] = None,
        on_track_change: Optional[TrackChangeCallback] = None
    ):
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self._now = clock or monotonic_ms

        if fetcher is None:
            fetcher = get_playback_client()
        if resolver is None and self.settings.lyrics.enabled:
            resolver = get_lyric_resolver()
        if locator is None and handle is not None and self.settings.companion.enabled:
            locator = get_companion_locator()

        self.fetcher = fetcher
        self.resolver = resolver
        self.locator = locator

        self.playback_clock = PlaybackClock(self._now)
        self.lyric_scheduler = LyricLineScheduler()
        self.synchronizer = CompanionSynchronizer(handle, self.settings, self._now) if handle else None
        self.tasks = TaskScheduler()

        self.on_lyric_change = on_lyric_change
        self.on_track_change = on_track_change

        self.lyrics_status = LyricsStatus.IDLE
        self.fetch_failing = False
        self._track_id: Optional[str] = None
        self._background: Set[asyncio.Task] = set()

    # Views

    @property
    def track_id(self) -> Optional[str]:
        return self._track_id

    @property
    def lyric_set(self) -> LyricSet:
        return self.lyric_scheduler.lyric_set

    def current_view(self) -> CurrentPlaybackView:
        """Current playback as seen by the presentation layer"""
        return CurrentPlaybackView.from_snapshot(
            self.playback_clock.snapshot,
            self.playback_clock.estimate_offset_ms(),
            stale=self.fetch_failing
        )

    @property
    def active_lyric_line(self) -> Optional[ActiveLyricLine]:
        index = self.lyric_scheduler.active_index
        if index is None:
            return None
        line = self.lyric_scheduler.lyric_set[index]
        return ActiveLyricLine(index=index, text=line.text, time_ms=line.time_ms)

    # Lifecycle

    def start(self) -> None:
        """Schedule the recurring tasks on the running loop"""
        playback = self.settings.playback
        self.tasks.schedule('poll', self.poll_once, playback.poll_interval)
        self.tasks.schedule('lyrics', self.lyric_tick, playback.lyric_tick_interval)
        if self.synchronizer is not None:
            self.tasks.schedule(
                'drift', self.drift_tick, self.settings.companion.check_interval, run_immediately=False
            )
        self.logger.debug(f"Engine started with tasks: {', '.join(self.tasks.names)}")

    async def run(self) -> None:
        """
        Run until cancelled or until a fatal error

        Raises:
            AuthError: When no access token can be obtained
        """
        self.start()
        try:
            await self.tasks.join()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Cancel recurring tasks and pending background lookups"""
        await self.tasks.cancel_all()
        background = list(self._background)
        for task in background:
            task.cancel()
        if background:
            await asyncio.gather(*background, return_exceptions=True)
        self._background.clear()

    async def settle(self) -> None:
        """Wait for the pending lyric and companion lookups to complete"""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # Ticks

    async def poll_once(self) -> Optional[PlaybackSnapshot]:
        """
        One poll cycle

        Returns:
            The new snapshot, or None if the fetch failed

        Raises:
            AuthError: Propagated from the fetcher
        """
        try:
            snapshot = await self.fetcher.fetch()
        except AuthError:
            raise
        except Exception as e:
            if not self.fetch_failing:
                self.logger.warning(f"Playback fetch failed, holding last state: {e}")
            else:
                self.logger.debug(f"Playback fetch still failing: {e}")
            self.fetch_failing = True
            self.playback_clock.freeze(self._now())
            return None

        if self.fetch_failing:
            self.logger.debug("Playback fetch recovered")
        self.fetch_failing = False

        previous = self.playback_clock.snapshot
        self.playback_clock.observe(snapshot)

        if snapshot.track_id != self._track_id:
            await self._on_track_change(snapshot)
        elif previous is not None and previous.is_playing != snapshot.is_playing:
            self.logger.debug(f"Playback {'resumed' if snapshot.is_playing else 'paused'}")
            if self.synchronizer is not None:
                await self.synchronizer.on_play_state(
                    self.playback_clock.estimate_offset_ms(), snapshot.is_playing
                )

        return snapshot

    def lyric_tick(self) -> None:
        """Re-evaluate the active lyric line; notify on change"""
        changed = self.lyric_scheduler.update(self.playback_clock.estimate_offset_ms())
        if changed and self.on_lyric_change is not None:
            self.on_lyric_change(self.active_lyric_line)

    async def drift_tick(self) -> None:
        """Periodic companion drift check (skipped while fetches are failing)"""
        if self.synchronizer is None or self.fetch_failing:
            return
        await self.synchronizer.check_drift(
            self.playback_clock.estimate_offset_ms(), self.playback_clock.is_playing
        )

    # Track changes

    async def _on_track_change(self, snapshot: PlaybackSnapshot) -> None:
        had_line = self.lyric_scheduler.active_index is not None
        self._track_id = snapshot.track_id
        self.lyric_scheduler.clear()
        if had_line and self.on_lyric_change is not None:
            self.on_lyric_change(None)

        if self.synchronizer is not None:
            await self.synchronizer.reset()

        if not snapshot.has_track:
            self.lyrics_status = LyricsStatus.IDLE
            self.logger.debug("Nothing playing")
            return

        self.logger.info(f"Now playing: {snapshot.all_artists} - {snapshot.track_title}")
        if self.on_track_change is not None:
            self.on_track_change(snapshot)

        if self.resolver is not None:
            self.lyrics_status = LyricsStatus.PENDING
            self._spawn(self._load_lyrics(snapshot))
        else:
            self.lyrics_status = LyricsStatus.DISABLED

        if self.synchronizer is not None and self.locator is not None:
            self._spawn(self._load_companion(snapshot))

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _is_current(self, snapshot: PlaybackSnapshot) -> bool:
        return self._track_id == snapshot.track_id

    async def _load_lyrics(self, snapshot: PlaybackSnapshot) -> None:
        try:
            lyric_set = await self.resolver.resolve(
                snapshot.track_title or "",
                snapshot.primary_artist,
                snapshot.duration_ms
            )
        except Exception as e:
            self.logger.warning(f"Lyric resolution failed: {e}")
            lyric_set = LyricSet.empty()

        if not self._is_current(snapshot):
            self.logger.debug(f"Discarding stale lyrics for {snapshot.track_id}")
            return

        self.lyric_scheduler.load(lyric_set)
        self.lyrics_status = LyricsStatus.FOUND if lyric_set else LyricsStatus.NOT_FOUND
        self.logger.debug(f"Lyrics status for {snapshot.track_id}: {self.lyrics_status.value}")
        self.lyric_tick()

    async def _load_companion(self, snapshot: PlaybackSnapshot) -> None:
        try:
            video_id = await self.locator.find(
                snapshot.track_title or "",
                snapshot.primary_artist,
                snapshot.duration_ms
            )
        except Exception as e:
            self.logger.warning(f"Companion lookup failed: {e}")
            video_id = None

        if not self._is_current(snapshot):
            self.logger.debug(f"Discarding stale companion result for {snapshot.track_id}")
            return
        if not video_id:
            self.logger.debug(f"No companion video for {snapshot.track_id}")
            return

        try:
            loaded = await self.synchronizer.load(
                video_id,
                snapshot.track_id,
                self.playback_clock.estimate_offset_ms(),
                self.playback_clock.is_playing
            )
        except Exception as e:
            self.logger.warning(f"Companion load failed: {e}")
            return

        if loaded and not self._is_current(snapshot):
            self.logger.debug(f"Track changed while loading companion {video_id}, unloading")
            await self.synchronizer.reset()
