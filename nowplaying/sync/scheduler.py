"""
Lyric line selection and the recurring task scheduler

Two pieces live here:

1. Lyric line selection
   - active_line(): the greatest index whose offset is <= the current offset,
     None before the first line or for an empty set; ties resolve to the
     latest line
   - LyricLineScheduler: remembers the active index so each tick can report
     whether the line changed

2. TaskScheduler
   - Named recurring asyncio tasks (poll, lyric tick, drift check) on one loop
   - Each task is independently cancellable
   - A failing tick is logged and the task keeps running; fatal errors
     (AuthError by default) end the task and surface through join()
"""

import asyncio
import inspect
from bisect import bisect_right
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Type, Union

from ..exceptions import AuthError
from ..lyrics.models import LyricLine, LyricSet
from ..utils.logger import get_logger


def _index_for(offsets: Sequence[int], offset_ms: float) -> Optional[int]:
    index = bisect_right(offsets, offset_ms) - 1
    return index if index >= 0 else None


def active_line(lyric_set: LyricSet, offset_ms: float) -> Optional[int]:
    """
    Index of the line active at the given offset

    Args:
        lyric_set: Lines in non-decreasing time order
        offset_ms: Current (possibly extrapolated) offset

    Returns:
        Index into lyric_set, or None
    """
    if not lyric_set:
        return None
    return _index_for(lyric_set.offsets, offset_ms)


class LyricLineScheduler:
    """Tracks the active line of one LyricSet across ticks"""

    def __init__(self):
        self._lyric_set = LyricSet.empty()
        self._offsets: List[int] = []
        self._index: Optional[int] = None

    @property
    def lyric_set(self) -> LyricSet:
        return self._lyric_set

    @property
    def active_index(self) -> Optional[int]:
        return self._index

    @property
    def active_line(self) -> Optional[LyricLine]:
        if self._index is None:
            return None
        return self._lyric_set[self._index]

    def load(self, lyric_set: LyricSet) -> None:
        """Switch to a new set; the active line is unknown until the next update"""
        self._lyric_set = lyric_set
        self._offsets = lyric_set.offsets
        self._index = None

    def clear(self) -> None:
        self.load(LyricSet.empty())

    def update(self, offset_ms: float) -> bool:
        """
        Re-evaluate the active line

        Args:
            offset_ms: Current offset estimate

        Returns:
            True if the active line changed
        """
        index = _index_for(self._offsets, offset_ms) if self._offsets else None
        changed = index != self._index
        self._index = index
        return changed


TickCallback = Callable[[], Union[Awaitable[None], None]]


class TaskScheduler:
    """
    Named recurring tasks on the running event loop

    Ticks are spaced by `interval` seconds measured from the start of the
    previous tick; a tick that overruns its interval is followed immediately
    by the next one, never by two at once.
    """

    def __init__(self, fatal_exceptions: Tuple[Type[BaseException], ...] = (AuthError,)):
        self.logger = get_logger(__name__)
        self.fatal_exceptions = fatal_exceptions
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def names(self) -> List[str]:
        return [name for name, task in self._tasks.items() if not task.done()]

    def is_running(self, name: str) -> bool:
        task = self._tasks.get(name)
        return task is not None and not task.done()

    def schedule(self, name: str, callback: TickCallback, interval: float,
                 run_immediately: bool = True) -> asyncio.Task:
        """
        Start a recurring task

        Args:
            name: Unique task name
            callback: Sync or async callable run on every tick
            interval: Seconds between tick starts
            run_immediately: Run the first tick now instead of after one interval

        Returns:
            The asyncio task running the loop

        Raises:
            ValueError: If a task with this name is already running
        """
        if interval <= 0:
            raise ValueError(f"Interval must be positive: {interval}")
        if self.is_running(name):
            raise ValueError(f"Task already scheduled: {name}")

        task = asyncio.create_task(self._run(name, callback, interval, run_immediately), name=f"nowplaying:{name}")
        self._tasks[name] = task
        return task

    async def _run(self, name: str, callback: TickCallback, interval: float, run_immediately: bool) -> None:
        loop = asyncio.get_running_loop()
        if not run_immediately:
            await asyncio.sleep(interval)

        while True:
            started = loop.time()
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except self.fatal_exceptions:
                self.logger.debug(f"Task '{name}' stopped by fatal error")
                raise
            except Exception as e:
                self.logger.warning(f"Task '{name}' tick failed: {e}")

            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, interval - elapsed))

    def cancel(self, name: str) -> bool:
        """Cancel one task; returns True if it was running"""
        task = self._tasks.pop(name, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def cancel_all(self) -> None:
        """Cancel every task and wait for them to finish"""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def join(self) -> None:
        """
        Wait until every task has finished

        Raises:
            The first fatal exception raised by a task; remaining tasks are
            cancelled first
        """
        while True:
            for task in list(self._tasks.values()):
                if task.done() and not task.cancelled() and task.exception() is not None:
                    error = task.exception()
                    await self.cancel_all()
                    raise error

            pending = [task for task in self._tasks.values() if not task.done()]
            if not pending:
                return
            await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
