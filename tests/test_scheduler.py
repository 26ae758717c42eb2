"""Test lyric line selection and the recurring task scheduler"""

import asyncio
import pytest

from nowplaying.exceptions import AuthError
from nowplaying.lyrics.models import LyricLine, LyricSet
from nowplaying.sync.scheduler import LyricLineScheduler, TaskScheduler, active_line


def lyric_set(*offsets):
    return LyricSet(lines=tuple(LyricLine(offset, f"line at {offset}") for offset in offsets), source="test")


class TestActiveLine:
    """Test active line selection"""

    def test_boundaries(self):
        lines = lyric_set(0, 5000, 10000)

        assert active_line(lines, 0) == 0
        assert active_line(lines, 4999) == 0
        assert active_line(lines, 5000) == 1
        assert active_line(lines, 10000) == 2
        assert active_line(lines, 999999) == 2
        assert active_line(lines, -1) is None

    def test_before_first_line(self):
        assert active_line(lyric_set(3000, 6000), 2999) is None

    def test_ties_resolve_to_latest(self):
        assert active_line(lyric_set(0, 5000, 5000, 9000), 5000) == 2

    def test_empty_set(self):
        assert active_line(LyricSet.empty(), 5000) is None


class TestLyricLineScheduler:
    """Test change detection across ticks"""

    def test_update_reports_changes(self):
        scheduler = LyricLineScheduler()
        scheduler.load(lyric_set(0, 5000, 10000))

        assert scheduler.update(100) is True
        assert scheduler.active_index == 0
        assert scheduler.update(4000) is False
        assert scheduler.update(5000) is True
        assert scheduler.active_line.time_ms == 5000

    def test_load_resets_active_line(self):
        scheduler = LyricLineScheduler()
        scheduler.load(lyric_set(0, 5000))
        scheduler.update(6000)

        scheduler.load(lyric_set(0, 1000))
        assert scheduler.active_index is None
        assert scheduler.update(6000) is True
        assert scheduler.active_index == 1

    def test_clear(self):
        scheduler = LyricLineScheduler()
        scheduler.load(lyric_set(0))
        scheduler.update(10)

        scheduler.clear()

        assert scheduler.update(10) is False
        assert scheduler.active_line is None


class TestTaskScheduler:
    """Test named recurring tasks"""

    @pytest.mark.asyncio
    async def test_runs_sync_and_async_callbacks(self):
        scheduler = TaskScheduler()
        ticks = {'sync': 0, 'async': 0}

        def sync_tick():
            ticks['sync'] += 1

        async def async_tick():
            ticks['async'] += 1

        scheduler.schedule('sync', sync_tick, 0.01)
        scheduler.schedule('async', async_tick, 0.01)
        await asyncio.sleep(0.05)
        await scheduler.cancel_all()

        assert ticks['sync'] >= 2
        assert ticks['async'] >= 2
        assert scheduler.names == []

    @pytest.mark.asyncio
    async def test_delayed_first_tick(self):
        scheduler = TaskScheduler()
        ticks = []
        scheduler.schedule('later', lambda: ticks.append(1), 10.0, run_immediately=False)
        await asyncio.sleep(0.01)

        assert ticks == []
        assert scheduler.is_running('later')
        await scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_tasks_independently_cancellable(self):
        scheduler = TaskScheduler()
        scheduler.schedule('a', lambda: None, 0.01)
        scheduler.schedule('b', lambda: None, 0.01)

        assert scheduler.cancel('a') is True
        assert scheduler.cancel('a') is False
        await asyncio.sleep(0.02)

        assert scheduler.names == ['b']
        await scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected(self):
        scheduler = TaskScheduler()
        scheduler.schedule('poll', lambda: None, 1.0)
        with pytest.raises(ValueError):
            scheduler.schedule('poll', lambda: None, 1.0)
        with pytest.raises(ValueError):
            scheduler.schedule('other', lambda: None, 0)
        await scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_failing_tick_keeps_running(self):
        scheduler = TaskScheduler()
        calls = []

        def flaky():
            calls.append(1)
            raise RuntimeError("tick failed")

        scheduler.schedule('flaky', flaky, 0.01)
        await asyncio.sleep(0.05)

        assert len(calls) >= 2
        assert scheduler.is_running('flaky')
        await scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_fatal_error_surfaces_through_join(self):
        scheduler = TaskScheduler()
        other_ticks = []

        def fatal():
            raise AuthError("token revoked")

        scheduler.schedule('other', lambda: other_ticks.append(1), 0.01)
        scheduler.schedule('fatal', fatal, 0.01)

        with pytest.raises(AuthError):
            await asyncio.wait_for(scheduler.join(), timeout=1.0)

        assert scheduler.names == []
