"""Test the playback clock model"""

from conftest import FakeClock, make_snapshot
from nowplaying.sync.clock import PlaybackClock


class TestPlaybackClock:
    """Test offset extrapolation"""

    def test_no_observation(self):
        assert PlaybackClock(FakeClock()).estimate_offset_ms() == 0

    def test_playing_extrapolates(self):
        clock = FakeClock()
        playback = PlaybackClock(clock)
        playback.observe(make_snapshot(progress_ms=10000, is_playing=True, observed_at_ms=clock()))

        clock.advance(2500)

        assert playback.estimate_offset_ms() == 12500

    def test_paused_is_frozen(self):
        clock = FakeClock()
        playback = PlaybackClock(clock)
        playback.observe(make_snapshot(progress_ms=10000, is_playing=False, observed_at_ms=clock()))

        clock.advance(2500)

        assert playback.estimate_offset_ms() == 10000

    def test_explicit_now(self):
        playback = PlaybackClock(FakeClock())
        playback.observe(make_snapshot(progress_ms=10000, is_playing=True, observed_at_ms=500.0))
        assert playback.estimate_offset_ms(now_ms=3000.0) == 12500

    def test_clock_behind_observation_never_goes_backwards(self):
        clock = FakeClock()
        playback = PlaybackClock(clock)
        playback.observe(make_snapshot(progress_ms=10000, is_playing=True, observed_at_ms=clock() + 1000))
        assert playback.estimate_offset_ms() == 10000

    def test_clamped_to_duration(self):
        clock = FakeClock()
        playback = PlaybackClock(clock)
        playback.observe(make_snapshot(progress_ms=199000, duration_ms=200000, observed_at_ms=clock()))

        clock.advance(5000)

        assert playback.estimate_offset_ms() == 200000

    def test_observe_replaces_state(self):
        clock = FakeClock()
        playback = PlaybackClock(clock)
        playback.observe(make_snapshot(progress_ms=10000, observed_at_ms=clock()))
        clock.advance(1000)
        playback.observe(make_snapshot(track_id="track-2", progress_ms=500, observed_at_ms=clock()))

        assert playback.estimate_offset_ms() == 500
        assert playback.snapshot.track_id == "track-2"

    def test_freeze(self):
        clock = FakeClock()
        playback = PlaybackClock(clock)
        playback.observe(make_snapshot(progress_ms=10000, observed_at_ms=clock()))

        clock.advance(2000)
        playback.freeze()
        clock.advance(5000)

        assert playback.estimate_offset_ms() == 12000
        assert playback.is_playing is False

    def test_reset(self):
        playback = PlaybackClock(FakeClock())
        playback.observe(make_snapshot(progress_ms=10000))
        playback.reset()
        assert playback.snapshot is None
        assert playback.estimate_offset_ms() == 0
