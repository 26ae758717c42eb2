"""Test Spotify playback models"""

import pytest

from nowplaying.spotify.models import CurrentPlaybackView, PlaybackSnapshot


class TestPlaybackSnapshot:
    """Test snapshot ingestion from currently-playing payloads"""

    def test_snapshot_from_track_data(self, sample_playing_data):
        """Test PlaybackSnapshot creation from a track payload"""
        snapshot = PlaybackSnapshot.from_spotify_data(sample_playing_data, observed_at_ms=5000.0)

        assert snapshot.is_playing is True
        assert snapshot.track_id == 'test_track_123'
        assert snapshot.track_title == 'Test Song'
        assert snapshot.artists == ('Test Artist', 'Guest Artist')
        assert snapshot.progress_ms == 65000
        assert snapshot.duration_ms == 210000
        assert snapshot.album_name == 'Test Album'
        assert snapshot.artwork_url == 'https://i.scdn.co/image/large'
        assert snapshot.observed_at_ms == 5000.0

    def test_snapshot_properties(self, sample_playing_data):
        snapshot = PlaybackSnapshot.from_spotify_data(sample_playing_data)

        assert snapshot.has_track
        assert snapshot.primary_artist == 'Test Artist'
        assert snapshot.all_artists == 'Test Artist, Guest Artist'

    def test_nothing_playing(self):
        """No content (None) and payloads without an item mean nothing playing"""
        for data in (None, {}, {'is_playing': True, 'item': None}, "garbage"):
            snapshot = PlaybackSnapshot.from_spotify_data(data, observed_at_ms=10.0)
            assert snapshot.is_playing is False
            assert snapshot.track_id is None
            assert not snapshot.has_track
            assert snapshot.primary_artist == ""
            assert snapshot.observed_at_ms == 10.0

    def test_progress_clamped_to_duration(self, sample_playing_data):
        sample_playing_data['progress_ms'] = 999999
        snapshot = PlaybackSnapshot.from_spotify_data(sample_playing_data)
        assert snapshot.progress_ms == 210000

        sample_playing_data['progress_ms'] = -50
        snapshot = PlaybackSnapshot.from_spotify_data(sample_playing_data)
        assert snapshot.progress_ms == 0

    def test_malformed_fields_become_none(self, sample_playing_data):
        item = sample_playing_data['item']
        item['duration_ms'] = "not a number"
        item['album'] = {'name': None, 'images': "nope"}
        item['artists'] = [{'name': ''}, "bogus", {'name': 'Real Artist'}]
        sample_playing_data['is_playing'] = "yes"

        snapshot = PlaybackSnapshot.from_spotify_data(sample_playing_data)

        assert snapshot.duration_ms is None
        assert snapshot.album_name is None
        assert snapshot.artwork_url is None
        assert snapshot.artists == ('Real Artist',)
        assert snapshot.is_playing is False

    def test_episode_payload(self):
        """Episodes carry images on the item and a show instead of an album"""
        data = {
            'is_playing': True,
            'progress_ms': 1000,
            'currently_playing_type': 'episode',
            'item': {
                'id': 'episode_1',
                'name': 'Episode One',
                'duration_ms': 3600000,
                'images': [{'url': 'https://i.scdn.co/image/episode'}],
                'show': {'name': 'The Show', 'images': []}
            }
        }
        snapshot = PlaybackSnapshot.from_spotify_data(data)

        assert snapshot.track_id == 'episode_1'
        assert snapshot.artists == ()
        assert snapshot.album_name == 'The Show'
        assert snapshot.artwork_url == 'https://i.scdn.co/image/episode'

    def test_snapshot_is_immutable(self, sample_playing_data):
        snapshot = PlaybackSnapshot.from_spotify_data(sample_playing_data)
        with pytest.raises(Exception):
            snapshot.progress_ms = 0

    def test_paused_at(self, sample_playing_data):
        snapshot = PlaybackSnapshot.from_spotify_data(sample_playing_data, observed_at_ms=0.0)
        paused = snapshot.paused_at(70000, observed_at_ms=5000.0)

        assert paused.is_playing is False
        assert paused.progress_ms == 70000
        assert paused.observed_at_ms == 5000.0
        assert paused.track_id == snapshot.track_id
        assert snapshot.is_playing is True


class TestCurrentPlaybackView:
    """Test the presentation view"""

    def test_view_from_snapshot(self, sample_playing_data):
        snapshot = PlaybackSnapshot.from_spotify_data(sample_playing_data)
        view = CurrentPlaybackView.from_snapshot(snapshot, progress_ms=65000)

        assert view.track_title == 'Test Song'
        assert view.artists == ('Test Artist', 'Guest Artist')
        assert view.artwork_url == 'https://i.scdn.co/image/large'
        assert view.progress_str == "1:05 / 3:30"
        assert view.stale is False

    def test_view_without_snapshot(self):
        view = CurrentPlaybackView.from_snapshot(None, progress_ms=0)
        assert view.track_title is None
        assert view.is_playing is False
        assert view.progress_str == "0:00"
