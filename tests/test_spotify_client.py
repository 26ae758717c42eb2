"""Test the Spotify access token provider and playback fetcher"""

import json
import time
import pytest
import requests
from unittest.mock import Mock
from spotipy.exceptions import SpotifyException

from nowplaying.config.auth import SpotifyAuth
from nowplaying.exceptions import AuthError, UpstreamError
from nowplaying.spotify.client import SpotifyPlaybackClient


def token_response(status_code=200, body=None):
    response = Mock()
    response.status_code = status_code
    response.text = json.dumps(body or {})
    response.json.return_value = body if body is not None else {}
    return response


class TestSpotifyAuth:
    """Test the refresh-token grant"""

    def test_refresh_and_cache(self, settings):
        session = Mock()
        session.post.return_value = token_response(body={'access_token': 'abc', 'expires_in': 3600})
        auth = SpotifyAuth(settings, session=session)

        assert auth.get_token() == 'abc'
        assert auth.get_token() == 'abc'
        assert session.post.call_count == 1

        args, kwargs = session.post.call_args
        assert kwargs['data']['grant_type'] == 'refresh_token'
        assert kwargs['data']['refresh_token'] == 'test-refresh'

    def test_token_persisted(self, settings):
        session = Mock()
        session.post.return_value = token_response(body={'access_token': 'abc', 'expires_in': 3600})
        SpotifyAuth(settings, session=session).get_token()

        # A second provider picks the token up from disk without a refresh
        other_session = Mock()
        other = SpotifyAuth(settings, session=other_session)
        assert other.get_token() == 'abc'
        other_session.post.assert_not_called()

    def test_expiring_token_refreshed(self, settings):
        settings.get_token_storage_path().write_text(json.dumps({
            'access_token': 'old',
            'expires_at': int(time.time()) + 60,  # inside the safety buffer
            'client_id': 'test-client'
        }))
        session = Mock()
        session.post.return_value = token_response(body={'access_token': 'new', 'expires_in': 3600})

        assert SpotifyAuth(settings, session=session).get_token() == 'new'

    def test_rotated_refresh_token(self, settings):
        session = Mock()
        session.post.return_value = token_response(
            body={'access_token': 'abc', 'expires_in': 3600, 'refresh_token': 'rotated'}
        )
        auth = SpotifyAuth(settings, session=session)
        auth.get_token()
        assert auth.refresh_token == 'rotated'

    def test_missing_credentials(self, settings):
        settings.spotify.refresh_token = ""
        auth = SpotifyAuth(settings, session=Mock())
        with pytest.raises(AuthError):
            auth.get_token()
        assert auth.is_authenticated() is False

    def test_rejected_refresh(self, settings):
        session = Mock()
        session.post.return_value = token_response(status_code=400, body={'error': 'invalid_grant'})
        with pytest.raises(AuthError):
            SpotifyAuth(settings, session=session).get_token()

    def test_network_failure(self, settings):
        session = Mock()
        session.post.side_effect = requests.exceptions.ConnectionError("down")
        with pytest.raises(AuthError):
            SpotifyAuth(settings, session=session).get_token()

    def test_invalidate_forces_refresh(self, settings):
        session = Mock()
        session.post.side_effect = [
            token_response(body={'access_token': 'first', 'expires_in': 3600}),
            token_response(body={'access_token': 'second', 'expires_in': 3600}),
        ]
        auth = SpotifyAuth(settings, session=session)

        assert auth.get_token() == 'first'
        auth.invalidate()
        assert not settings.get_token_storage_path().exists()
        assert auth.get_token() == 'second'


@pytest.fixture
def auth():
    auth = Mock()
    auth.get_token.return_value = 'token'
    return auth


@pytest.fixture
def spotify(auth, settings, clock):
    """Playback client with the spotipy client replaced by a mock"""
    client = SpotifyPlaybackClient(auth=auth, settings=settings, clock=clock)
    api = Mock()
    client._client_for = Mock(return_value=api)
    return client, api


class TestSpotifyPlaybackClient:
    """Test snapshot fetching and error mapping"""

    @pytest.mark.asyncio
    async def test_fetch_snapshot(self, spotify, clock, sample_playing_data):
        client, api = spotify
        api.current_user_playing_track.return_value = sample_playing_data

        snapshot = await client.fetch()

        assert snapshot.track_id == 'test_track_123'
        assert snapshot.progress_ms == 65000
        assert snapshot.observed_at_ms == clock()

    @pytest.mark.asyncio
    async def test_no_content_is_not_playing(self, spotify):
        client, api = spotify
        api.current_user_playing_track.return_value = None

        snapshot = await client.fetch()

        assert snapshot.is_playing is False
        assert snapshot.track_id is None

    @pytest.mark.asyncio
    async def test_unauthorized_refreshes_once(self, spotify, auth, sample_playing_data):
        client, api = spotify
        api.current_user_playing_track.side_effect = [
            SpotifyException(401, -1, "The access token expired"),
            sample_playing_data,
        ]

        snapshot = await client.fetch()

        assert snapshot.track_id == 'test_track_123'
        auth.invalidate.assert_called_once()

    @pytest.mark.asyncio
    async def test_second_unauthorized_raises_auth_error(self, spotify):
        client, api = spotify
        api.current_user_playing_track.side_effect = SpotifyException(401, -1, "Invalid access token")

        with pytest.raises(AuthError):
            await client.fetch()

    @pytest.mark.asyncio
    async def test_token_failure_raises_auth_error(self, spotify, auth):
        client, _ = spotify
        auth.get_token.side_effect = AuthError("no refresh token")

        with pytest.raises(AuthError):
            await client.fetch()

    @pytest.mark.asyncio
    async def test_rate_limit(self, spotify):
        client, api = spotify
        api.current_user_playing_track.side_effect = SpotifyException(
            429, -1, "Too many requests", headers={'Retry-After': '3'}
        )

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch()

        assert exc_info.value.is_rate_limit
        assert api.current_user_playing_track.call_count == 1

    @pytest.mark.asyncio
    async def test_server_error_not_retried(self, spotify):
        client, api = spotify
        api.current_user_playing_track.side_effect = SpotifyException(503, -1, "Service unavailable")

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch()

        assert exc_info.value.status_code == 503
        assert api.current_user_playing_track.call_count == 1

    @pytest.mark.asyncio
    async def test_timeout_retried_once(self, spotify, sample_playing_data):
        client, api = spotify
        api.current_user_playing_track.side_effect = [
            requests.exceptions.ReadTimeout("slow"),
            sample_playing_data,
        ]

        snapshot = await client.fetch()

        assert snapshot.track_id == 'test_track_123'
        assert api.current_user_playing_track.call_count == 2

    @pytest.mark.asyncio
    async def test_repeated_timeout_raises(self, spotify):
        client, api = spotify
        api.current_user_playing_track.side_effect = requests.exceptions.ReadTimeout("slow")

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch()

        assert exc_info.value.is_timeout
        assert api.current_user_playing_track.call_count == 2
