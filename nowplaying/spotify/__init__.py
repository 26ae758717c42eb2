"""
Spotify integration package - playback observation for the single configured account

This package turns the Spotify Web API's "currently playing" endpoint into a
stream of immutable PlaybackSnapshot observations.

1. Client Module (client.py):
   - SpotifyPlaybackClient: async fetch() built on spotipy in a worker thread
   - Re-authentication on 401, timeout retry, UpstreamError translation
   - get_playback_client()/reset_playback_client(): singleton access

2. Models Module (models.py):
   - PlaybackSnapshot: canonical normalized observation, clamped on ingest
   - CurrentPlaybackView: the view handed to presentation code

Usage:
    client = get_playback_client()
    snapshot = await client.fetch()
    if snapshot.is_playing:
        print(snapshot.track_title, snapshot.all_artists)
"""

from .client import SpotifyPlaybackClient, get_playback_client, reset_playback_client
from .models import PlaybackSnapshot, CurrentPlaybackView

__all__ = [
    # Client interface
    'SpotifyPlaybackClient',
    'get_playback_client',
    'reset_playback_client',

    # Data models
    'PlaybackSnapshot',
    'CurrentPlaybackView'
]
