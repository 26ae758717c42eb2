"""
Configuration management package for nowplaying-sync

Two components:

1. Settings Management (settings.py):
   - Application configuration from YAML files and environment variables
   - Settings validation
   - Singleton access through get_settings()/reload_settings()

2. Access Token Management (auth.py):
   - Spotify refresh-token grant and token caching
   - The access token provider consumed by the playback snapshot fetcher

Usage:

    from nowplaying.config import get_settings, get_auth

    settings = get_settings()
    token = get_auth().get_token()

Configuration sources, in order of precedence:
1. Environment variables (credentials, refresh token)
2. YAML configuration files
3. Default values
"""

from .settings import get_settings, reload_settings, Settings
from .auth import get_auth, reset_auth, SpotifyAuth

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
    'get_auth',
    'reset_auth',
    'SpotifyAuth'
]
