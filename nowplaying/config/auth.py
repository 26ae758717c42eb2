"""
Access token management for the Spotify Web API

This module is the application's access token provider. It exchanges a
long-lived refresh token for short-lived bearer tokens using Spotify's
refresh-token grant, caches the current token in memory and on disk, and
refreshes it shortly before it expires.

The interactive authorization code flow (login page, callback, cookie
storage) is not handled here: the refresh token is supplied through the
SPOTIFY_REFRESH_TOKEN environment variable or the configuration file, exactly
like a single-account server deployment.

Key features:
- Refresh-token grant against the Spotify accounts service
- Token persistence with restrictive file permissions (600)
- Expiry validation with a safety buffer
- Thread-safe: called from worker threads via asyncio.to_thread
- invalidate() to force a refresh after the API rejects a token

Failure to produce a token raises AuthError, the one error the engine lets
escape to its caller.
"""

import json
import logging
import time
import threading
from typing import Dict, Optional, Any
from datetime import datetime
import requests

from .settings import get_settings
from ..exceptions import AuthError


class SpotifyAuth:
    """
    Spotify access token provider backed by a refresh token

    The provider keeps at most one token in memory. get_token() returns it while
    it is valid, refreshes it when it is about to expire and raises AuthError
    when no token can be produced.
    """

    # Refresh this many seconds before the token actually expires
    SAFETY_BUFFER_SECONDS = 300

    def __init__(self, settings=None, session: Optional[requests.Session] = None):
        """
        Initialize authentication manager with application settings

        Args:
            settings: Settings instance (defaults to the global settings)
            session: Optional requests session, mainly for tests
        """
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(__name__)
        self.session = session or requests.Session()

        self.token_file = self.settings.get_token_storage_path()
        self.client_id = self.settings.spotify.client_id
        self.client_secret = self.settings.spotify.client_secret
        self.refresh_token = self.settings.spotify.refresh_token
        self.token_url = self.settings.spotify.token_url
        self.timeout = self.settings.network.request_timeout

        self._token_info: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

    def _load_token(self) -> Optional[Dict[str, Any]]:
        """
        Load stored token information from the token file

        Returns:
            Token dictionary if present and structurally valid, None otherwise
        """
        try:
            if self.token_file.exists():
                with open(self.token_file, 'r', encoding='utf-8') as f:
                    token_data = json.load(f)

                required_fields = ['access_token', 'expires_at']
                if all(field in token_data for field in required_fields) \
                        and token_data.get('client_id') == self.client_id:
                    return token_data
                self.logger.debug("Stored token ignored: invalid structure or different client")
        except Exception as e:
            self.logger.warning(f"Failed to load stored token: {e}")

        return None

    def _save_token(self, token_info: Dict[str, Any]) -> None:
        """
        Persist token information with owner-only permissions

        Args:
            token_info: Token dictionary to store
        """
        try:
            self.token_file.parent.mkdir(parents=True, exist_ok=True)

            token_data = {
                **token_info,
                'saved_at': datetime.now().isoformat(),
                'client_id': self.client_id
            }

            with open(self.token_file, 'w', encoding='utf-8') as f:
                json.dump(token_data, f, indent=2)

            try:
                self.token_file.chmod(0o600)
            except OSError:
                # Windows doesn't support chmod
                pass

        except Exception as e:
            self.logger.warning(f"Failed to save token: {e}")

    def _is_token_expired(self, token_info: Dict[str, Any]) -> bool:
        """
        Check if access token is expired or approaching expiration

        Args:
            token_info: Token information dictionary containing expires_at field

        Returns:
            True if the token expires within the safety buffer
        """
        if 'expires_at' not in token_info:
            return True

        return int(time.time()) >= (token_info['expires_at'] - self.SAFETY_BUFFER_SECONDS)

    def _refresh_token(self) -> Dict[str, Any]:
        """
        Exchange the refresh token for a new access token

        Returns:
            New token information dictionary

        Raises:
            AuthError: If credentials are missing or Spotify rejects the refresh
        """
        if not self.client_id or not self.client_secret or not self.refresh_token:
            raise AuthError(
                "Spotify credentials missing: set SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET "
                "and SPOTIFY_REFRESH_TOKEN"
            )

        data = {
            'grant_type': 'refresh_token',
            'refresh_token': self.refresh_token,
            'client_id': self.client_id,
            'client_secret': self.client_secret
        }

        try:
            response = self.session.post(
                self.token_url,
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
                data=data,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise AuthError(f"Spotify token refresh failed: {e}", details={'original_error': str(e)})

        if response.status_code != 200:
            raise AuthError(
                f"Spotify token refresh rejected (HTTP {response.status_code})",
                details={'status_code': response.status_code, 'body': response.text[:200]}
            )

        try:
            new_token = response.json()
            access_token = new_token['access_token']
        except (ValueError, KeyError) as e:
            raise AuthError(f"Malformed token response from Spotify: {e}")

        expires_in = int(new_token.get('expires_in', 3600))

        # Spotify may rotate the refresh token
        if new_token.get('refresh_token'):
            self.refresh_token = new_token['refresh_token']

        token_info = {
            'access_token': access_token,
            'token_type': new_token.get('token_type', 'Bearer'),
            'expires_in': expires_in,
            'expires_at': int(time.time()) + expires_in,
            'scope': new_token.get('scope', self.settings.spotify.scope)
        }

        self._save_token(token_info)
        self.logger.debug("Spotify access token refreshed")
        return token_info

    def get_token(self) -> str:
        """
        Get a valid access token, refreshing it when needed

        Returns:
            Bearer token string

        Raises:
            AuthError: If no valid token can be obtained
        """
        with self._lock:
            if not self._token_info:
                self._token_info = self._load_token()

            if not self._token_info or self._is_token_expired(self._token_info):
                self._token_info = None
                self._token_info = self._refresh_token()

            return self._token_info['access_token']

    def invalidate(self) -> None:
        """Drop the cached token so the next get_token() performs a refresh"""
        with self._lock:
            self._token_info = None
            if self.token_file.exists():
                try:
                    self.token_file.unlink()
                except OSError as e:
                    self.logger.debug(f"Failed to delete token file: {e}")

    def is_authenticated(self) -> bool:
        """True if a valid token can be obtained right now"""
        try:
            self.get_token()
            return True
        except AuthError:
            return False


# Global authentication instance management
_auth_instance: Optional[SpotifyAuth] = None


def get_auth() -> SpotifyAuth:
    """
    Get the global authentication instance (singleton pattern)

    Returns:
        Global SpotifyAuth instance
    """
    global _auth_instance
    if not _auth_instance:
        _auth_instance = SpotifyAuth()
    return _auth_instance


def reset_auth() -> None:
    """
    Reset the global authentication instance

    Clears only the in-memory instance; the token file is left in place.
    """
    global _auth_instance
    _auth_instance = None
