"""
Exception classes for nowplaying-sync.

This module defines the custom exceptions used throughout the application.
Each exception carries a human-readable message and an optional details
dictionary, and each maps to one failure mode of the now-playing pipeline.

Exception Hierarchy:
    NowPlayingError (base)
        ConfigError - Configuration file or credential issues
        AuthError - No valid Spotify access token can be obtained
        UpstreamError - Network/HTTP failure from any data source
        ParseError - Malformed upstream payload

Propagation policy:
    Only AuthError escapes the engine to its caller. UpstreamError and
    ParseError are caught at the boundary of the source that raised them,
    logged, and degrade the affected feature for the current tick or track.

"Not found" (no lyrics, no companion video) is deliberately NOT an exception:
it is a normal terminal state represented by an empty LyricSet or a None
video id, and it is cacheable.
"""


class NowPlayingError(Exception):
    """
    Base exception for all nowplaying-sync errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g. source name,
                 status code, track id).

    Example:
        try:
            snapshot = await client.fetch()
        except NowPlayingError as e:
            logger.error(f"Fetch failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(NowPlayingError):
    """
    Raised when the configuration is unusable.

    Common causes:
        - config.yaml has invalid YAML syntax
        - Invalid field values (e.g. negative poll interval)
    """
    pass


class AuthError(NowPlayingError):
    """
    Raised when no valid Spotify bearer token can be obtained.

    This is the only error that propagates out of the engine: nothing useful
    can happen without a token, so it is never retried silently.

    Common causes:
        - SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET / SPOTIFY_REFRESH_TOKEN missing
        - Refresh token revoked or expired
        - Spotify rejected a freshly refreshed token (repeated 401)
    """
    pass


class UpstreamError(NowPlayingError):
    """
    Raised when an upstream data source fails at the network or HTTP level.

    Attributes:
        source: Name of the failing source ('spotify', 'lrclib', 'genius', ...).
        status_code: HTTP status code when one was received.
        is_timeout: True if the failure was a timeout. Timeouts are the only
                    failures retried (once) within the same pass.

    Example:
        raise UpstreamError(
            "Spotify returned HTTP 503",
            source="spotify",
            status_code=503,
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        source: str | None = None,
        status_code: int | None = None,
        is_timeout: bool = False
    ) -> None:
        super().__init__(message, details)
        self.source = source
        self.status_code = status_code
        self.is_timeout = is_timeout

    @property
    def is_rate_limit(self) -> bool:
        """True if the upstream answered 429 Too Many Requests."""
        return self.status_code == 429


class ParseError(NowPlayingError):
    """
    Raised when an upstream payload cannot be interpreted.

    Treated exactly like UpstreamError by callers: the source "had nothing".
    """
    pass
