"""
Utilities package
Common helpers, TTL cache, logging, and retry utilities
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    get_current_log_file
)
from .helpers import (
    monotonic_ms,
    format_duration,
    format_timestamp_ms,
    calculate_similarity,
    normalize_artist_name,
    normalize_track_title,
    make_track_key,
    parse_duration_string,
    is_timeout_error,
    retry_on_timeout
)
from .cache import TTLCache, CacheEntry

__all__ = [
    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'get_current_log_file',

    # Helper exports
    'monotonic_ms',
    'format_duration',
    'format_timestamp_ms',
    'calculate_similarity',
    'normalize_artist_name',
    'normalize_track_title',
    'make_track_key',
    'parse_duration_string',
    'is_timeout_error',
    'retry_on_timeout',

    # Cache exports
    'TTLCache',
    'CacheEntry'
]
