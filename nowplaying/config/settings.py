"""
Configuration management for nowplaying-sync

This module handles loading, validation, and management of application settings
from multiple sources including YAML files and environment variables. It provides
a centralized configuration system that supports hot-reloading and validation.

The configuration is organized into logical sections using dataclasses:
- Spotify API settings (credentials, refresh token, request timeout)
- Playback polling cadence and lyric tick interval
- Lyrics sources, fallback order, synthesis pacing and cache TTLs
- Companion video search and drift-correction policy
- Logging, network and storage configuration

All sensitive data (API keys, secrets, refresh tokens) can be loaded from
environment variables for security, while non-sensitive settings can be stored
in YAML files.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load environment variables from .env file if present
load_dotenv()


@dataclass
class SpotifyConfig:
    """
    Spotify API configuration and authentication settings

    The application never runs the interactive OAuth flow itself; it expects a
    long-lived refresh token obtained elsewhere and exchanges it for short-lived
    access tokens.
    """
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    token_url: str = "https://accounts.spotify.com/api/token"
    scope: str = "user-read-currently-playing user-read-playback-state"


@dataclass
class PlaybackConfig:
    """
    Playback polling configuration

    Controls how often the currently playing endpoint is polled and how often
    the active lyric line is re-evaluated from the extrapolated clock.
    """
    poll_interval: float = 2.0         # seconds between snapshot polls
    lyric_tick_interval: float = 0.5   # seconds between active-line evaluations


@dataclass
class LyricsConfig:
    """
    Lyrics resolution configuration

    Sources are queried in the listed order; the first one producing a
    non-empty result wins. Plain-text results are paced evenly over the track
    duration with a minimum spacing between lines.
    """
    enabled: bool = True
    sources: list = field(default_factory=lambda: ["lrclib", "syncedlyrics", "genius"])
    lrclib_url: str = "https://lrclib.net/api"
    syncedlyrics_providers: list = field(default_factory=list)  # empty = library default
    genius_api_key: str = ""
    default_duration_ms: int = 180000
    min_line_spacing_ms: int = 800
    min_length: int = 50               # minimum characters for scraped page lyrics
    found_ttl: int = 900               # seconds a found LyricSet stays cached
    empty_ttl: int = 60                # seconds a confirmed-empty result stays cached
    cache_max_entries: int = 256
    requests_per_second: int = 2


@dataclass
class CompanionConfig:
    """
    Companion video configuration

    Controls the YouTube Music lookup for a companion stream and the drift
    correction policy that keeps it aligned with the primary stream.
    """
    enabled: bool = True
    search_filter: str = "songs"       # songs, videos
    max_results: int = 10
    score_threshold: int = 45
    duration_tolerance: int = 15       # seconds
    drift_threshold_ms: int = 1500
    cooldown_ms: int = 4000
    check_interval: float = 4.0        # seconds between drift checks
    found_ttl: int = 900
    missing_ttl: int = 60


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    Controls application logging behavior including log levels, file output,
    rotation, and console formatting.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class NetworkConfig:
    """
    Network and HTTP configuration settings

    Every upstream call carries an explicit timeout. Transient timeouts are
    retried a bounded number of times; other failures are never retried within
    the same pass.
    """
    user_agent: str = "nowplaying-sync/1.0"
    request_timeout: float = 5.0
    timeout_retries: int = 1


@dataclass
class SecurityConfig:
    """
    Security and storage configuration

    Controls where the cached Spotify access token and the configuration
    directory live.
    """
    token_storage_path: str = "~/.nowplaying-sync/tokens.json"
    config_directory: str = "~/.nowplaying-sync/"


class Settings:
    """
    Main settings class that manages all configuration

    This class serves as the central configuration manager, loading settings
    from multiple sources (YAML files, environment variables) and providing
    a unified interface for accessing configuration throughout the application.

    The class handles:
    - Loading configuration from YAML files
    - Overriding with environment variables
    - Creating the configuration directory
    - Validating configuration values
    - Saving configuration back to files
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings from config file or environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".nowplaying-sync"

        self.spotify = SpotifyConfig()
        self.playback = PlaybackConfig()
        self.lyrics = LyricsConfig()
        self.companion = CompanionConfig()
        self.logging = LoggingConfig()
        self.network = NetworkConfig()
        self.security = SecurityConfig()

        # Load configuration from various sources in order of precedence
        self._load_config()
        self._load_environment_variables()
        self._create_directories()

    def _sections(self) -> Dict[str, Any]:
        return {
            'spotify': self.spotify,
            'playback': self.playback,
            'lyrics': self.lyrics,
            'companion': self.companion,
            'logging': self.logging,
            'network': self.network,
            'security': self.security,
        }

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        Searches for configuration files in multiple locations in order of
        precedence. The first file found will be used.
        """
        config_paths = [
            self.config_path,
            self.config_dir / "config.yaml",
            Path("config/config.yaml"),
            Path("config.yaml")
        ]

        config_data = {}
        for path in config_paths:
            if path and Path(path).exists():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        config_data = yaml.safe_load(f) or {}
                    break
                except Exception as e:
                    print(f"Warning: Failed to load config from {path}: {e}")

        self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Only attributes that exist in both the config file and the dataclass
        definition are updated; unknown sections and keys are ignored.

        Args:
            config_data: Dictionary containing configuration sections
        """
        config_mapping = self._sections()

        for section_name, section_data in config_data.items():
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)

    def _load_environment_variables(self) -> None:
        """
        Load sensitive configuration from environment variables

        Environment variables take precedence over file-based configuration
        for security-sensitive values.
        """
        env_mappings = {
            'SPOTIFY_CLIENT_ID': lambda v: setattr(self.spotify, 'client_id', v),
            'SPOTIFY_CLIENT_SECRET': lambda v: setattr(self.spotify, 'client_secret', v),
            'SPOTIFY_REFRESH_TOKEN': lambda v: setattr(self.spotify, 'refresh_token', v),
            'GENIUS_ACCESS_TOKEN': lambda v: setattr(self.lyrics, 'genius_api_key', v),
            'GENIUS_API_KEY': lambda v: setattr(self.lyrics, 'genius_api_key', v),
            'NOWPLAYING_LOG_LEVEL': lambda v: setattr(self.logging, 'level', v),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def _create_directories(self) -> None:
        """Create the configuration directory, warning on permission errors"""
        directory = Path(self.security.config_directory).expanduser()
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            print(f"Warning: Failed to create directory {directory}: {e}")

    def get_config_directory(self) -> Path:
        """Get the expanded config directory path"""
        return Path(self.security.config_directory).expanduser()

    def get_token_storage_path(self) -> Path:
        """Get the expanded token storage path"""
        return Path(self.security.token_storage_path).expanduser()

    def save_config(self, path: Optional[str] = None) -> None:
        """
        Save current configuration to file

        Serializes the current configuration to a YAML file, excluding
        sensitive data like API keys, secrets and refresh tokens.

        Args:
            path: Custom path to save config, defaults to user config directory

        Raises:
            Exception: If the configuration cannot be saved
        """
        if not path:
            path = self.get_config_directory() / "config.yaml"
        else:
            path = Path(path)

        config_data = self.to_dict()

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                yaml.dump(config_data, f, default_flow_style=False, indent=2)
        except Exception as e:
            raise Exception(f"Failed to save config to {path}: {e}")

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        """
        Convert all sections to a nested dictionary

        Args:
            redact: Blank out credentials (default) so the result is safe to
                    print or persist

        Returns:
            Dictionary keyed by section name
        """
        config_data = {
            name: self._dataclass_to_dict(section)
            for name, section in self._sections().items()
        }

        if redact:
            config_data['spotify']['client_id'] = ""
            config_data['spotify']['client_secret'] = ""
            config_data['spotify']['refresh_token'] = ""
            config_data['lyrics']['genius_api_key'] = ""

        return config_data

    def _dataclass_to_dict(self, obj) -> Dict[str, Any]:
        result = {}
        for key, value in obj.__dict__.items():
            result[key] = value
        return result

    def validate(self) -> bool:
        """
        Validate current configuration

        Performs validation of all configuration values to catch configuration
        errors early with helpful error messages.

        Returns:
            True if configuration is valid, False otherwise
        """
        errors = []

        if not self.spotify.client_id or not self.spotify.client_secret:
            errors.append("Spotify client_id and client_secret are required")

        if not self.spotify.refresh_token:
            errors.append("Spotify refresh_token is required (set SPOTIFY_REFRESH_TOKEN)")

        if self.playback.poll_interval <= 0:
            errors.append(f"Invalid poll interval: {self.playback.poll_interval}")

        if self.playback.lyric_tick_interval <= 0:
            errors.append(f"Invalid lyric tick interval: {self.playback.lyric_tick_interval}")

        valid_sources = ['lrclib', 'syncedlyrics', 'genius']
        for source in self.lyrics.sources:
            if source not in valid_sources:
                errors.append(f"Invalid lyrics source: {source}")

        if self.companion.search_filter not in ['songs', 'videos']:
            errors.append(f"Invalid companion search filter: {self.companion.search_filter}")

        if self.companion.drift_threshold_ms < 0 or self.companion.cooldown_ms < 0:
            errors.append("Companion drift threshold and cooldown must be non-negative")

        if self.network.request_timeout <= 0:
            errors.append(f"Invalid request timeout: {self.network.request_timeout}")

        if errors:
            print("Configuration validation errors:")
            for error in errors:
                print(f"  - {error}")
            return False

        return True

    def __str__(self) -> str:
        sections = [
            f"Poll: {self.playback.poll_interval}s",
            f"Lyrics: {'enabled' if self.lyrics.enabled else 'disabled'} ({', '.join(self.lyrics.sources)})",
            f"Companion: {'enabled' if self.companion.enabled else 'disabled'}",
            f"Drift: {self.companion.drift_threshold_ms}ms/{self.companion.cooldown_ms}ms",
        ]
        return f"Settings({', '.join(sections)})"


# Global settings instance for singleton pattern
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance

    Returns:
        The global Settings instance
    """
    return settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Creates a new settings instance with updated configuration from files
    and environment variables.

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global settings
    settings = Settings(config_path)
    return settings
