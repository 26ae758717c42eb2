"""
Data models for Spotify playback observations

This module defines the canonical data structures the rest of the engine works
with. Raw "currently playing" payloads from the Spotify Web API are converted
into these models at the ingestion boundary, so no other component ever has to
deal with the API's heterogeneous JSON shapes.

Models:

1. **PlaybackSnapshot**: One polled observation of the primary stream
   - Immutable (frozen dataclass), superseded by the next poll, never mutated
   - Built through `from_spotify_data()` or `not_playing()`
   - Progress is clamped into [0, duration] on ingest

2. **CurrentPlaybackView**: The read-only view handed to the presentation layer
   - Title, artists, album artwork, progress and duration
   - Progress is the clock model's extrapolated estimate, not the raw sample

Defensive Ingestion:

Spotify returns tracks and podcast episodes through the same endpoint, and
fields may be missing, null or of an unexpected type. Unknown or malformed
fields become None (or an empty tuple for artists); construction never raises
on a payload that is a dictionary.
"""

from dataclasses import dataclass, replace
from typing import Optional, Dict, Any, Tuple, List

from ..utils.helpers import format_duration


def _as_int(value: Any) -> Optional[int]:
    """Coerce a JSON number into int, returning None for anything else"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return None
    return None


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _select_artwork(images: Any) -> Optional[str]:
    """
    Pick the artwork reference from a Spotify image list

    Spotify orders album images from largest to smallest, so the first entry
    with a usable URL is the full-size cover.
    """
    if not isinstance(images, list):
        return None
    for image in images:
        if isinstance(image, dict) and _as_str(image.get('url')):
            return image['url']
    return None


@dataclass(frozen=True)
class PlaybackSnapshot:
    """
    Single observation of the primary stream's playback state

    Attributes:
        is_playing: Whether playback is currently advancing
        track_id: Opaque Spotify item identifier (None when nothing is playing)
        track_title: Track or episode name
        artists: Artist names in credit order (empty for episodes)
        progress_ms: Offset into the track at observation time, clamped to duration
        duration_ms: Track length in milliseconds if known
        artwork_url: URL of the cover art if any
        album_name: Album (or show) name if any
        observed_at_ms: Engine clock time at which the observation was taken

    Invariant:
        0 <= progress_ms <= duration_ms whenever duration_ms is known
    """
    is_playing: bool
    track_id: Optional[str] = None
    track_title: Optional[str] = None
    artists: Tuple[str, ...] = ()
    progress_ms: int = 0
    duration_ms: Optional[int] = None
    artwork_url: Optional[str] = None
    album_name: Optional[str] = None
    observed_at_ms: float = 0.0

    def __post_init__(self):
        progress = max(0, int(self.progress_ms or 0))
        if self.duration_ms is not None:
            object.__setattr__(self, 'duration_ms', max(0, int(self.duration_ms)))
            progress = min(progress, self.duration_ms)
        object.__setattr__(self, 'progress_ms', progress)
        object.__setattr__(self, 'artists', tuple(self.artists))

    @classmethod
    def not_playing(cls, observed_at_ms: float = 0.0) -> 'PlaybackSnapshot':
        """Snapshot representing "nothing is playing" (HTTP 204 or no item)"""
        return cls(is_playing=False, observed_at_ms=observed_at_ms)

    @classmethod
    def from_spotify_data(cls, data: Optional[Dict[str, Any]], observed_at_ms: float = 0.0) -> 'PlaybackSnapshot':
        """
        Factory method to construct a snapshot from a currently-playing payload

        Handles both track and episode items. Any payload without an item
        dictionary is treated as "nothing playing".

        Args:
            data: Decoded JSON body of GET /me/player/currently-playing (or None)
            observed_at_ms: Engine clock time of the observation

        Returns:
            PlaybackSnapshot with normalized fields
        """
        if not isinstance(data, dict):
            return cls.not_playing(observed_at_ms)

        item = data.get('item')
        if not isinstance(item, dict):
            return cls.not_playing(observed_at_ms)

        artists: List[str] = []
        for artist in item.get('artists') or []:
            if isinstance(artist, dict) and _as_str(artist.get('name')):
                artists.append(artist['name'].strip())

        album = item.get('album')
        if isinstance(album, dict):
            artwork_url = _select_artwork(album.get('images'))
            album_name = _as_str(album.get('name'))
        else:
            # Episodes carry their images on the item and the show name instead of an album
            show = item.get('show') if isinstance(item.get('show'), dict) else {}
            artwork_url = _select_artwork(item.get('images')) or _select_artwork(show.get('images'))
            album_name = _as_str(show.get('name'))

        return cls(
            is_playing=data.get('is_playing') is True,
            track_id=_as_str(item.get('id')) or _as_str(item.get('uri')),
            track_title=_as_str(item.get('name')),
            artists=tuple(artists),
            progress_ms=_as_int(data.get('progress_ms')) or 0,
            duration_ms=_as_int(item.get('duration_ms')),
            artwork_url=artwork_url,
            album_name=album_name,
            observed_at_ms=observed_at_ms
        )

    def paused_at(self, progress_ms: int, observed_at_ms: float) -> 'PlaybackSnapshot':
        """Copy of this snapshot frozen (not playing) at the given offset"""
        return replace(self, is_playing=False, progress_ms=progress_ms, observed_at_ms=observed_at_ms)

    @property
    def has_track(self) -> bool:
        return self.track_id is not None

    @property
    def primary_artist(self) -> str:
        """
        First credited artist, used for lyric and companion lookups

        Returns:
            Primary artist name or empty string when unknown
        """
        return self.artists[0] if self.artists else ""

    @property
    def all_artists(self) -> str:
        return ", ".join(self.artists)


@dataclass(frozen=True)
class CurrentPlaybackView:
    """
    Presentation-facing view of the current playback

    Attributes:
        is_playing: Whether playback is advancing
        track_title: Track title (None when nothing is playing)
        artists: Artist names
        album_name: Album name if known
        artwork_url: Album artwork reference
        progress_ms: Extrapolated current offset
        duration_ms: Track length if known
        stale: True while snapshot fetches are failing and the display is frozen
    """
    is_playing: bool
    track_title: Optional[str]
    artists: Tuple[str, ...]
    album_name: Optional[str]
    artwork_url: Optional[str]
    progress_ms: int
    duration_ms: Optional[int]
    stale: bool = False

    @classmethod
    def from_snapshot(cls, snapshot: Optional[PlaybackSnapshot], progress_ms: int,
                      stale: bool = False) -> 'CurrentPlaybackView':
        if snapshot is None:
            snapshot = PlaybackSnapshot.not_playing()
        return cls(
            is_playing=snapshot.is_playing,
            track_title=snapshot.track_title,
            artists=snapshot.artists,
            album_name=snapshot.album_name,
            artwork_url=snapshot.artwork_url,
            progress_ms=progress_ms,
            duration_ms=snapshot.duration_ms,
            stale=stale
        )

    @property
    def progress_str(self) -> str:
        """
        Human-readable "position / length" string

        Returns:
            String such as "1:05 / 3:20", or just the position when length is unknown
        """
        position = format_duration(self.progress_ms / 1000)
        if self.duration_ms is None:
            return position
        return f"{position} / {format_duration(self.duration_ms / 1000)}"
