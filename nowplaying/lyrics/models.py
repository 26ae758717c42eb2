"""
Lyric data models and text normalization

Every lyric source, whatever it returns, ends up as a LyricSet: an immutable,
ordered sequence of LyricLine entries that are non-decreasing in time. This
module owns the conversions into that shape:

- parse_lrc(): LRC text with [mm:ss.xx] markers into timed lines
- synthesize_even(): plain text into evenly paced timed lines
- strip_timestamps(): remove LRC markers so a block can be treated as plain text

An empty LyricSet is the confirmed "no lyrics found" result. It is a normal
value, cached like any other.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from ..utils.helpers import format_timestamp_ms


# [mm:ss], [mm:ss.x], [mm:ss.xx], [mm:ss.xxx] and the [mm:ss:xx] variant some sites emit
LRC_TIMESTAMP = re.compile(r'\[(\d{1,3}):(\d{1,2})(?:[.:](\d{1,3}))?\]')

# [ar:Artist], [ti:Title], [length:03:20], [offset:+250] ...
LRC_METADATA = re.compile(r'^\s*\[([a-zA-Z#]+):(.*)\]\s*$')


@dataclass(frozen=True)
class LyricLine:
    """
    One timed lyric line

    Attributes:
        time_ms: Offset into the track at which the line becomes active (>= 0)
        text: Line text, trimmed and never empty
    """
    time_ms: int
    text: str

    def __post_init__(self):
        if self.time_ms < 0:
            raise ValueError(f"Lyric line offset must be non-negative: {self.time_ms}")
        text = (self.text or "").strip()
        if not text:
            raise ValueError("Lyric line text must not be empty")
        object.__setattr__(self, 'time_ms', int(self.time_ms))
        object.__setattr__(self, 'text', text)

    def to_lrc(self) -> str:
        return f"[{format_timestamp_ms(self.time_ms)}]{self.text}"


@dataclass(frozen=True)
class LyricSet:
    """
    Ordered, immutable lyric sequence for one track

    Attributes:
        lines: Lines in non-decreasing time order (ties allowed)
        source: Name of the source that produced the lines, None when empty
        synced: True if offsets came from the source, False if synthesized
    """
    lines: Tuple[LyricLine, ...] = ()
    source: Optional[str] = None
    synced: bool = False

    def __post_init__(self):
        lines = tuple(self.lines)
        for previous, current in zip(lines, lines[1:]):
            if current.time_ms < previous.time_ms:
                raise ValueError("Lyric lines must be in non-decreasing time order")
        object.__setattr__(self, 'lines', lines)

    @classmethod
    def empty(cls) -> 'LyricSet':
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def offsets(self) -> List[int]:
        return [line.time_ms for line in self.lines]

    def to_lrc(self) -> str:
        """Render as LRC text, one line per entry"""
        return "\n".join(line.to_lrc() for line in self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[LyricLine]:
        return iter(self.lines)

    def __getitem__(self, index: int) -> LyricLine:
        return self.lines[index]

    def __bool__(self) -> bool:
        return bool(self.lines)


def _timestamp_to_ms(minutes: str, seconds: str, fraction: Optional[str]) -> int:
    total = int(minutes) * 60000 + int(seconds) * 1000
    if fraction:
        # ".5" is 500 ms, ".05" is 50 ms, ".005" is 5 ms
        total += int(fraction.ljust(3, '0')[:3])
    return total


def is_timed_text(text: Optional[str]) -> bool:
    """True if the text contains at least one LRC timestamp marker"""
    return bool(text) and LRC_TIMESTAMP.search(text) is not None


def parse_lrc(text: Optional[str]) -> List[LyricLine]:
    """
    Parse LRC text into timed lines

    Lines carrying several timestamps ("[00:12.00][01:30.00]Chorus") produce
    one entry per timestamp. Metadata tags, untimed lines and lines whose text
    is empty after trimming are dropped.

    Args:
        text: LRC formatted lyrics

    Returns:
        Lines sorted by offset (stable for equal offsets)
    """
    if not text:
        return []

    lines: List[LyricLine] = []
    for raw_line in text.splitlines():
        matches = list(LRC_TIMESTAMP.finditer(raw_line))
        if not matches:
            continue

        lyric_text = LRC_TIMESTAMP.sub('', raw_line).strip()
        if not lyric_text:
            continue

        for match in matches:
            lines.append(LyricLine(_timestamp_to_ms(*match.groups()), lyric_text))

    lines.sort(key=lambda line: line.time_ms)
    return lines


def strip_timestamps(text: Optional[str]) -> str:
    """
    Remove LRC timestamp markers and metadata tags, keeping the line text

    Args:
        text: Lyrics that may contain LRC markup

    Returns:
        Plain text with one lyric per line
    """
    if not text:
        return ""
    cleaned = []
    for raw_line in text.splitlines():
        if LRC_METADATA.match(raw_line) and not LRC_TIMESTAMP.search(raw_line):
            continue
        cleaned.append(LRC_TIMESTAMP.sub('', raw_line).strip())
    return "\n".join(cleaned)


def plain_lines(text: Optional[str]) -> List[str]:
    """Split a plain-text block on line breaks, trimming and dropping blank lines"""
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def synthesize_even(
    text: Optional[str],
    duration_ms: Optional[int] = None,
    min_spacing_ms: int = 800,
    default_duration_ms: int = 180000
) -> List[LyricLine]:
    """
    Distribute plain-text lines evenly over the track

    Line i is placed at i * max(min_spacing_ms, D // N), where N is the number
    of non-blank lines and D the duration hint (default_duration_ms when the
    hint is missing or not positive). The first line is always at 0.

    Args:
        text: Plain-text lyrics block
        duration_ms: Track length hint
        min_spacing_ms: Minimum spacing between consecutive lines
        default_duration_ms: Duration assumed when no usable hint is given

    Returns:
        Evenly spaced timed lines (empty if the text has no non-blank lines)
    """
    lines = plain_lines(text)
    if not lines:
        return []

    duration = duration_ms if duration_ms and duration_ms > 0 else default_duration_ms
    step = max(min_spacing_ms, duration // len(lines))
    return [LyricLine(index * step, line) for index, line in enumerate(lines)]
