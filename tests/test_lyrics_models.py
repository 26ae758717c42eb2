"""Test lyric models, LRC parsing and timing synthesis"""

import pytest

from nowplaying.lyrics.models import (
    LyricLine,
    LyricSet,
    is_timed_text,
    parse_lrc,
    plain_lines,
    strip_timestamps,
    synthesize_even
)


class TestLyricModels:
    """Test LyricLine and LyricSet invariants"""

    def test_line_text_is_trimmed(self):
        line = LyricLine(1000, "  hello  ")
        assert line.text == "hello"
        assert line.to_lrc() == "[00:01.00]hello"

    def test_line_rejects_negative_offset(self):
        with pytest.raises(ValueError):
            LyricLine(-1, "hello")

    def test_line_rejects_empty_text(self):
        with pytest.raises(ValueError):
            LyricLine(0, "   ")

    def test_set_requires_non_decreasing_order(self):
        with pytest.raises(ValueError):
            LyricSet(lines=(LyricLine(5000, "b"), LyricLine(1000, "a")))

    def test_set_allows_ties(self):
        lyric_set = LyricSet(lines=(LyricLine(1000, "a"), LyricLine(1000, "b")), source="test")
        assert len(lyric_set) == 2
        assert lyric_set.offsets == [1000, 1000]

    def test_empty_set(self):
        empty = LyricSet.empty()
        assert not empty
        assert empty.is_empty
        assert len(empty) == 0
        assert empty.to_lrc() == ""


class TestLrcParsing:
    """Test LRC parsing"""

    def test_parse_basic_lrc(self):
        text = "[ar:Artist]\n[ti:Song]\n[00:01.50]First line\n[00:05.25]Second line\n"
        lines = parse_lrc(text)

        assert [line.time_ms for line in lines] == [1500, 5250]
        assert [line.text for line in lines] == ["First line", "Second line"]

    def test_fraction_precision(self):
        lines = parse_lrc("[00:01.5]a\n[00:02.05]b\n[00:03.005]c\n[01:00]d")
        assert [line.time_ms for line in lines] == [1500, 2050, 3005, 60000]

    def test_multiple_timestamps_per_line(self):
        lines = parse_lrc("[00:10.00][01:30.00]Chorus\n[00:20.00]Verse")
        assert [(line.time_ms, line.text) for line in lines] == [
            (10000, "Chorus"),
            (20000, "Verse"),
            (90000, "Chorus"),
        ]

    def test_empty_and_untimed_lines_dropped(self):
        lines = parse_lrc("[00:01.00]\n[00:02.00]   \nno timestamp\n[00:03.00]kept")
        assert [line.text for line in lines] == ["kept"]

    def test_parse_nothing(self):
        assert parse_lrc(None) == []
        assert parse_lrc("") == []

    def test_is_timed_text(self):
        assert is_timed_text("[00:01.00]hello")
        assert not is_timed_text("hello")
        assert not is_timed_text(None)

    def test_strip_timestamps(self):
        text = "[ti:Song]\n[00:01.00]First\n[00:02.00]Second"
        assert strip_timestamps(text) == "First\nSecond"
        assert strip_timestamps(None) == ""


class TestSynthesis:
    """Test even distribution of plain-text lyrics"""

    def test_even_distribution(self):
        text = "\n".join(f"line {i}" for i in range(10))
        lines = synthesize_even(text, duration_ms=200000)

        assert [line.time_ms for line in lines] == list(range(0, 200000, 20000))
        assert lines[0].time_ms == 0

    def test_blank_lines_ignored(self):
        lines = synthesize_even("one\n\n   \ntwo\n", duration_ms=10000)
        assert [(line.time_ms, line.text) for line in lines] == [(0, "one"), (5000, "two")]

    def test_minimum_spacing(self):
        text = "\n".join(f"line {i}" for i in range(100))
        lines = synthesize_even(text, duration_ms=10000, min_spacing_ms=800)
        assert lines[1].time_ms == 800
        assert lines[-1].time_ms == 99 * 800

    def test_default_duration(self):
        text = "\n".join(f"line {i}" for i in range(3))
        assert [line.time_ms for line in synthesize_even(text)] == [0, 60000, 120000]
        assert [line.time_ms for line in synthesize_even(text, duration_ms=0)] == [0, 60000, 120000]

    def test_integer_spacing(self):
        lines = synthesize_even("a\nb\nc", duration_ms=10000, min_spacing_ms=100)
        assert [line.time_ms for line in lines] == [0, 3333, 6666]

    def test_nothing_to_synthesize(self):
        assert synthesize_even("") == []
        assert synthesize_even("\n \n") == []
        assert plain_lines(None) == []
