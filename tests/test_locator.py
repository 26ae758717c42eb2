"""Test the YouTube Music companion locator"""

import pytest
from unittest.mock import Mock

from nowplaying.utils.cache import TTLCache
from nowplaying.ytmusic.locator import CompanionCandidate, YouTubeMusicLocator, score_candidate


SEARCH_RESULTS = [
    {'title': 'Song', 'artists': [{'name': 'Artist'}]},  # no videoId
    {'videoId': 'live1', 'title': 'Song (Live)', 'artists': [{'name': 'Artist'}], 'duration_seconds': 260},
    {'videoId': 'good1', 'title': 'Song', 'artists': [{'name': 'Artist'}], 'duration_seconds': 200},
    {'videoId': 'other', 'title': 'Completely Different', 'artists': [{'name': 'Someone'}], 'duration': '9:00'},
]


@pytest.fixture
def ytmusic():
    client = Mock()
    client.search.return_value = SEARCH_RESULTS
    return client


@pytest.fixture
def locator(settings, ytmusic):
    return YouTubeMusicLocator(settings=settings, client=ytmusic, cache=TTLCache())


class TestCandidate:
    """Test candidate parsing and scoring"""

    def test_from_ytmusic_data(self):
        candidate = CompanionCandidate.from_ytmusic_data(
            {'videoId': 'abc', 'title': 'Song', 'artists': [{'name': 'Artist'}], 'duration': '3:20'}
        )
        assert candidate.video_id == 'abc'
        assert candidate.artist == 'Artist'
        assert candidate.duration == 200

        assert CompanionCandidate.from_ytmusic_data({'title': 'no id'}) is None
        assert CompanionCandidate.from_ytmusic_data(None) is None

    def test_perfect_match(self):
        candidate = score_candidate(CompanionCandidate('v', 'Song', 'Artist', 200), 'Song', 'Artist', 200)
        assert candidate.total_score == pytest.approx(90)

    def test_duration_taper(self):
        close = score_candidate(CompanionCandidate('v', 'Song', 'Artist', 230), 'Song', 'Artist', 200)
        far = score_candidate(CompanionCandidate('v', 'Song', 'Artist', 300), 'Song', 'Artist', 200)
        unknown = score_candidate(CompanionCandidate('v', 'Song', 'Artist'), 'Song', 'Artist', 200)

        assert close.duration_score == pytest.approx(10)
        assert far.duration_score == 0
        assert unknown.duration_score == 10

    def test_quality_markers(self):
        live = score_candidate(CompanionCandidate('v', 'Song (Live)', 'Artist', 200), 'Song', 'Artist', 200)
        assert live.quality_bonus == -8

        # Asked for the live version: no penalty
        wanted = score_candidate(CompanionCandidate('v', 'Song (Live)', 'Artist', 200), 'Song (Live)', 'Artist', 200)
        assert wanted.quality_bonus == 0

        stacked = score_candidate(
            CompanionCandidate('v', 'Song live cover karaoke', 'Artist', 200), 'Song', 'Artist', 200
        )
        assert stacked.quality_bonus == -10


class TestYouTubeMusicLocator:
    """Test ranking, caching and failure handling"""

    def test_rank(self, locator):
        candidates = locator.rank(SEARCH_RESULTS, 'Song', 'Artist', 200000)
        assert [candidate.video_id for candidate in candidates] == ['good1']

    @pytest.mark.asyncio
    async def test_find_best_match(self, locator, ytmusic):
        video_id = await locator.find('Song', 'Artist', 200000)

        assert video_id == 'good1'
        ytmusic.search.assert_called_once_with('Artist Song', filter='songs', limit=10)

    @pytest.mark.asyncio
    async def test_hit_cached(self, locator, ytmusic):
        await locator.find('Song', 'Artist', 200000)
        assert await locator.find('SONG', ' artist ', 200000) == 'good1'
        assert ytmusic.search.call_count == 1

    @pytest.mark.asyncio
    async def test_miss_cached(self, locator, ytmusic):
        ytmusic.search.return_value = []

        assert await locator.find('Song', 'Artist') is None
        assert await locator.find('Song', 'Artist') is None
        assert ytmusic.search.call_count == 1

    @pytest.mark.asyncio
    async def test_failure_not_cached(self, locator, ytmusic):
        ytmusic.search.side_effect = RuntimeError("blocked")

        assert await locator.find('Song', 'Artist') is None
        assert ('artist', 'song') not in locator.cache

    @pytest.mark.asyncio
    async def test_empty_title(self, locator, ytmusic):
        assert await locator.find('', 'Artist') is None
        ytmusic.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_custom_scorer(self, settings, ytmusic):
        def prefer_other(candidate, title, artist, duration, tolerance):
            candidate.title_score = 100 if candidate.video_id == 'other' else 0
            return candidate

        locator = YouTubeMusicLocator(settings=settings, client=ytmusic, cache=TTLCache(), scorer=prefer_other)
        assert await locator.find('Song', 'Artist') == 'other'
