"""
Genius lyric source (scraped page, last in the fallback chain)

The Genius API only returns song metadata, not lyrics. This source searches the
API through lyricsgenius, takes the first hit's page URL, downloads the page
with aiohttp and pulls the lyric text out of the page markup.

Page extraction is inherently brittle: the container markers change whenever
Genius redesigns its pages. It is kept isolated here, behind the same
LyricSource interface as the structured sources, and known markers are
tried in order:
- <div data-lyrics-container="true"> (current pages, possibly several blocks)
- <div class="Lyrics__Container..."> (older pages)
- <div class="lyrics"> (legacy pages)

Markup handling: <br> and block-closing tags become newlines, all other tags
are removed, HTML entities are unescaped, and runs of 3+ newlines collapse to
2. Text of 50 characters or fewer is not considered real lyrics.

Requires a Genius access token (GENIUS_ACCESS_TOKEN or GENIUS_API_KEY); without
one the source reports itself unavailable and is skipped silently.
"""

import asyncio
import html
import re
from typing import Any, Dict, List, Optional

import aiohttp
import lyricsgenius

from ..exceptions import UpstreamError
from .base import LyricPayload, LyricSource


# Opening tags of the known lyric containers, newest markup first
CONTAINER_PATTERNS = [
    re.compile(r'<div[^>]*data-lyrics-container="true"[^>]*>', re.IGNORECASE),
    re.compile(r'<div[^>]*class="Lyrics__Container[^"]*"[^>]*>', re.IGNORECASE),
    re.compile(r'<div[^>]*class="lyrics"[^>]*>', re.IGNORECASE),
]

DIV_TAG = re.compile(r'<(/?)div\b[^>]*>', re.IGNORECASE)
SECTION_HEADER = re.compile(r'^\s*\[[^\]]*\]\s*$')


def _container_body(page: str, start: int) -> str:
    """
    Return the inner HTML of the div whose opening tag ends at `start`

    Nested divs are balanced by counting, so inline annotation blocks inside
    the container do not cut it short.
    """
    depth = 1
    for tag in DIV_TAG.finditer(page, start):
        depth += -1 if tag.group(1) else 1
        if depth == 0:
            return page[start:tag.start()]
    return page[start:]


def strip_markup(fragment: str) -> str:
    """
    Convert a lyric HTML fragment into plain text

    Args:
        fragment: Inner HTML of a lyric container

    Returns:
        Plain text with line structure preserved
    """
    text = re.sub(r'<br\s*/?>', '\n', fragment, flags=re.IGNORECASE)
    text = re.sub(r'</(div|p)>', '\n', text, flags=re.IGNORECASE)
    text = re.sub(r'<[^>]*>', '', text)
    text = html.unescape(text)
    text = text.replace('\r\n', '\n')
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def extract_lyrics_from_html(page: str) -> Optional[str]:
    """
    Extract the lyrics text from a Genius song page

    Args:
        page: Full HTML of the song page

    Returns:
        Plain lyrics text, or None if no known container is found
    """
    if not page:
        return None

    for pattern in CONTAINER_PATTERNS:
        blocks: List[str] = []
        for opening in pattern.finditer(page):
            body = _container_body(page, opening.end())
            text = strip_markup(body)
            if text:
                blocks.append(text)
        if blocks:
            combined = "\n".join(blocks)
            return re.sub(r'\n{3,}', '\n\n', combined).strip()

    return None


def remove_section_headers(text: str) -> str:
    """Drop "[Chorus]" style header lines, which are not sung"""
    return "\n".join(line for line in text.splitlines() if not SECTION_HEADER.match(line))


class GeniusSource(LyricSource):
    """
    Genius search + page scrape

    The search result ranking is Genius' own: the first hit is taken, as the
    structured sources earlier in the chain already cover the precise matches.
    """

    name = "genius"

    def __init__(self, settings=None):
        super().__init__(settings)
        self.api_key = self.settings.lyrics.genius_api_key
        self.min_length = self.settings.lyrics.min_length
        self.user_agent = self.settings.network.user_agent
        self.max_search_results = 5

        # Lazy-initialized Genius client (created when first needed)
        self._genius_client: Optional[lyricsgenius.Genius] = None

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    @property
    def call_timeout(self) -> float:
        # Search request plus page download
        return self.timeout * 2

    @property
    def genius_client(self) -> lyricsgenius.Genius:
        """
        Get the Genius API client, creating it on first access

        Retries are disabled in the library; the timeout retry is applied by
        the base class around the whole query.
        """
        if not self._genius_client:
            self._genius_client = lyricsgenius.Genius(
                access_token=self.api_key,
                timeout=self.timeout,
                retries=0,
                skip_non_songs=True,
                verbose=False
            )
        return self._genius_client

    def _search(self, query: str) -> Dict[str, Any]:
        """Blocking search call, executed in a worker thread"""
        return self.genius_client.search_songs(query, per_page=self.max_search_results)

    @staticmethod
    def first_hit_url(search_response: Any) -> Optional[str]:
        """
        Get the page URL of the first search hit

        Args:
            search_response: Response of the Genius /search endpoint

        Returns:
            Song page URL or None
        """
        if not isinstance(search_response, dict):
            return None
        hits = search_response.get('hits') or []
        for hit in hits:
            result = hit.get('result') if isinstance(hit, dict) else None
            if isinstance(result, dict) and isinstance(result.get('url'), str):
                return result['url']
        return None

    async def _fetch_page(self, url: str) -> str:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {'User-Agent': self.user_agent}
        try:
            async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
                async with session.get(url) as resp:
                    if resp.status != 200:
                        raise UpstreamError(
                            f"Genius page returned HTTP {resp.status}",
                            source=self.name,
                            status_code=resp.status
                        )
                    return await resp.text()
        except aiohttp.ClientError as e:
            raise UpstreamError(f"Genius page request failed: {e}", source=self.name)

    async def _query(self, title: str, artist: str, duration_ms: Optional[int]) -> Optional[LyricPayload]:
        query = f"{title} {artist}".strip()
        self.logger.debug(f"Genius search query: '{query}'")

        search_response = await asyncio.to_thread(self._search, query)
        url = self.first_hit_url(search_response)
        if not url:
            self.logger.debug(f"No Genius hits for: {query}")
            return None

        page = await self._fetch_page(url)
        text = extract_lyrics_from_html(page)
        if not text:
            self.logger.debug(f"No lyric container found on Genius page: {url}")
            return None

        text = remove_section_headers(text)
        if len(text.strip()) <= self.min_length:
            self.logger.debug(f"Genius lyrics too short ({len(text.strip())} chars): {url}")
            return None

        return LyricPayload(plain_text=text)
