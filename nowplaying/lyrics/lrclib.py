"""
LRCLIB lyric source (time-aligned, first in the fallback chain)

LRCLIB is a free lyrics database that needs no API key. Its /get endpoint
matches a track by title, artist and (optionally) duration and returns both a
synced LRC block and a plain-text block when it has them.

Response handling:
- syncedLyrics present: parsed into timed lines
- only plainLyrics present: returned as plain text for synthesis
- instrumental tracks or 404: nothing
- other statuses: UpstreamError
"""

from typing import Any, Dict, Optional

import aiohttp

from ..exceptions import ParseError, UpstreamError
from .base import LyricPayload, LyricSource
from .models import parse_lrc


class LrclibSource(LyricSource):
    """LRCLIB /api/get client built on aiohttp"""

    name = "lrclib"

    def __init__(self, settings=None):
        super().__init__(settings)
        self.base_url = self.settings.lyrics.lrclib_url.rstrip('/')
        self.user_agent = self.settings.network.user_agent

    def _build_params(self, title: str, artist: str, duration_ms: Optional[int]) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            'track_name': title,
            'artist_name': artist
        }
        if duration_ms and duration_ms > 0:
            # LRCLIB expects whole seconds
            params['duration'] = int(round(duration_ms / 1000))
        return params

    async def _fetch_record(self, title: str, artist: str, duration_ms: Optional[int]) -> Optional[Dict[str, Any]]:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {'User-Agent': self.user_agent}

        try:
            async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
                async with session.get(
                    f"{self.base_url}/get",
                    params=self._build_params(title, artist, duration_ms)
                ) as resp:
                    if resp.status == 404:
                        return None
                    if resp.status != 200:
                        raise UpstreamError(
                            f"LRCLIB returned HTTP {resp.status}",
                            source=self.name,
                            status_code=resp.status
                        )
                    try:
                        return await resp.json(content_type=None)
                    except ValueError as e:
                        raise ParseError(f"LRCLIB returned invalid JSON: {e}")
        except aiohttp.ClientError as e:
            raise UpstreamError(f"LRCLIB request failed: {e}", source=self.name)

    @staticmethod
    def payload_from_record(record: Any) -> Optional[LyricPayload]:
        """
        Convert an LRCLIB track record into a payload

        Args:
            record: Decoded JSON object from /api/get

        Returns:
            LyricPayload or None if the record carries no usable lyrics
        """
        if not isinstance(record, dict):
            return None
        if record.get('instrumental'):
            return None

        synced = record.get('syncedLyrics')
        plain = record.get('plainLyrics')

        payload = LyricPayload(
            synced_lines=parse_lrc(synced) if isinstance(synced, str) else [],
            plain_text=plain if isinstance(plain, str) else None
        )
        return None if payload.is_empty else payload

    async def _query(self, title: str, artist: str, duration_ms: Optional[int]) -> Optional[LyricPayload]:
        record = await self._fetch_record(title, artist, duration_ms)
        payload = self.payload_from_record(record)
        self.logger.debug(
            f"LRCLIB {'hit' if payload else 'miss'} for '{artist} - {title}'"
            + (f" ({len(payload.synced_lines)} synced lines)" if payload and payload.has_synced else "")
        )
        return payload
