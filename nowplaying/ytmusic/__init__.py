"""
YouTube Music package - companion video lookup

- YouTubeMusicLocator: async find(title, artist, duration_ms) -> video id or None
- CompanionCandidate / score_candidate: the replaceable ranking strategy
- get_companion_locator()/reset_companion_locator(): singleton access
"""

from .locator import (
    YouTubeMusicLocator,
    CompanionCandidate,
    score_candidate,
    get_companion_locator,
    reset_companion_locator
)

__all__ = [
    'YouTubeMusicLocator',
    'CompanionCandidate',
    'score_candidate',
    'get_companion_locator',
    'reset_companion_locator'
]
