"""
voicebook/commands/detection.py

Transcript pattern matching that happens before any intent resolution:
wake-word detection for the passive listener.

@module commands/detection
"""

import unicodedata
from typing import Iterable, Optional

from voicebook.config.schema import DEFAULT_WAKE_PHRASES


# =============================================================================
# NORMALIZATION
# =============================================================================


def normalize_transcript(text: str) -> str:
    """Lower-case, NFC-normalize and collapse whitespace."""
    normalized = unicodedata.normalize("NFC", text or "").lower()
    return " ".join(normalized.split())


# =============================================================================
# WAKE WORD
# =============================================================================


def find_wake_phrase(text: str, phrases: Optional[Iterable[str]] = None) -> Optional[str]:
    """
    Find the first accepted wake phrase contained in a running transcript.

    Args:
        text: Passive-session transcript (interim or final).
        phrases: Accepted phrasings. Defaults to DEFAULT_WAKE_PHRASES.

    Returns:
        The matching phrase, or None.
    """
    normalized = normalize_transcript(text)
    if not normalized:
        return None
    for phrase in phrases if phrases is not None else DEFAULT_WAKE_PHRASES:
        candidate = normalize_transcript(phrase)
        if candidate and candidate in normalized:
            return candidate
    return None


def is_wake_phrase(text: str, phrases: Optional[Iterable[str]] = None) -> bool:
    """Detect a wake word anywhere in the transcript (case-insensitive)."""
    return find_wake_phrase(text, phrases) is not None
