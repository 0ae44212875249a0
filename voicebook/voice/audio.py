"""
voicebook/voice/audio.py

Audio session capability consumed by the voice controller.

A backend (browser bridge, local recognizer, console) subclasses
AudioSession and reports lifecycle events through the ``on_*`` hooks the
controller assigns before calling ``start()``.

@module voice/audio
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from voicebook.voice.state import SessionKind


# =============================================================================
# ERRORS
# =============================================================================


class VoiceError(Exception):
    """Base class for voice core errors."""


class AudioUnavailableError(VoiceError):
    """No speech recognition backend exists on this device."""


class AudioErrorCode(str, Enum):
    """Error codes reported through ``on_error``."""

    ABORTED = "aborted"
    NO_SPEECH = "no-speech"
    PERMISSION_DENIED = "permission-denied"
    NOT_ALLOWED = "not-allowed"
    SERVICE_NOT_ALLOWED = "service-not-allowed"
    AUDIO_CAPTURE = "audio-capture"
    NETWORK = "network"
    UNKNOWN = "unknown"


class ErrorKind(str, Enum):
    PERMISSION = "permission"
    TRANSIENT = "transient"
    OTHER = "other"


_PERMISSION_CODES = {
    AudioErrorCode.PERMISSION_DENIED.value,
    AudioErrorCode.NOT_ALLOWED.value,
    AudioErrorCode.SERVICE_NOT_ALLOWED.value,
}
_TRANSIENT_CODES = {AudioErrorCode.ABORTED.value, AudioErrorCode.NO_SPEECH.value}


def classify_error(code: str) -> ErrorKind:
    """Map a backend error code to how the controller recovers from it."""
    normalized = str(getattr(code, "value", code)).lower().strip()
    if normalized in _PERMISSION_CODES:
        return ErrorKind.PERMISSION
    if normalized in _TRANSIENT_CODES:
        return ErrorKind.TRANSIENT
    return ErrorKind.OTHER


# =============================================================================
# AUDIO SESSION
# =============================================================================


class AudioSession(ABC):
    """One microphone recognition session."""

    def __init__(self, kind: SessionKind, locales: Optional[list[str]] = None):
        self.kind = kind
        self.locales = list(locales or [])
        self.on_session_start: Callable[[], None] | None = None
        self.on_interim_result: Callable[[str], None] | None = None
        self.on_final_result: Callable[[str], None] | None = None
        self.on_error: Callable[[str], None] | None = None
        self.on_session_end: Callable[[], None] | None = None

    @abstractmethod
    def start(self) -> None:
        """Begin capturing. Raises if the device cannot be opened."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing; ``on_session_end`` follows."""
        ...

    def detach(self) -> None:
        """Drop all hooks so late events from this session go nowhere."""
        self.on_session_start = None
        self.on_interim_result = None
        self.on_final_result = None
        self.on_error = None
        self.on_session_end = None


AudioSessionFactory = Callable[[SessionKind, list[str]], AudioSession]
