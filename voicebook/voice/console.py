"""
voicebook/voice/console.py

Typed-text audio backend. Lines entered at the console stand in for what
the recognizer heard, so the full listening state machine can be driven
without a microphone.

@module voice/console
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from voicebook.voice.audio import AudioErrorCode, AudioSession, AudioUnavailableError
from voicebook.voice.state import SessionKind

log = logging.getLogger("voicebook.voice.console")


class ConsoleAudioSession(AudioSession):
    """A recognition session fed by ConsoleMicrophone.hear()."""

    def __init__(self, kind: SessionKind, locales: list[str], microphone: "ConsoleMicrophone"):
        super().__init__(kind, locales)
        self._microphone = microphone
        self._live = False
        self._transcript = ""

    @property
    def live(self) -> bool:
        return self._live

    def start(self) -> None:
        if not self._microphone.available:
            raise AudioUnavailableError("console microphone disabled")
        if self._microphone.current is not None:
            raise RuntimeError("console microphone already in use")
        self._microphone.current = self
        self._live = True
        self._emit(self.on_session_start)

    def stop(self) -> None:
        if not self._live:
            return
        self._end()
        if self.kind is SessionKind.ACTIVE:
            self._emit(self.on_error, AudioErrorCode.ABORTED.value)
        self._emit(self.on_session_end)

    def hear(self, text: str) -> None:
        """Deliver one recognized utterance."""
        if not self._live:
            return
        if self.kind is SessionKind.PASSIVE:
            # Continuous session: report the running transcript.
            self._transcript = f"{self._transcript} {text}".strip()
            self._emit(self.on_interim_result, self._transcript)
            return
        self._emit(self.on_final_result, text)
        self._end()
        self._emit(self.on_session_end)

    def fail(self, code: str) -> None:
        """Simulate a recognizer error followed by the end of the session."""
        if not self._live:
            return
        self._emit(self.on_error, code)
        if self._live:
            self._end()
            self._emit(self.on_session_end)

    def _end(self) -> None:
        self._live = False
        if self._microphone.current is self:
            self._microphone.current = None

    @staticmethod
    def _emit(hook: Optional[Callable], *args) -> None:
        if hook is not None:
            hook(*args)


class ConsoleMicrophone:
    """Factory and router for console sessions; one live session at a time."""

    def __init__(self, available: bool = True):
        self.available = available
        self.current: ConsoleAudioSession | None = None
        self.sessions_created = 0

    def create_session(self, kind: SessionKind, locales: list[str]) -> ConsoleAudioSession:
        self.sessions_created += 1
        log.debug(f"Creating console {kind.value} session ({', '.join(locales)})")
        return ConsoleAudioSession(kind, locales, self)

    def hear(self, text: str) -> bool:
        """Feed text to the live session. Returns False if nothing is listening."""
        if self.current is None:
            return False
        self.current.hear(text)
        return True
