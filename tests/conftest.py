"""Shared fixtures: a manual clock, the console microphone and fake collaborators."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import pytest

from voicebook.actions import ScreenActions
from voicebook.config.schema import VoiceConfig
from voicebook.events import EventQueue, Scheduler, TimerHandle, Timers
from voicebook.intents.resolver import Intent, IntentResolver, ResolverContext
from voicebook.models import User
from voicebook.voice.console import ConsoleAudioSession, ConsoleMicrophone
from voicebook.voice.controller import VoiceSessionController


# =============================================================================
# MANUAL CLOCK
# =============================================================================


class ManualTimer(TimerHandle):
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Timers that only fire when the test advances the clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        timer = ManualTimer(self.now + delay, callback, args)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self._timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self._timers.remove(timer)
            self.now = max(self.now, timer.when)
            timer.callback(*timer.args)
        self.now = target


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================


class ScriptedResolver(IntentResolver):
    """Resolves transcripts from a fixed table; unknown text is unrecognized."""

    def __init__(self, table: Optional[dict[str, Any]] = None):
        self.table = dict(table or {})
        self.calls: list[tuple[str, ResolverContext]] = []
        self.gate: asyncio.Event | None = None

    def hold(self) -> asyncio.Event:
        """Block resolution until the returned event is set."""
        self.gate = asyncio.Event()
        return self.gate

    async def resolve(self, transcript: str, context: ResolverContext) -> Intent:
        self.calls.append((transcript, context))
        if self.gate is not None:
            await self.gate.wait()
        result = self.table.get(transcript, Intent.unrecognized())
        if isinstance(result, Exception):
            raise result
        return result


class CountingAudioSession(ConsoleAudioSession):
    """Console session that never refuses to start, so overlaps are observable."""

    def start(self) -> None:
        microphone = self._microphone
        microphone.live.append(self)
        microphone.peak_live = max(microphone.peak_live, len(microphone.live))
        microphone.current = self
        self._live = True
        self._emit(self.on_session_start)

    def stop(self) -> None:
        if self._live and self._microphone.defer_stops:
            if self not in self._microphone.stopping:
                self._microphone.stopping.append(self)
            return
        super().stop()

    def finish_stop(self) -> None:
        super().stop()

    def _end(self) -> None:
        if self in self._microphone.live:
            self._microphone.live.remove(self)
        super()._end()


class CountingMicrophone(ConsoleMicrophone):
    """
    Records how many sessions were started and not yet ended at once.

    With ``defer_stops`` set, ``stop()`` only takes effect when the test
    calls ``complete_stops()``, like a recognizer that ends asynchronously.
    """

    def __init__(self) -> None:
        super().__init__()
        self.live: list[CountingAudioSession] = []
        self.stopping: list[CountingAudioSession] = []
        self.peak_live = 0
        self.defer_stops = False

    def create_session(self, kind, locales) -> CountingAudioSession:
        self.sessions_created += 1
        return CountingAudioSession(kind, locales, self)

    def complete_stops(self) -> None:
        stopping, self.stopping = self.stopping, []
        for session in stopping:
            session.finish_stop()


class RecordingActions(ScreenActions):
    """Screen actions that record every call."""

    def __init__(self, search_results: Optional[list[User]] = None):
        self.calls: list[tuple] = []
        self.search_results = list(search_results or [])

    def close_overlays(self) -> None:
        self.calls.append(("close_overlays",))

    def reset_scroll(self) -> None:
        self.calls.append(("reset_scroll",))

    def scroll(self, direction, fraction) -> None:
        self.calls.append(("scroll", direction, fraction))

    def set_playback(self, playing: bool) -> None:
        self.calls.append(("set_playback", playing))

    def reload(self) -> None:
        self.calls.append(("reload",))

    async def search_users(self, query: str) -> list[User]:
        self.calls.append(("search_users", query))
        return list(self.search_results)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def events() -> EventQueue:
    return EventQueue()


@pytest.fixture
def timers(scheduler, events) -> Timers:
    return Timers(scheduler, events)


@pytest.fixture
def mic() -> ConsoleMicrophone:
    return ConsoleMicrophone()


@pytest.fixture
def voice_config() -> VoiceConfig:
    return VoiceConfig()


@pytest.fixture
def voice(mic, events, timers, voice_config) -> VoiceSessionController:
    return VoiceSessionController(mic.create_session, events, timers, voice_config)


@pytest.fixture
def actions() -> RecordingActions:
    return RecordingActions()


@pytest.fixture
def resolver() -> ScriptedResolver:
    return ScriptedResolver()


@pytest.fixture
def me() -> User:
    return User("u1", name="Rahim", username="rahim")

