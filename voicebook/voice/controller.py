"""
voicebook/voice/controller.py

Microphone session lifecycle for VoiceBook.

Idle -> PassiveListening (wake word) -> ActiveListening (command) ->
Processing -> Idle, with scheduled restarts and error recovery. The
controller is the only owner of the audio session handle, the VoiceState
and the pending Command.

@module voice/controller
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from voicebook.commands.detection import find_wake_phrase
from voicebook.config.schema import VoiceConfig
from voicebook.events import EventQueue, TimerHandle, Timers
from voicebook.voice.audio import (
    AudioSession,
    AudioSessionFactory,
    AudioUnavailableError,
    ErrorKind,
    classify_error,
)
from voicebook.voice.prompts import get_prompt
from voicebook.voice.state import Command, SessionKind, VoiceSnapshot, VoiceState

log = logging.getLogger("voicebook.voice")

StateListener = Callable[[VoiceState, VoiceState], None]
StatusListener = Callable[[str], None]
CommandSink = Callable[[Command], None]


class StopReason(str, Enum):
    """Why the controller asked the live session to stop."""

    HANDOFF = "handoff"  # start the active session once this one has ended
    USER = "user"
    SUPERSEDED = "superseded"  # a typed command replaced listening
    ERROR = "error"


# =============================================================================
# VOICE SESSION CONTROLLER
# =============================================================================


class VoiceSessionController:
    """
    Owns the voice state machine.

    Every entry point is posted to the shared EventQueue, so audio
    callbacks, timers and user actions are handled strictly one at a time.
    Calls made from outside a handler take effect before they return.
    """

    def __init__(
        self,
        audio_factory: AudioSessionFactory,
        events: EventQueue,
        timers: Timers,
        config: Optional[VoiceConfig] = None,
        command_sink: Optional[CommandSink] = None,
    ):
        self._config = config or VoiceConfig()
        self._audio_factory = audio_factory
        self._events = events
        self._timers = timers
        self.command_sink = command_sink

        self._state = VoiceState.IDLE
        self._command: Command | None = None
        self._status = get_prompt("welcome", self._config.language)
        self._interim = ""
        self._command_text = ""

        self._live: AudioSession | None = None
        self._stop_reason: StopReason | None = None
        self._session_failed = False
        self._permission_blocked = False
        self._running = False
        self._restart_timer: TimerHandle | None = None

        self._state_listeners: list[StateListener] = []
        self._status_listeners: list[StatusListener] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> VoiceState:
        return self._state

    @property
    def command(self) -> Command | None:
        """The command awaiting dispatch, if any."""
        return self._command

    @property
    def status(self) -> str:
        return self._status

    @property
    def interim_transcript(self) -> str:
        return self._interim

    @property
    def command_text(self) -> str:
        return self._command_text

    @property
    def live_session_kind(self) -> SessionKind | None:
        return self._live.kind if self._live is not None else None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def permission_blocked(self) -> bool:
        return self._permission_blocked

    @property
    def restart_pending(self) -> bool:
        return self._restart_timer is not None

    @property
    def language(self) -> str:
        return self._config.language

    def snapshot(self) -> VoiceSnapshot:
        return VoiceSnapshot(
            state=self._state,
            status=self._status,
            interim_transcript=self._interim,
            command=self._command.transcript if self._command else None,
            command_text=self._command_text,
        )

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_state_listener(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener(old, new)`` on every transition. Returns an unsubscribe."""
        self._state_listeners.append(listener)
        return lambda: self._remove(self._state_listeners, listener)

    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        self._status_listeners.append(listener)
        return lambda: self._remove(self._status_listeners, listener)

    @staticmethod
    def _remove(listeners: list, listener) -> None:
        if listener in listeners:
            listeners.remove(listener)

    # -------------------------------------------------------------------------
    # Public entry points
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Begin passive listening for a newly signed-in user."""
        self._events.post(self._handle_start)

    def shutdown(self) -> None:
        """Tear down the live session and every pending timer."""
        self._events.post(self._handle_shutdown)

    def toggle_active(self) -> None:
        """Mic button: start command listening, or stop it if already listening."""
        self._events.post(self._handle_toggle)

    def submit_text(self, text: str) -> None:
        """Dispatch a typed command exactly like a spoken one."""
        self._events.post(self._handle_text, text)

    def finish_processing(self, command: Command | None = None) -> None:
        """
        Return from Processing to Idle.

        Args:
            command: The command being completed. When given, completion
                is ignored unless it is still the pending command.
        """
        self._events.post(self._handle_finish, command)

    def set_command_text(self, text: str) -> None:
        """Text currently typed into the command box."""
        self._command_text = text

    def announce(self, text: str) -> None:
        """Replace the status line shown (and spoken) to the user."""
        self._status = text
        for listener in list(self._status_listeners):
            try:
                listener(text)
            except Exception:
                log.exception("Status listener error")

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def _set_state(self, new_state: VoiceState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        log.debug("Voice state %s -> %s", old_state.value, new_state.value)
        for listener in list(self._state_listeners):
            try:
                listener(old_state, new_state)
            except Exception:
                log.exception("State listener error")

    def _announce(self, key: str) -> None:
        self.announce(get_prompt(key, self._config.language))

    # -------------------------------------------------------------------------
    # Handlers: user actions
    # -------------------------------------------------------------------------

    def _handle_start(self) -> None:
        if self._running:
            return
        self._running = True
        self._permission_blocked = False
        if not self._config.enabled:
            log.info("Voice input disabled by config")
            return
        self._start_session(SessionKind.PASSIVE)

    def _handle_shutdown(self) -> None:
        if not self._running:
            return
        self._running = False
        self._cancel_restart()
        session = self._live
        if session is not None:
            session.detach()
            self._live = None
            self._stop_reason = None
            try:
                session.stop()
            except Exception as e:
                log.debug(f"Error stopping {session.kind.value} session on shutdown: {e}")
        self._command = None
        self._interim = ""
        self._command_text = ""
        self._set_state(VoiceState.IDLE)
        log.info("Voice session shut down")

    def _handle_toggle(self) -> None:
        if not self._running:
            log.debug("Mic toggle ignored: no active user session")
            return

        if self._state is VoiceState.PROCESSING:
            self._announce("busy")
            return

        live = self._live
        if live is not None and live.kind is SessionKind.ACTIVE and self._stop_reason is None:
            log.info("Active listening stopped by user")
            self._interim = ""
            self._set_state(VoiceState.IDLE)
            self._request_stop(live, StopReason.USER)
            return

        # An explicit user gesture is allowed to retry after a permission error.
        self._permission_blocked = False
        self._cancel_restart()

        if live is not None:
            if self._stop_reason is None:
                self._request_stop(live, StopReason.HANDOFF)
            else:
                self._stop_reason = StopReason.HANDOFF
            return

        self._start_session(SessionKind.ACTIVE)

    def _handle_text(self, text: str) -> None:
        transcript = (text or "").strip()
        if not transcript:
            return
        if not self._running:
            log.debug("Text command ignored: no active user session")
            return
        if self._state is VoiceState.PROCESSING:
            self._announce("busy")
            return

        self._cancel_restart()
        if self._live is not None:
            if self._stop_reason is None:
                self._request_stop(self._live, StopReason.SUPERSEDED)
            else:
                self._stop_reason = StopReason.SUPERSEDED
        self._begin_processing(Command(transcript, source="text"))

    def _handle_finish(self, command: Command | None) -> None:
        if self._state is not VoiceState.PROCESSING:
            log.debug("Finish ignored: not processing")
            return
        if command is not None and command is not self._command:
            log.debug("Finish ignored: command is no longer pending")
            return

        self._command = None
        self._set_state(VoiceState.IDLE)
        if self._live is None and not self._permission_blocked:
            self._schedule_restart(self._config.active_restart_delay)

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def _start_session(self, kind: SessionKind) -> bool:
        if not self._running:
            return False
        if self._live is not None:
            log.debug(
                f"Refusing to start {kind.value} session: "
                f"{self._live.kind.value} session still live"
            )
            return False
        if kind is SessionKind.PASSIVE and (
            self._state is VoiceState.PROCESSING or self._permission_blocked
        ):
            return False

        self._cancel_restart()
        locales = (
            self._config.passive_locales
            if kind is SessionKind.PASSIVE
            else self._config.active_locales
        )

        try:
            session = self._audio_factory(kind, list(locales))
        except AudioUnavailableError as e:
            log.warning(f"Speech recognition unavailable: {e}")
            self._announce("error_no_speech_rec")
            return False

        self._bind(session)
        self._live = session
        self._stop_reason = None
        self._session_failed = False
        self._interim = ""

        try:
            session.start()
        except AudioUnavailableError as e:
            log.warning(f"Speech recognition unavailable: {e}")
            session.detach()
            self._live = None
            self._announce("error_no_speech_rec")
            return False
        except Exception as e:
            log.warning(f"Could not start {kind.value} listener: {e}")
            session.detach()
            self._live = None
            if kind is SessionKind.ACTIVE:
                self._announce("error_mic_not_found")
            self._schedule_restart(self._config.error_restart_delay)
            return False

        log.debug(f"Started {kind.value} session")
        return True

    def _bind(self, session: AudioSession) -> None:
        post = self._events.post
        session.on_session_start = lambda: post(self._on_session_start, session)
        session.on_interim_result = lambda text: post(self._on_interim_result, session, text)
        session.on_final_result = lambda text: post(self._on_final_result, session, text)
        session.on_error = lambda code: post(self._on_error, session, code)
        session.on_session_end = lambda: post(self._on_session_end, session)

    def _is_current(self, session: AudioSession, event: str) -> bool:
        if session is self._live:
            return True
        log.debug(f"Ignoring {event} from stale {session.kind.value} session")
        return False

    def _request_stop(self, session: AudioSession, reason: StopReason) -> None:
        self._stop_reason = reason
        try:
            session.stop()
        except Exception as e:
            log.warning(f"Error stopping {session.kind.value} session: {e}")
            self._events.post(self._on_session_end, session)

    # -------------------------------------------------------------------------
    # Handlers: audio session events
    # -------------------------------------------------------------------------

    def _on_session_start(self, session: AudioSession) -> None:
        if not self._is_current(session, "start") or self._stop_reason is not None:
            return
        if session.kind is SessionKind.PASSIVE:
            self._set_state(VoiceState.PASSIVE_LISTENING)
            self._announce("wake_hint")
        else:
            self._command_text = ""
            self._set_state(VoiceState.ACTIVE_LISTENING)
            self._announce("listening")

    def _on_interim_result(self, session: AudioSession, text: str) -> None:
        if not self._is_current(session, "interim result") or self._stop_reason is not None:
            return
        if session.kind is SessionKind.PASSIVE:
            self._check_wake_phrase(session, text)
        else:
            self._interim = text

    def _on_final_result(self, session: AudioSession, text: str) -> None:
        if not self._is_current(session, "final result") or self._stop_reason is not None:
            return
        if session.kind is SessionKind.PASSIVE:
            self._check_wake_phrase(session, text)
            return

        transcript = (text or "").strip()
        if not transcript or self._state is VoiceState.PROCESSING:
            return
        self._interim = ""
        self._begin_processing(Command(transcript))

    def _check_wake_phrase(self, session: AudioSession, text: str) -> None:
        phrase = find_wake_phrase(text, self._config.wake_phrases)
        if phrase is None:
            return
        log.info(f"Wake phrase detected: {phrase!r}")
        self._request_stop(session, StopReason.HANDOFF)

    def _on_error(self, session: AudioSession, code: str) -> None:
        if not self._is_current(session, "error"):
            return

        kind = classify_error(code)
        if kind is ErrorKind.TRANSIENT:
            log.debug(f"{session.kind.value} listener: {code}")
            return

        if kind is ErrorKind.PERMISSION:
            log.warning(f"Microphone permission denied ({code})")
            self._permission_blocked = True
            self._announce("error_mic_permission")
            if self._state is VoiceState.ACTIVE_LISTENING:
                self._interim = ""
                self._set_state(VoiceState.IDLE)
        else:
            log.warning(f"{session.kind.value} listener error: {code}")
            self._session_failed = True
            self._announce("error_generic")

        if self._stop_reason is None:
            self._request_stop(session, StopReason.ERROR)

    def _on_session_end(self, session: AudioSession) -> None:
        if not self._is_current(session, "end"):
            return

        reason = self._stop_reason
        failed = self._session_failed
        session.detach()
        self._live = None
        self._stop_reason = None
        self._session_failed = False
        self._interim = ""
        log.debug(f"{session.kind.value} session ended ({reason.value if reason else 'natural'})")

        if reason is StopReason.HANDOFF:
            self._set_state(VoiceState.IDLE)
            self._start_session(SessionKind.ACTIVE)
            return

        if self._state in (VoiceState.PASSIVE_LISTENING, VoiceState.ACTIVE_LISTENING):
            self._set_state(VoiceState.IDLE)

        # A pending command resumes passive listening when it completes.
        if self._state is VoiceState.PROCESSING or self._permission_blocked:
            return

        if failed:
            delay = self._config.error_restart_delay
        elif session.kind is SessionKind.ACTIVE:
            delay = self._config.active_restart_delay
        else:
            delay = self._config.passive_restart_delay
        self._schedule_restart(delay)

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    def _begin_processing(self, command: Command) -> None:
        self._command = command
        self._command_text = ""
        self._interim = ""
        self._set_state(VoiceState.PROCESSING)
        log.info(f"Processing {command.source} command: {command.transcript!r}")
        if self.command_sink is None:
            log.warning("No dispatcher attached, dropping command")
            self._handle_finish(command)
            return
        self.command_sink(command)

    # -------------------------------------------------------------------------
    # Restart timer
    # -------------------------------------------------------------------------

    def _schedule_restart(self, delay: float) -> None:
        if not self._running:
            return
        self._cancel_restart()
        self._restart_timer = self._timers.call_later(delay, self._on_restart_timer)

    def _cancel_restart(self) -> None:
        if self._restart_timer is not None:
            self._restart_timer.cancel()
            self._restart_timer = None

    def _on_restart_timer(self) -> None:
        self._restart_timer = None
        self._start_session(SessionKind.PASSIVE)
