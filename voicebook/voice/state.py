"""
voicebook/voice/state.py

Voice state values and the Command record.

@module voice/state
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class VoiceState(str, Enum):
    """Which audio session is alive, or whether a command is being resolved."""

    IDLE = "idle"
    PASSIVE_LISTENING = "passive_listening"
    ACTIVE_LISTENING = "active_listening"
    PROCESSING = "processing"


class SessionKind(str, Enum):
    """The two mutually exclusive microphone sessions."""

    PASSIVE = "passive"  # continuous, interim results, wake word only
    ACTIVE = "active"  # single utterance, final result only


@dataclass(eq=False)
class Command:
    """A transcript waiting to be dispatched.

    Compared by identity: two commands with the same text are still
    different commands for the watchdog and stale-response guards.
    """

    transcript: str
    issued_at: datetime = field(default_factory=datetime.now)
    source: str = "voice"

    def to_dict(self) -> dict:
        return {
            "transcript": self.transcript,
            "issued_at": self.issued_at.isoformat(),
            "source": self.source,
        }


@dataclass(frozen=True)
class VoiceSnapshot:
    """Everything a voice indicator needs to render."""

    state: VoiceState
    status: str
    interim_transcript: str = ""
    command: Optional[str] = None
    command_text: str = ""

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "status": self.status,
            "interim_transcript": self.interim_transcript,
            "command": self.command,
            "command_text": self.command_text,
        }
