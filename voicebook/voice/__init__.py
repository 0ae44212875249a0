"""
Voice session module.

Wake-word and command listening state machine and audio backends.
"""

from voicebook.voice.audio import AudioErrorCode, AudioSession, AudioUnavailableError, VoiceError
from voicebook.voice.controller import VoiceSessionController
from voicebook.voice.state import Command, SessionKind, VoiceSnapshot, VoiceState

__all__ = [
    "AudioErrorCode",
    "AudioSession",
    "AudioUnavailableError",
    "Command",
    "SessionKind",
    "VoiceError",
    "VoiceSessionController",
    "VoiceSnapshot",
    "VoiceState",
]
