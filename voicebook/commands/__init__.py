"""
voicebook/commands/__init__.py

Command handling: wake-phrase detection and the global dispatcher.

The dispatcher is imported from ``voicebook.commands.dispatcher`` directly,
since it depends on the voice controller which depends on detection.

@module commands
"""

from voicebook.commands.detection import (
    find_wake_phrase,
    is_wake_phrase,
    normalize_transcript,
)

__all__ = [
    "find_wake_phrase",
    "is_wake_phrase",
    "normalize_transcript",
]
