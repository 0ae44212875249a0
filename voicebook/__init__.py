"""
voicebook

Voice orchestration core for the VoiceBook social app: wake-word and
command listening, intent dispatch with watchdog recovery, navigation
stack, and chat-window presence.
"""

__version__ = "0.3.0"
