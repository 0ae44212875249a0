"""Pydantic models for VoiceBook configuration validation.

All fields have defaults matching the current behavior.
Only override what you want to change.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# VOICE CONFIG
# =============================================================================


DEFAULT_WAKE_PHRASES = [
    "hey voicebook",
    "hay voicebook",
    "hey voice book",
    "hay voice book",
    "voice book",
    "হেই ভয়েসবুক",
    "ভয়েসবুক",
]


class VoiceConfig(BaseModel):
    """Wake-word and command listening settings."""

    enabled: bool = True
    language: Literal["en", "bn"] = "en"
    wake_phrases: list[str] = Field(default_factory=lambda: list(DEFAULT_WAKE_PHRASES))
    passive_restart_delay: float = Field(default=0.25, ge=0.0, le=5.0)
    active_restart_delay: float = Field(default=0.1, ge=0.0, le=5.0)
    error_restart_delay: float = Field(default=1.0, ge=0.1, le=30.0)
    passive_locales: list[str] = Field(default_factory=lambda: ["en-US", "bn-BD"])
    active_locales: list[str] = Field(default_factory=lambda: ["bn-BD", "en-US"])

    @field_validator("wake_phrases", mode="after")
    @classmethod
    def normalize_wake_phrases(cls, v: list[str]) -> list[str]:
        """Lower-case, strip and de-duplicate phrases; at least one is required."""
        phrases: list[str] = []
        for phrase in v:
            normalized = phrase.lower().strip()
            if normalized and normalized not in phrases:
                phrases.append(normalized)
        if not phrases:
            raise ValueError("At least one wake phrase is required")
        return phrases


# =============================================================================
# DISPATCHER CONFIG
# =============================================================================


class DispatcherConfig(BaseModel):
    """Command dispatch settings."""

    # Must stay within a few seconds.
    watchdog_timeout: float = Field(default=4.0, ge=1.0, le=6.0)
    scroll_fraction: float = Field(default=0.7, gt=0.0, le=1.0)


# =============================================================================
# RESOLVER CONFIG
# =============================================================================


class ResolverConfig(BaseModel):
    """Gemini intent resolver settings."""

    model: str = "gemini-2.5-flash"
    # Keep below dispatcher.watchdog_timeout; the watchdog bounds slower calls.
    timeout: float = Field(default=3.5, ge=1.0, le=60.0)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)


# =============================================================================
# CHAT CONFIG
# =============================================================================


class ChatConfig(BaseModel):
    """Chat window presence settings."""

    max_open_desktop: int = Field(default=3, ge=1, le=3)
    max_open_mobile: int = Field(default=1, ge=1, le=1)
    mobile_breakpoint: int = Field(default=768, ge=320, le=2048)
    auto_open: bool = True


# =============================================================================
# PRESENCE CONFIG
# =============================================================================


class PresenceConfig(BaseModel):
    """Realtime conversation feed configuration."""

    enabled: bool = True
    server_url: str = ""
    max_backoff: int = Field(default=30, ge=1, le=300)


# =============================================================================
# LOGGING CONFIG
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file_logging: bool = True
    max_file_size_mb: int = Field(default=5, ge=1, le=50)
    backup_count: int = Field(default=3, ge=1, le=10)


# =============================================================================
# ROOT CONFIG
# =============================================================================


class VoicebookConfig(BaseModel):
    """Root configuration for VoiceBook.

    All options have sensible defaults matching current behavior.
    Only override what you want to change.
    """

    voice: VoiceConfig = Field(default_factory=VoiceConfig)
    dispatcher: DispatcherConfig = Field(default_factory=DispatcherConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    presence: PresenceConfig = Field(default_factory=PresenceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "ignore"}

    @classmethod
    def get_defaults(cls) -> dict:
        """Get all default values as a dictionary."""
        return cls().model_dump()


# =============================================================================
# CONFIG SCHEMA VERSION
# =============================================================================

CONFIG_SCHEMA_VERSION = 1
