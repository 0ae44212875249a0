"""Configuration loader for VoiceBook.

Handles loading and validation of YAML configuration, plus the
environment-provided secrets.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from voicebook.config.schema import CONFIG_SCHEMA_VERSION, VoicebookConfig

log = logging.getLogger("voicebook.config")

# XDG-style config location
CONFIG_DIR = Path.home() / ".config" / "voicebook"
CONFIG_FILE = CONFIG_DIR / "config.yaml"


def get_config_path() -> Path:
    """Return the path to the config file."""
    return CONFIG_FILE


def get_api_key() -> Optional[str]:
    """Return the Gemini API key from the environment (or a .env file)."""
    load_dotenv()
    return os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY")


def _create_default_config(path: Path) -> None:
    """Create a default config file if it doesn't exist."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        return
    default_content = """# =============================================================================
# VOICEBOOK CONFIGURATION
# =============================================================================
# All options have sensible defaults matching current behavior.
# Only override what you want to change.
# Schema version: {version}
# =============================================================================

# Voice listening
# voice:
#   language: "en"  # en or bn
#   wake_phrases: ["hey voicebook", "voice book"]
#   error_restart_delay: 1.0

# Command dispatch
# dispatcher:
#   watchdog_timeout: 4.0

# Intent resolver (Gemini)
# resolver:
#   model: "gemini-2.5-flash"
#   timeout: 3.5  # below the dispatcher watchdog

# Chat windows
# chat:
#   max_open_desktop: 3
#   auto_open: true

# Realtime conversation feed
# presence:
#   server_url: "wss://example.invalid/conversations"
""".format(version=CONFIG_SCHEMA_VERSION)
    path.write_text(default_content, encoding="utf-8")
    log.info(f"Created default config at {path}")


def load_config(config_path: Optional[Path] = None) -> VoicebookConfig:
    """Load configuration from file, merging with defaults.

    Args:
        config_path: Optional path to config file. Defaults to ~/.config/voicebook/config.yaml

    Returns:
        Validated VoicebookConfig instance
    """
    path = config_path or CONFIG_FILE

    if not path.exists():
        _create_default_config(path)

    file_config: dict[str, Any] = {}
    if path.exists():
        try:
            file_config = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            log.debug(f"Loaded config from {path}")
        except yaml.YAMLError as e:
            log.error(f"Failed to parse config YAML: {e}")
            file_config = {}

    if not isinstance(file_config, dict):
        log.warning("Config root is not a mapping, using defaults")
        return VoicebookConfig()

    try:
        config = VoicebookConfig(**file_config)
        log.debug("Configuration validated successfully")
        return config
    except Exception as e:
        log.warning(f"Config validation failed, using defaults: {e}")
        return VoicebookConfig()


def config_to_json(config: VoicebookConfig) -> str:
    """Export config to JSON (used by the CLI ``:config`` dump)."""
    return config.model_dump_json(exclude_none=True)


if __name__ == "__main__":
    print(json.dumps(load_config().model_dump(), indent=2, ensure_ascii=False))
