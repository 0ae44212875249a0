"""
Configuration module for VoiceBook.

Provides YAML-based configuration with Pydantic validation.
"""

from .loader import load_config, get_config_path, get_api_key
from .schema import VoicebookConfig

__all__ = ["load_config", "get_config_path", "get_api_key", "VoicebookConfig"]
