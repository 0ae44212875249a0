"""
voicebook/actions.py

Screen-side actions invoked by the navigation stack and the dispatcher.

The core never renders anything; a UI shell subclasses ScreenActions and
overrides the hooks it supports. Unsupported hooks are logged no-ops.

@module actions
"""

from __future__ import annotations

import logging
from typing import Literal

from voicebook.models import User

log = logging.getLogger("voicebook.actions")

ScrollDirection = Literal["up", "down"]


class ScreenActions:
    """Default (headless) implementation of every screen hook."""

    # -------------------------------------------------------------------------
    # Navigation side effects
    # -------------------------------------------------------------------------

    def close_overlays(self) -> None:
        """Close the notification panel and the profile menu."""
        log.debug("close_overlays")

    def reset_scroll(self) -> None:
        """Scroll the main content back to the top."""
        log.debug("reset_scroll")

    # -------------------------------------------------------------------------
    # Dispatcher actions
    # -------------------------------------------------------------------------

    def scroll(self, direction: ScrollDirection, fraction: float) -> None:
        """Scroll the main content by ``fraction`` of the viewport height."""
        log.debug(f"scroll {direction} by {fraction:.2f}")

    def set_playback(self, playing: bool) -> None:
        """Play or pause the media of the active post."""
        log.debug(f"set_playback {playing}")

    def reload(self) -> None:
        """Reload the application."""
        log.debug("reload")

    async def search_users(self, query: str) -> list[User]:
        """Search users by name; results are shown on the search screen."""
        log.debug(f"search_users {query!r}")
        return []
