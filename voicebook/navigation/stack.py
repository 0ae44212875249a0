"""
voicebook/navigation/stack.py

View frame stack for the main content area.

@module navigation/stack
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from voicebook.actions import ScreenActions

log = logging.getLogger("voicebook.navigation")


# =============================================================================
# VIEWS
# =============================================================================


class View(str, Enum):
    AUTH = "auth"
    FEED = "feed"
    EXPLORE = "explore"
    REELS = "reels"
    FRIENDS = "friends"
    PROFILE = "profile"
    SETTINGS = "settings"
    CONVERSATIONS = "conversations"
    ADS_CENTER = "ads_center"
    ROOMS_HUB = "rooms_hub"
    GROUPS_HUB = "groups_hub"
    MOBILE_MENU = "mobile_menu"
    CREATE_POST = "create_post"
    CREATE_STORY = "create_story"
    SEARCH_RESULTS = "search_results"
    POST_DETAILS = "post_details"


@dataclass(frozen=True)
class ViewFrame:
    """One screen on the stack."""

    view: View
    props: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"view": self.view.value, "props": dict(self.props)}


# =============================================================================
# DEEP LINKS
# =============================================================================


_POST_LINK_RE = re.compile(r"^#/post/([\w-]+)")


def parse_deep_link(fragment: str | None) -> Optional[ViewFrame]:
    """Map a start-up location fragment such as ``#/post/abc-123`` to a frame."""
    if not fragment:
        return None
    m = _POST_LINK_RE.match(fragment.strip())
    if not m:
        return None
    return ViewFrame(View.POST_DETAILS, {"post_id": m.group(1)})


# =============================================================================
# NAVIGATION STACK
# =============================================================================


class NavigationStack:
    """
    Ordered view frames; the last one is the active screen.

    The stack never becomes empty. Pushing and resetting also close the
    overlay panels and reset scroll, through the ScreenActions hooks.
    """

    def __init__(
        self,
        actions: Optional[ScreenActions] = None,
        initial: Optional[ViewFrame] = None,
    ):
        self._actions = actions or ScreenActions()
        self._frames: list[ViewFrame] = [initial or ViewFrame(View.AUTH)]
        self._pending_deep_link: ViewFrame | None = None
        self._authenticated_once = False
        self._listeners: list[Callable[[ViewFrame], None]] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def current(self) -> ViewFrame:
        return self._frames[-1]

    @property
    def frames(self) -> tuple[ViewFrame, ...]:
        return tuple(self._frames)

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def can_go_back(self) -> bool:
        return len(self._frames) > 1

    @property
    def pending_deep_link(self) -> ViewFrame | None:
        return self._pending_deep_link

    def add_listener(self, listener: Callable[[ViewFrame], None]) -> Callable[[], None]:
        """Call ``listener(frame)`` whenever the active frame changes."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def push(self, view: View, props: Optional[dict[str, Any]] = None) -> ViewFrame:
        """Open ``view`` on top of the current screen."""
        self._leave_current()
        frame = ViewFrame(view, dict(props or {}))
        self._frames.append(frame)
        log.debug(f"push {view.value} (depth {len(self._frames)})")
        self._notify()
        return frame

    def reset(self, view: View, props: Optional[dict[str, Any]] = None) -> ViewFrame:
        """Replace the whole stack with ``view``; used for top-level tabs."""
        self._leave_current()
        frame = ViewFrame(view, dict(props or {}))
        self._frames = [frame]
        log.debug(f"reset to {view.value}")
        self._notify()
        return frame

    def pop(self) -> bool:
        """
        Go back one screen.

        Returns:
            True if a frame was removed, False if already at the root.
        """
        if len(self._frames) <= 1:
            return False
        removed = self._frames.pop()
        log.debug(f"pop {removed.view.value} (depth {len(self._frames)})")
        self._notify()
        return True

    def _leave_current(self) -> None:
        self._actions.close_overlays()
        self._actions.reset_scroll()

    def _notify(self) -> None:
        frame = self.current
        for listener in list(self._listeners):
            try:
                listener(frame)
            except Exception:
                log.exception("Navigation listener error")

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def set_deep_link(self, fragment: str | None) -> Optional[ViewFrame]:
        """Remember a start-up deep link until the first successful sign-in."""
        if self._authenticated_once:
            return None
        frame = parse_deep_link(fragment)
        if frame is not None:
            log.info(f"Deep link pending: {frame.view.value} {frame.props}")
            self._pending_deep_link = frame
        return frame

    def on_authenticated(self) -> ViewFrame:
        """Choose the first frame after sign-in."""
        first_time = not self._authenticated_once
        self._authenticated_once = True
        if first_time and self._pending_deep_link is not None:
            frame = self._pending_deep_link
            self._pending_deep_link = None
            return self.reset(frame.view, frame.props)
        if self.current.view is View.AUTH:
            return self.reset(View.FEED)
        return self.current

    def on_signed_out(self) -> ViewFrame:
        return self.reset(View.AUTH)
