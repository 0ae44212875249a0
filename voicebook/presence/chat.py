"""
voicebook/presence/chat.py

Chat window presence: which peer conversations have an open window.

Conversation updates arrive from a ConversationFeed. For each batch the
manager decides whether to auto-open one window for an unseen inbound
message, then advances the last-seen index for every conversation, then
recomputes unread counts. Window changes never touch the navigation stack.

@module presence/chat
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from voicebook.config.schema import ChatConfig
from voicebook.events import EventQueue
from voicebook.models import User
from voicebook.presence.feed import ConversationFeed, ConversationSummary

log = logging.getLogger("voicebook.chat")

ChatListener = Callable[["ChatWindowSet"], None]


def channel_id(user_id: str, peer_id: str) -> str:
    """Pairwise conversation id; the same for both participants."""
    return "_".join(sorted((user_id, peer_id)))


# =============================================================================
# SNAPSHOT
# =============================================================================


@dataclass(frozen=True)
class ChatWindowSet:
    """Open chat windows, oldest first."""

    open_peers: tuple[User, ...] = ()
    minimized: frozenset[str] = frozenset()
    unread_counts: dict[str, int] = field(default_factory=dict)

    @property
    def open_ids(self) -> tuple[str, ...]:
        return tuple(p.id for p in self.open_peers)

    def to_dict(self) -> dict:
        return {
            "open_peers": [p.to_dict() for p in self.open_peers],
            "minimized": sorted(self.minimized),
            "unread_counts": dict(self.unread_counts),
        }


# =============================================================================
# CHANGE DETECTION
# =============================================================================


class LastSeenMessageIndex:
    """Last message id seen per peer. Only ever moves forward."""

    def __init__(self) -> None:
        self._seen: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._seen)

    def get(self, peer_id: str) -> Optional[str]:
        return self._seen.get(peer_id)

    def is_new(self, summary: ConversationSummary) -> bool:
        last = summary.last_message
        if last is None:
            return False
        return self._seen.get(summary.peer.id) != last.id

    def advance(self, conversations: Iterable[ConversationSummary]) -> None:
        for summary in conversations:
            if summary.last_message is not None:
                self._seen[summary.peer.id] = summary.last_message.id


def select_auto_open(
    conversations: list[ConversationSummary],
    user_id: str,
    seen: LastSeenMessageIndex,
    open_ids: Iterable[str],
    first_update: bool = False,
    mobile: bool = False,
) -> Optional[User]:
    """
    Pick the peer whose window should open for this batch, if any.

    A candidate has a last message, not sent by ``user_id``, whose id
    differs from the index. The first candidate in arrival order that is
    not already open wins; nothing opens on the first update after
    subscribing or on mobile.
    """
    if first_update or mobile:
        return None
    already_open = set(open_ids)
    for summary in conversations:
        last = summary.last_message
        if last is None or last.sender_id == user_id:
            continue
        if not seen.is_new(summary):
            continue
        if summary.peer.id in already_open:
            continue
        return summary.peer
    return None


# =============================================================================
# CHAT PRESENCE MANAGER
# =============================================================================


class ChatPresenceManager:
    """Owns the ChatWindowSet for the signed-in user."""

    def __init__(
        self,
        feed: ConversationFeed,
        events: EventQueue,
        config: Optional[ChatConfig] = None,
    ):
        self._feed = feed
        self._events = events
        self._config = config or ChatConfig()

        self._user: User | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._first_update = True
        self._seen = LastSeenMessageIndex()
        self._viewport_width: int | None = None

        self._open: list[User] = []
        self._minimized: set[str] = set()
        self._unread: dict[str, int] = {}
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[ChatListener] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def user(self) -> User | None:
        return self._user

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    @property
    def seen(self) -> LastSeenMessageIndex:
        return self._seen

    @property
    def is_mobile(self) -> bool:
        width = self._viewport_width
        return width is not None and width < self._config.mobile_breakpoint

    @property
    def max_open(self) -> int:
        return self._config.max_open_mobile if self.is_mobile else self._config.max_open_desktop

    def snapshot(self) -> ChatWindowSet:
        return ChatWindowSet(tuple(self._open), frozenset(self._minimized), dict(self._unread))

    def add_listener(self, listener: ChatListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def set_viewport_width(self, width: int | None) -> None:
        """Window width in pixels; narrower than the breakpoint counts as mobile."""
        self._events.post(self._handle_viewport, width)

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def start(self, user: User) -> None:
        """Subscribe to the user's conversations."""
        self.stop()
        self._user = user
        self._first_update = True
        self._unsubscribe = self._feed.subscribe(user.id, self._on_conversations)
        log.info(f"Listening to conversations for {user.id}")

    def stop(self) -> None:
        """Unsubscribe and close every window."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._tasks):
            task.cancel()
        self._user = None
        if self._open or self._minimized or self._unread:
            self._open.clear()
            self._minimized.clear()
            self._unread.clear()
            self._notify()

    def _on_conversations(self, conversations: list[ConversationSummary]) -> None:
        self._events.post(self._handle_conversations, list(conversations))

    def _handle_conversations(self, conversations: list[ConversationSummary]) -> None:
        user = self._user
        if user is None:
            log.debug("Dropping conversation update after sign-out")
            return

        first_update = self._first_update
        self._first_update = False

        if self._config.auto_open:
            peer = select_auto_open(
                conversations,
                user.id,
                self._seen,
                [p.id for p in self._open],
                first_update=first_update,
                mobile=self.is_mobile,
            )
            if peer is not None:
                log.info(f"New message from {peer.id}, opening chat")
                self._spawn(self.open(peer))

        self._seen.advance(conversations)
        self._unread = {
            channel_id(user.id, c.peer.id): c.unread_count for c in conversations
        }
        self._notify()

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            exc = task.exception()
            log.error("Auto-open failed", exc_info=(type(exc), exc, exc.__traceback__))

    async def wait_idle(self) -> None:
        """Wait for auto-open calls started by conversation updates."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Window operations
    # -------------------------------------------------------------------------

    async def open(self, peer: User) -> None:
        """Open (or bring back) the chat window for ``peer``."""
        user = self._user
        if user is None:
            return
        await self._feed.ensure_conversation(user, peer)
        if self._user is not user:
            return
        self._events.post(self._handle_open, peer)

    def close(self, peer_id: str) -> None:
        self._events.post(self._handle_close, peer_id)

    def toggle_minimize(self, peer_id: str) -> None:
        self._events.post(self._handle_toggle_minimize, peer_id)

    def _handle_open(self, peer: User) -> None:
        windows = [p for p in self._open if p.id != peer.id]
        windows.append(peer)
        self._open = self._apply_cap(windows)
        self._minimized.discard(peer.id)
        log.debug(f"open chat {peer.id}; open={[p.id for p in self._open]}")
        self._notify()

    def _handle_close(self, peer_id: str) -> None:
        self._open = [p for p in self._open if p.id != peer_id]
        self._minimized.discard(peer_id)
        self._notify()

    def _handle_toggle_minimize(self, peer_id: str) -> None:
        if not any(p.id == peer_id for p in self._open):
            return
        if peer_id in self._minimized:
            self._minimized.remove(peer_id)
        else:
            self._minimized.add(peer_id)
        self._notify()

    def _handle_viewport(self, width: int | None) -> None:
        self._viewport_width = width
        capped = self._apply_cap(self._open)
        if len(capped) != len(self._open):
            self._open = capped
            self._notify()

    def _apply_cap(self, windows: list[User]) -> list[User]:
        """Keep the newest windows up to the current cap."""
        cap = self.max_open
        if len(windows) > cap:
            evicted = windows[: len(windows) - cap]
            windows = windows[len(windows) - cap:]
            for p in evicted:
                self._minimized.discard(p.id)
        return windows

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                log.exception("Chat listener error")
