"""Conversation feed: realtime conversation summaries for the signed-in user."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

import websockets

from voicebook.models import User

log = logging.getLogger("voicebook.feed")

HEARTBEAT_INTERVAL = 30  # seconds
MAX_BACKOFF = 30          # seconds


@dataclass(frozen=True)
class LastMessage:
    id: str
    sender_id: str
    text: str = ""


@dataclass(frozen=True)
class ConversationSummary:
    """One row of the user's conversation list."""

    peer: User
    last_message: Optional[LastMessage] = None
    unread_count: int = 0


ConversationCallback = Callable[[list[ConversationSummary]], None]


def parse_conversations(payload: dict) -> list[ConversationSummary]:
    """Parse a ``conversations`` message; malformed rows are skipped."""
    summaries = []
    for row in payload.get("conversations") or []:
        if not isinstance(row, dict) or not isinstance(row.get("peer"), dict):
            continue
        try:
            peer = User.from_dict(row["peer"])
        except KeyError:
            continue
        last = row.get("last_message")
        last_message = None
        if isinstance(last, dict) and last.get("id") is not None:
            last_message = LastMessage(
                id=str(last["id"]),
                sender_id=str(last.get("sender_id") or ""),
                text=str(last.get("text") or ""),
            )
        try:
            unread = max(0, int(row.get("unread_count") or 0))
        except (TypeError, ValueError):
            unread = 0
        summaries.append(ConversationSummary(peer, last_message, unread))
    return summaries


class ConversationFeed(ABC):
    """Source of conversation updates for one user."""

    @abstractmethod
    def subscribe(self, user_id: str, callback: ConversationCallback) -> Callable[[], None]:
        """Deliver every update to ``callback``. Returns an unsubscribe function."""
        ...

    @abstractmethod
    async def ensure_conversation(self, user: User, peer: User) -> None:
        """Create the backing conversation record if it does not exist yet."""
        ...


class InMemoryConversationFeed(ConversationFeed):
    """Local feed used by the console app and tests; updates are published by hand."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[ConversationCallback]] = {}
        self.conversations: set[tuple[str, str]] = set()

    def subscribe(self, user_id: str, callback: ConversationCallback) -> Callable[[], None]:
        callbacks = self._subscribers.setdefault(user_id, [])
        callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def publish(self, user_id: str, summaries: list[ConversationSummary]) -> None:
        for callback in list(self._subscribers.get(user_id, [])):
            callback(list(summaries))

    async def ensure_conversation(self, user: User, peer: User) -> None:
        self.conversations.add(tuple(sorted((user.id, peer.id))))


class WebSocketConversationFeed(ConversationFeed):
    """Conversation feed over a WebSocket connection with auto-reconnect."""

    def __init__(self, server_url: str, max_backoff: float = MAX_BACKOFF):
        self.server_url = server_url
        self.max_backoff = max_backoff
        self._ws = None
        self._connected = False
        self._outbox: list[dict] = []

    @property
    def connected(self) -> bool:
        return self._connected

    def subscribe(self, user_id: str, callback: ConversationCallback) -> Callable[[], None]:
        task = asyncio.get_running_loop().create_task(self._run(user_id, callback))

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def ensure_conversation(self, user: User, peer: User) -> None:
        msg = {"type": "ensure_conversation", "user": user.to_dict(), "peer": peer.to_dict()}
        if not await self._send(msg):
            # Flushed on the next successful connect.
            self._outbox.append(msg)

    async def _send(self, msg: dict) -> bool:
        if not self._ws or not self._connected:
            return False
        try:
            await self._ws.send(json.dumps(msg))
            return True
        except websockets.ConnectionClosed:
            self._connected = False
            return False

    async def _run(self, user_id: str, callback: ConversationCallback) -> None:
        """Main loop: connect, subscribe, receive, auto-reconnect."""
        backoff = 1
        try:
            while True:
                try:
                    async with websockets.connect(self.server_url) as ws:
                        self._ws = ws
                        await ws.send(json.dumps({"type": "subscribe", "user_id": user_id}))
                        self._connected = True
                        backoff = 1
                        log.info(f"Conversation feed connected for {user_id}")
                        await self._flush_outbox()

                        heartbeat = asyncio.create_task(self._heartbeat_loop(ws))
                        try:
                            async for raw in ws:
                                self._handle_message(raw, callback)
                        finally:
                            heartbeat.cancel()
                            self._connected = False
                except (OSError, websockets.ConnectionClosed, asyncio.TimeoutError) as e:
                    self._connected = False
                    log.debug("Conversation feed lost (%s), reconnecting in %ds", e, backoff)
                    await asyncio.sleep(backoff)
                    backoff = min(backoff * 2, self.max_backoff)
        finally:
            self._connected = False
            self._ws = None

    def _handle_message(self, raw, callback: ConversationCallback) -> None:
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError:
            log.debug("Ignoring non-JSON feed message")
            return
        if not isinstance(msg, dict) or msg.get("type") != "conversations":
            return
        try:
            callback(parse_conversations(msg))
        except Exception:
            log.exception("Conversation callback error")

    async def _flush_outbox(self) -> None:
        pending, self._outbox = self._outbox, []
        for msg in pending:
            if not await self._send(msg):
                self._outbox.append(msg)

    async def _heartbeat_loop(self, ws):
        try:
            while True:
                await asyncio.sleep(HEARTBEAT_INTERVAL)
                await ws.send(json.dumps({"type": "ping"}))
        except (asyncio.CancelledError, websockets.ConnectionClosed):
            pass
