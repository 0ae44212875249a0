"""
voicebook/app.py

Application shell wiring the voice core together for one signed-in user.

@module app
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from voicebook.actions import ScreenActions
from voicebook.commands.dispatcher import CommandDispatcher
from voicebook.config.schema import VoicebookConfig
from voicebook.events import AsyncioScheduler, EventQueue, Scheduler, Timers
from voicebook.intents.resolver import IntentResolver, ResolverContext
from voicebook.models import User
from voicebook.navigation.stack import NavigationStack, ViewFrame
from voicebook.presence.chat import ChatPresenceManager, ChatWindowSet
from voicebook.presence.feed import ConversationFeed
from voicebook.voice.audio import AudioSessionFactory
from voicebook.voice.controller import VoiceSessionController
from voicebook.voice.state import VoiceSnapshot

log = logging.getLogger("voicebook")


@dataclass(frozen=True)
class AppSnapshot:
    """Everything a renderer needs: voice indicator, active screen, chat windows."""

    voice: VoiceSnapshot
    frame: ViewFrame
    chats: ChatWindowSet

    def to_dict(self) -> dict:
        return {
            "voice": self.voice.to_dict(),
            "frame": self.frame.to_dict(),
            "chats": self.chats.to_dict(),
        }


class VoicebookApp:
    def __init__(
        self,
        config: VoicebookConfig,
        audio_factory: AudioSessionFactory,
        resolver: IntentResolver,
        feed: ConversationFeed,
        actions: Optional[ScreenActions] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.config = config
        self.actions = actions or ScreenActions()
        self.events = EventQueue()
        self.timers = Timers(scheduler or AsyncioScheduler(), self.events)

        self.navigation = NavigationStack(self.actions)
        self.voice = VoiceSessionController(audio_factory, self.events, self.timers, config.voice)
        self.dispatcher = CommandDispatcher(
            self.voice,
            resolver,
            self.navigation,
            self.timers,
            actions=self.actions,
            config=config.dispatcher,
            context_provider=self.resolver_context,
        )
        self.chat = ChatPresenceManager(feed, self.events, config.chat)

        self.user: User | None = None
        self._contact_names: tuple[str, ...] = ()
        self._group_names: tuple[str, ...] = ()

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    def set_deep_link(self, fragment: str | None) -> None:
        """Start-up location fragment, applied on the first sign-in only."""
        self.navigation.set_deep_link(fragment)

    def sign_in(self, user: User) -> None:
        if self.user is not None:
            self.sign_out()
        log.info(f"Signed in as {user.id}")
        self.user = user
        self.dispatcher.user = user
        self.navigation.on_authenticated()
        self.chat.start(user)
        self.voice.start()

    def sign_out(self) -> None:
        """Stop listening, drop pending work and return to the auth screen."""
        if self.user is None:
            return
        log.info(f"Signing out {self.user.id}")
        self.voice.shutdown()
        self.dispatcher.shutdown()
        self.chat.stop()
        self.navigation.on_signed_out()
        self.dispatcher.user = None
        self.user = None
        self._contact_names = ()
        self._group_names = ()

    # -------------------------------------------------------------------------
    # Resolver context
    # -------------------------------------------------------------------------

    def set_contacts(self, names: Iterable[str]) -> None:
        self._contact_names = tuple(n for n in names if n)

    def set_groups(self, names: Iterable[str]) -> None:
        self._group_names = tuple(n for n in names if n)

    def resolver_context(self) -> ResolverContext:
        return ResolverContext(
            user_name=self.user.name if self.user else None,
            contact_names=self._contact_names,
            group_names=self._group_names,
        )

    def snapshot(self) -> AppSnapshot:
        return AppSnapshot(self.voice.snapshot(), self.navigation.current, self.chat.snapshot())
