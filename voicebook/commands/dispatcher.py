"""
voicebook/commands/dispatcher.py

Global command dispatch: transcript -> intent -> action.

Intents in the routing table are handled here and complete the command.
Recognized intents outside the table stay pending for the mounted screen.
A watchdog returns the voice state to Idle if nothing completes the
command in time.

@module commands/dispatcher
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from voicebook.actions import ScreenActions
from voicebook.config.schema import DispatcherConfig
from voicebook.events import TimerHandle, Timers
from voicebook.intents import catalog
from voicebook.intents.resolver import Intent, IntentResolver, IntentResolverError, ResolverContext
from voicebook.models import User
from voicebook.navigation.stack import NavigationStack, View
from voicebook.voice.controller import VoiceSessionController
from voicebook.voice.prompts import get_prompt
from voicebook.voice.state import Command, VoiceState

log = logging.getLogger("voicebook.dispatch")

RouteHandler = Callable[[Intent], Optional[Awaitable[Any]]]
UnroutedListener = Callable[[Command, Intent], None]
ContextProvider = Callable[[], ResolverContext]


# =============================================================================
# ROUTING TABLE DATA
# =============================================================================

# intent -> (tab root view, status message)
TAB_ROUTES: dict[str, tuple[View, str]] = {
    catalog.INTENT_OPEN_FEED: (View.FEED, "Going to your feed."),
    catalog.INTENT_OPEN_EXPLORE: (View.EXPLORE, "Opening Explore."),
    catalog.INTENT_OPEN_REELS: (View.REELS, "Opening Reels."),
    catalog.INTENT_OPEN_FRIENDS_PAGE: (View.FRIENDS, "Opening friends list."),
    catalog.INTENT_OPEN_MESSAGES: (View.CONVERSATIONS, "Opening messages."),
    catalog.INTENT_OPEN_ROOMS_HUB: (View.ROOMS_HUB, "Opening Rooms Hub."),
    catalog.INTENT_OPEN_GROUPS_HUB: (View.GROUPS_HUB, "Opening Groups Hub."),
    catalog.INTENT_OPEN_ADS_CENTER: (View.ADS_CENTER, "Opening Ads Center."),
}

# intent -> (pushed view, status message)
PUSH_ROUTES: dict[str, tuple[View, str]] = {
    catalog.INTENT_OPEN_SETTINGS: (View.SETTINGS, "Opening settings."),
    catalog.INTENT_OPEN_MENU: (View.MOBILE_MENU, "Opening menu."),
    catalog.INTENT_CREATE_STORY: (View.CREATE_STORY, "Let's create a story."),
}

# intent -> (create-post props, status message)
CREATE_POST_ROUTES: dict[str, tuple[dict[str, Any], str]] = {
    catalog.INTENT_CREATE_POST: ({}, "Let's create a new post."),
    catalog.INTENT_CREATE_VOICE_POST: ({"start_recording": True}, "Starting a new voice post."),
    catalog.INTENT_CREATE_PHOTO_POST: ({"select_media": "image"}, "Select a photo for your post."),
    catalog.INTENT_CREATE_VIDEO_POST: ({"select_media": "video"}, "Select a video for your post."),
}


# =============================================================================
# COMMAND DISPATCHER
# =============================================================================


class CommandDispatcher:
    """Resolves pending voice commands and routes them to actions."""

    def __init__(
        self,
        voice: VoiceSessionController,
        resolver: IntentResolver,
        navigation: NavigationStack,
        timers: Timers,
        actions: Optional[ScreenActions] = None,
        config: Optional[DispatcherConfig] = None,
        context_provider: Optional[ContextProvider] = None,
    ):
        self._voice = voice
        self._resolver = resolver
        self._navigation = navigation
        self._timers = timers
        self._actions = actions or ScreenActions()
        self._config = config or DispatcherConfig()
        self._context_provider = context_provider or ResolverContext
        self.user: User | None = None

        self._watchdog: TimerHandle | None = None
        self._pending: tuple[Command, Intent] | None = None
        self._tasks: set[asyncio.Task] = set()
        self._unrouted_listeners: list[UnroutedListener] = []
        self._routes = self._build_routes()

        voice.command_sink = self.submit
        voice.add_state_listener(self._on_voice_state)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def routes(self) -> frozenset[str]:
        """Intent names this dispatcher handles itself."""
        return frozenset(self._routes)

    @property
    def pending(self) -> tuple[Command, Intent] | None:
        """A recognized command left for the mounted screen, if any."""
        if self._pending is not None and self._is_current(self._pending[0]):
            return self._pending
        return None

    @property
    def watchdog_armed(self) -> bool:
        return self._watchdog is not None

    def subscribe_unrouted(self, listener: UnroutedListener) -> Callable[[], None]:
        """Screens register here to consume intents the dispatcher leaves pending."""
        self._unrouted_listeners.append(listener)
        return lambda: (
            self._unrouted_listeners.remove(listener)
            if listener in self._unrouted_listeners
            else None
        )

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def submit(self, command: Command) -> None:
        """Command sink for the voice controller; starts resolution in the background."""
        self._arm_watchdog(command)
        context = self._context_provider()
        task = asyncio.get_running_loop().create_task(self.handle(command, context))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    async def handle(self, command: Command, context: ResolverContext) -> None:
        """Resolve ``command`` and run its route."""
        try:
            intent = await self._resolver.resolve(command.transcript, context)
        except IntentResolverError as e:
            log.warning(f"Intent resolution failed for {command.transcript!r}: {e}")
            intent = Intent.unrecognized()
        except Exception:
            log.exception(f"Intent resolver crashed on {command.transcript!r}")
            intent = Intent.unrecognized()

        if not self._is_current(command):
            log.debug(f"Discarding late intent {intent.name} for {command.transcript!r}")
            return
        await self._route(command, intent)

    def command_processed(self, command: Command | None = None) -> None:
        """Called by a screen once it has consumed the pending command."""
        if command is None and self._pending is not None:
            command = self._pending[0]
        self._pending = None
        self._voice.finish_processing(command)

    def shutdown(self) -> None:
        """Cancel the watchdog and every in-flight resolution."""
        self._cancel_watchdog()
        self._pending = None
        for task in list(self._tasks):
            task.cancel()

    async def wait_idle(self) -> None:
        """Wait until every submitted command has been resolved and routed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------

    async def _route(self, command: Command, intent: Intent) -> None:
        if not intent.recognized:
            self._announce(get_prompt("not_understood", self._language()))
            self._complete(command)
            return

        handler = self._routes.get(intent.name)
        if handler is None:
            log.info(f"Leaving {intent.name} for the active screen")
            self._pending = (command, intent)
            for listener in list(self._unrouted_listeners):
                try:
                    listener(command, intent)
                except Exception:
                    log.exception("Unrouted command listener error")
            return

        log.info(f"Routing {intent.name} {intent.slots}")
        try:
            result = handler(intent)
            if inspect.isawaitable(result):
                await result
        except Exception:
            log.exception(f"Route for {intent.name} failed")
            if self._is_current(command):
                self._announce(get_prompt("error_generic", self._language()))
                self._complete(command)
            return
        if self._is_current(command):
            self._complete(command)

    def _build_routes(self) -> dict[str, RouteHandler]:
        routes: dict[str, RouteHandler] = {}
        for name, (view, message) in TAB_ROUTES.items():
            routes[name] = partial(self._open_tab, view, message)
        for name, (view, message) in PUSH_ROUTES.items():
            routes[name] = partial(self._open_view, view, message)
        for name, (props, message) in CREATE_POST_ROUTES.items():
            routes[name] = partial(self._create_post, props, message)

        routes.update({
            catalog.INTENT_OPEN_MY_PROFILE: self._open_my_profile,
            catalog.INTENT_OPEN_PROFILE: self._open_profile,
            catalog.INTENT_GO_BACK: self._go_back,
            catalog.INTENT_RELOAD_PAGE: self._reload,
            catalog.INTENT_SCROLL_DOWN: partial(self._scroll, "down"),
            catalog.INTENT_SCROLL_UP: partial(self._scroll, "up"),
            catalog.INTENT_PLAY_POST: partial(self._playback, True),
            catalog.INTENT_PAUSE_POST: partial(self._playback, False),
            catalog.INTENT_CREATE_TEXT_POST: self._create_text_post,
            catalog.INTENT_CREATE_STORY_WITH_TEXT: self._create_story_with_text,
            catalog.INTENT_SEARCH_USER: self._search_user,
        })
        return routes

    # -------------------------------------------------------------------------
    # Route handlers
    # -------------------------------------------------------------------------

    def _open_tab(self, view: View, message: str, intent: Intent) -> None:
        self._navigation.reset(view)
        self._announce(message)

    def _open_view(self, view: View, message: str, intent: Intent) -> None:
        self._navigation.push(view)
        self._announce(message)

    def _create_post(self, props: dict[str, Any], message: str, intent: Intent) -> None:
        self._navigation.push(View.CREATE_POST, props)
        self._announce(message)

    def _create_text_post(self, intent: Intent) -> None:
        self._navigation.push(View.CREATE_POST, {"caption": intent.slot("caption")})
        self._announce("Let's write your post.")

    def _create_story_with_text(self, intent: Intent) -> None:
        self._navigation.push(View.CREATE_STORY, {"initial_text": intent.slot("text_content")})
        self._announce("Let's create a story.")

    def _open_my_profile(self, intent: Intent) -> None:
        if self.user is None:
            log.warning("Own profile requested with no signed-in user")
            return
        self._navigation.push(View.PROFILE, {"username": self.user.username})
        self._announce("Opening your profile.")

    def _open_profile(self, intent: Intent) -> None:
        target = intent.slot("target_name").strip()
        if not target or target.lower() in ("my", "me", "amar"):
            self._open_my_profile(intent)
            return
        self._navigation.push(View.PROFILE, {"username": target})
        self._announce(f"Opening profile for {target}.")

    def _go_back(self, intent: Intent) -> None:
        if self._navigation.pop():
            self._announce("Going back.")
        else:
            self._announce("You're already at the start.")

    def _reload(self, intent: Intent) -> None:
        self._announce("Reloading.")
        self._actions.reload()

    def _scroll(self, direction: str, intent: Intent) -> None:
        self._actions.scroll(direction, self._config.scroll_fraction)
        self._announce(f"Scrolling {direction}.")

    def _playback(self, playing: bool, intent: Intent) -> None:
        self._actions.set_playback(playing)
        self._announce("Playing." if playing else "Paused.")

    async def _search_user(self, intent: Intent) -> None:
        query = intent.slot("target_name").strip()
        if not query:
            self._announce("Who should I search for?")
            return
        command = self._voice.command
        results = await self._actions.search_users(query)
        if command is None or not self._is_current(command):
            log.debug(f"Search for {query!r} finished after its command was cleared")
            return
        self._navigation.push(View.SEARCH_RESULTS, {"query": query, "results": results})
        self._announce(f"Searching for {query}.")

    # -------------------------------------------------------------------------
    # Completion and watchdog
    # -------------------------------------------------------------------------

    def _is_current(self, command: Command) -> bool:
        return self._voice.state is VoiceState.PROCESSING and self._voice.command is command

    def _complete(self, command: Command) -> None:
        self._pending = None
        self._voice.finish_processing(command)

    def _announce(self, text: str) -> None:
        self._voice.announce(text)

    def _language(self) -> str:
        return self._voice.language

    def _arm_watchdog(self, command: Command) -> None:
        self._cancel_watchdog()
        self._watchdog = self._timers.call_later(
            self._config.watchdog_timeout, self._on_watchdog, command
        )

    def _cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    def _on_watchdog(self, command: Command) -> None:
        self._watchdog = None
        if not self._is_current(command):
            return
        log.warning(
            f"Command {command.transcript!r} may have been unhandled. Resetting voice state."
        )
        self._announce(get_prompt("watchdog_apology", self._language()))
        self._pending = None
        self._voice.finish_processing(command)

    def _on_voice_state(self, old: VoiceState, new: VoiceState) -> None:
        if old is VoiceState.PROCESSING and new is not VoiceState.PROCESSING:
            self._cancel_watchdog()
            self._pending = None

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error(
                "Command handling crashed", exc_info=(type(exc), exc, exc.__traceback__)
            )
