"""Tests for voicebook.commands.dispatcher.

Tests cover:
- The wake word -> feed scenario end to end
- Routing table entries and their status messages
- Unrecognized intents and resolver failures
- Screen-owned intents and the watchdog
- Late resolver responses and shutdown
"""

import asyncio

import pytest

from conftest import RecordingActions, ScriptedResolver
from voicebook.commands.dispatcher import CommandDispatcher
from voicebook.config.schema import DispatcherConfig
from voicebook.intents.resolver import Intent, IntentResolverError, ResolverContext
from voicebook.models import User
from voicebook.navigation.stack import NavigationStack, View, ViewFrame
from voicebook.voice.prompts import get_prompt
from voicebook.voice.state import VoiceState


@pytest.fixture
def navigation(actions):
    nav = NavigationStack(actions)
    nav.on_authenticated()
    return nav


@pytest.fixture
def dispatcher(voice, resolver, navigation, timers, actions, me):
    d = CommandDispatcher(voice, resolver, navigation, timers, actions=actions)
    d.user = me
    return d


async def say(voice, dispatcher, text):
    """Type a command and wait for it to be resolved and routed."""
    voice.submit_text(text)
    await dispatcher.wait_idle()


class TestScenario:
    """End-to-end voice flow."""

    @pytest.mark.asyncio
    async def test_wake_word_then_open_feed(self, voice, mic, resolver, navigation, dispatcher, scheduler):
        """Hey VoiceBook -> go to my feed -> single feed frame -> Idle."""
        resolver.table["go to my feed"] = Intent("intent_open_feed")
        navigation.push(View.SETTINGS)

        voice.start()
        mic.hear("Hey VoiceBook")
        assert voice.state is VoiceState.ACTIVE_LISTENING

        mic.hear("go to my feed")
        assert voice.state is VoiceState.PROCESSING
        assert dispatcher.watchdog_armed
        await dispatcher.wait_idle()

        assert navigation.frames == (ViewFrame(View.FEED),)
        assert voice.state is VoiceState.IDLE
        assert voice.command is None
        assert voice.status == "Going to your feed."
        assert not dispatcher.watchdog_armed

        scheduler.advance(0.1)
        assert voice.state is VoiceState.PASSIVE_LISTENING

    @pytest.mark.asyncio
    async def test_context_is_passed_to_resolver(self, voice, resolver, navigation, timers):
        context = ResolverContext(user_name="Rahim", contact_names=("Shojib",))
        dispatcher = CommandDispatcher(
            voice, resolver, navigation, timers, context_provider=lambda: context
        )
        voice.start()
        await say(voice, dispatcher, "khojo shojib")
        assert resolver.calls == [("khojo shojib", context)]


class TestRouting:
    """Tests for the fixed routing table."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "intent,view",
        [
            ("intent_open_explore", View.EXPLORE),
            ("intent_open_reels", View.REELS),
            ("intent_open_friends_page", View.FRIENDS),
            ("intent_open_messages", View.CONVERSATIONS),
            ("intent_open_rooms_hub", View.ROOMS_HUB),
            ("intent_open_groups_hub", View.GROUPS_HUB),
            ("intent_open_ads_center", View.ADS_CENTER),
        ],
    )
    async def test_tab_intents_reset_stack(self, voice, resolver, navigation, dispatcher, intent, view):
        resolver.table["go"] = Intent(intent)
        navigation.push(View.SETTINGS)
        voice.start()
        await say(voice, dispatcher, "go")
        assert navigation.frames == (ViewFrame(view),)
        assert voice.state is VoiceState.IDLE

    @pytest.mark.asyncio
    async def test_settings_is_pushed(self, voice, resolver, navigation, dispatcher):
        resolver.table["settings"] = Intent("intent_open_settings")
        voice.start()
        await say(voice, dispatcher, "settings")
        assert [f.view for f in navigation.frames] == [View.FEED, View.SETTINGS]
        assert voice.status == "Opening settings."

    @pytest.mark.asyncio
    async def test_own_profile(self, voice, resolver, navigation, dispatcher):
        """intent_open_profile without a name opens the signed-in user's profile."""
        resolver.table["amar profile"] = Intent("intent_open_profile")
        voice.start()
        await say(voice, dispatcher, "amar profile")
        assert navigation.current == ViewFrame(View.PROFILE, {"username": "rahim"})

    @pytest.mark.asyncio
    async def test_named_profile(self, voice, resolver, navigation, dispatcher):
        resolver.table["shojib er profile"] = Intent("intent_open_profile", {"target_name": "shojib"})
        voice.start()
        await say(voice, dispatcher, "shojib er profile")
        assert navigation.current == ViewFrame(View.PROFILE, {"username": "shojib"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "intent,props",
        [
            ("intent_create_post", {}),
            ("intent_create_voice_post", {"start_recording": True}),
            ("intent_create_photo_post", {"select_media": "image"}),
            ("intent_create_video_post", {"select_media": "video"}),
        ],
    )
    async def test_create_post_variants(self, voice, resolver, navigation, dispatcher, intent, props):
        resolver.table["post"] = Intent(intent)
        voice.start()
        await say(voice, dispatcher, "post")
        assert navigation.current == ViewFrame(View.CREATE_POST, props)
        assert voice.state is VoiceState.IDLE

    @pytest.mark.asyncio
    async def test_story_with_text(self, voice, resolver, navigation, dispatcher):
        resolver.table["story"] = Intent("intent_create_story_with_text", {"text_content": "good morning"})
        voice.start()
        await say(voice, dispatcher, "story")
        assert navigation.current == ViewFrame(View.CREATE_STORY, {"initial_text": "good morning"})

    @pytest.mark.asyncio
    async def test_go_back(self, voice, resolver, navigation, dispatcher):
        resolver.table["back"] = Intent("intent_go_back")
        navigation.push(View.SETTINGS)
        voice.start()
        await say(voice, dispatcher, "back")
        assert navigation.frames == (ViewFrame(View.FEED),)
        await say(voice, dispatcher, "back")
        assert navigation.frames == (ViewFrame(View.FEED),)
        assert voice.status == "You're already at the start."

    @pytest.mark.asyncio
    async def test_scroll_and_playback(self, voice, resolver, dispatcher, actions):
        resolver.table.update({
            "down": Intent("intent_scroll_down"),
            "up": Intent("intent_scroll_up"),
            "play": Intent("intent_play_post"),
            "pause": Intent("intent_pause_post"),
            "reload": Intent("intent_reload_page"),
        })
        voice.start()
        for text in ("down", "up", "play", "pause", "reload"):
            await say(voice, dispatcher, text)
        assert ("scroll", "down", 0.7) in actions.calls
        assert ("scroll", "up", 0.7) in actions.calls
        assert ("set_playback", True) in actions.calls
        assert ("set_playback", False) in actions.calls
        assert ("reload",) in actions.calls
        assert voice.state is VoiceState.IDLE

    @pytest.mark.asyncio
    async def test_search_awaits_results(self, voice, mic, resolver, navigation, timers):
        found = [User("u2", name="Shojib", username="shojib")]
        actions = RecordingActions(search_results=found)
        dispatcher = CommandDispatcher(voice, resolver, navigation, timers, actions=actions)
        resolver.table["khojo shojib"] = Intent("intent_search_user", {"target_name": "shojib"})
        voice.start()
        await say(voice, dispatcher, "khojo shojib")
        assert navigation.current == ViewFrame(
            View.SEARCH_RESULTS, {"query": "shojib", "results": found}
        )
        assert ("search_users", "shojib") in actions.calls
        assert voice.state is VoiceState.IDLE


class TestUnrecognized:
    """Tests for the unrecognized and failure paths."""

    @pytest.mark.asyncio
    async def test_unrecognized_returns_to_idle(self, voice, navigation, dispatcher):
        voice.start()
        await say(voice, dispatcher, "blah blah")
        assert voice.state is VoiceState.IDLE
        assert voice.status == get_prompt("not_understood")
        assert navigation.frames == (ViewFrame(View.FEED),)

    @pytest.mark.asyncio
    async def test_resolver_failure_is_unrecognized(self, voice, resolver, dispatcher):
        """A resolver error should show one failure message and not retry."""
        resolver.table["open reels"] = IntentResolverError("timeout")
        voice.start()
        await say(voice, dispatcher, "open reels")
        assert voice.state is VoiceState.IDLE
        assert voice.status == get_prompt("not_understood")
        assert len(resolver.calls) == 1

    @pytest.mark.asyncio
    async def test_unexpected_resolver_exception_is_unrecognized(self, voice, resolver, dispatcher, scheduler):
        """Any resolver exception should return to Idle without waiting for the watchdog."""
        resolver.table["open reels"] = ConnectionError("network down")
        voice.start()
        await say(voice, dispatcher, "open reels")
        assert voice.state is VoiceState.IDLE
        assert voice.status == get_prompt("not_understood")
        assert not dispatcher.watchdog_armed
        scheduler.advance(5)
        assert voice.status != get_prompt("watchdog_apology")

    @pytest.mark.asyncio
    async def test_failing_route_returns_to_idle(self, voice, resolver, navigation, timers):
        """A route whose action raises should report the error and complete the command."""

        class FailingSearch(RecordingActions):
            async def search_users(self, query):
                raise ConnectionError("search backend down")

        dispatcher = CommandDispatcher(voice, resolver, navigation, timers, actions=FailingSearch())
        resolver.table["khojo shojib"] = Intent("intent_search_user", {"target_name": "shojib"})
        voice.start()
        await say(voice, dispatcher, "khojo shojib")
        assert voice.state is VoiceState.IDLE
        assert voice.command is None
        assert voice.status == get_prompt("error_generic")
        assert navigation.frames == (ViewFrame(View.FEED),)
        assert not dispatcher.watchdog_armed


class TestScreenCommands:
    """Tests for intents left to the mounted screen."""

    @pytest.mark.asyncio
    async def test_screen_intent_stays_processing(self, voice, resolver, dispatcher):
        resolver.table["like this"] = Intent("intent_react_to_post", {"reaction_type": "like"})
        seen = []
        dispatcher.subscribe_unrouted(lambda command, intent: seen.append((command, intent)))
        voice.start()
        await say(voice, dispatcher, "like this")
        assert voice.state is VoiceState.PROCESSING
        command, intent = dispatcher.pending
        assert command is voice.command
        assert intent.slot("reaction_type") == "like"
        assert seen == [(command, intent)]

    @pytest.mark.asyncio
    async def test_screen_completes_command(self, voice, resolver, dispatcher, scheduler):
        resolver.table["share"] = Intent("intent_share")
        voice.start()
        await say(voice, dispatcher, "share")
        dispatcher.command_processed()
        assert voice.state is VoiceState.IDLE
        assert dispatcher.pending is None
        assert not dispatcher.watchdog_armed

    @pytest.mark.asyncio
    async def test_watchdog_resets_unhandled_command(self, voice, resolver, dispatcher, scheduler):
        """A screen-owned command with no screen mounted should go Idle after 4 s."""
        resolver.table["share"] = Intent("intent_share")
        voice.start()
        await say(voice, dispatcher, "share")

        scheduler.advance(3.9)
        assert voice.state is VoiceState.PROCESSING
        scheduler.advance(0.1)
        assert voice.state is VoiceState.IDLE
        assert voice.command is None
        assert dispatcher.pending is None
        assert voice.status == get_prompt("watchdog_apology")

    @pytest.mark.asyncio
    async def test_watchdog_timeout_is_configurable(self, voice, resolver, navigation, timers, scheduler):
        dispatcher = CommandDispatcher(
            voice, resolver, navigation, timers, config=DispatcherConfig(watchdog_timeout=2.0)
        )
        resolver.table["share"] = Intent("intent_share")
        voice.start()
        await say(voice, dispatcher, "share")
        scheduler.advance(2.0)
        assert voice.state is VoiceState.IDLE

    @pytest.mark.asyncio
    async def test_watchdog_does_not_touch_next_command(self, voice, resolver, dispatcher, scheduler):
        """An old watchdog must never reset a newer command."""
        resolver.table["share"] = Intent("intent_share")
        voice.start()
        await say(voice, dispatcher, "share")
        scheduler.advance(3.0)
        dispatcher.command_processed()
        await say(voice, dispatcher, "share")
        scheduler.advance(1.5)
        assert voice.state is VoiceState.PROCESSING
        scheduler.advance(2.5)
        assert voice.state is VoiceState.IDLE


class TestRaces:
    """Tests for resolver/watchdog races and teardown."""

    @pytest.mark.asyncio
    async def test_late_response_is_discarded(self, voice, resolver, navigation, dispatcher, scheduler):
        """A response arriving after the watchdog fired should be ignored."""
        resolver.table["open reels"] = Intent("intent_open_reels")
        gate = resolver.hold()
        voice.start()
        voice.submit_text("open reels")
        await asyncio.sleep(0)

        scheduler.advance(4.0)
        assert voice.state is VoiceState.IDLE
        assert voice.status == get_prompt("watchdog_apology")

        gate.set()
        await dispatcher.wait_idle()
        assert navigation.frames == (ViewFrame(View.FEED),)
        assert voice.status == get_prompt("watchdog_apology")

    @pytest.mark.asyncio
    async def test_shutdown_cancels_in_flight(self, voice, resolver, navigation, dispatcher, scheduler):
        resolver.table["open reels"] = Intent("intent_open_reels")
        resolver.hold()
        voice.start()
        voice.submit_text("open reels")
        await asyncio.sleep(0)

        dispatcher.shutdown()
        voice.shutdown()
        await dispatcher.wait_idle()
        assert navigation.frames == (ViewFrame(View.FEED),)
        assert not dispatcher.watchdog_armed
        scheduler.advance(10)
        assert voice.state is VoiceState.IDLE
