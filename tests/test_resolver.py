"""Tests for voicebook.intents: response parsing and the Gemini resolver."""

import asyncio
import json
from types import SimpleNamespace

import pytest

from voicebook.config.schema import ResolverConfig
from voicebook.intents.catalog import GLOBAL_INTENTS, SCREEN_INTENTS, UNRECOGNIZED, is_unrecognized
from voicebook.intents.prompts import build_system_prompt
from voicebook.intents.resolver import (
    GeminiIntentResolver,
    Intent,
    IntentResolverError,
    ResolverContext,
    parse_intent_response,
)


class FakeModels:
    def __init__(self, text="", error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.requests = []

    async def generate_content(self, model, contents, config):
        self.requests.append({"model": model, "contents": contents, "config": config})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def fake_client(models):
    return SimpleNamespace(aio=SimpleNamespace(models=models))


class TestParseIntentResponse:
    """Tests for tolerant JSON parsing."""

    def test_plain_json(self):
        intent = parse_intent_response('{"intent": "intent_open_feed", "slots": {}}')
        assert intent == Intent("intent_open_feed")
        assert intent.recognized

    def test_markdown_fences(self):
        text = '```json\n{"intent": "intent_search_user", "slots": {"target_name": "shojib"}}\n```'
        intent = parse_intent_response(text)
        assert intent.slot("target_name") == "shojib"

    def test_unknown_aliases(self):
        for name in ("unknown", "intent_unknown", "UNKNOWN"):
            intent = parse_intent_response(json.dumps({"intent": name}))
            assert intent.name == UNRECOGNIZED
            assert not intent.recognized

    def test_slot_values_are_strings(self):
        intent = parse_intent_response(
            '{"intent": "intent_select_result", "slots": {"index": 2, "extra": null}}'
        )
        assert intent.slots == {"index": "2"}

    def test_missing_slots(self):
        assert parse_intent_response('{"intent": "intent_go_back"}').slots == {}

    @pytest.mark.parametrize("text", ["", "not json", "[1, 2]", '{"slots": {}}'])
    def test_malformed(self, text):
        with pytest.raises(IntentResolverError):
            parse_intent_response(text)


class TestCatalog:
    def test_global_and_screen_intents_disjoint(self):
        assert not set(GLOBAL_INTENTS) & set(SCREEN_INTENTS)

    def test_is_unrecognized(self):
        assert is_unrecognized(None)
        assert is_unrecognized(" Unknown ")
        assert not is_unrecognized("intent_open_feed")

    def test_system_prompt_lists_intents_and_context(self):
        prompt = build_system_prompt(ResolverContext("Rahim", ("Shojib",)).to_dict())
        assert "intent_open_feed" in prompt
        assert "intent_react_to_post (extracts 'reaction_type')" in prompt
        assert '"userNames": ["Shojib"]' in prompt


class TestGeminiIntentResolver:
    """Tests for the Gemini-backed resolver with a stubbed client."""

    def test_requires_key_or_client(self):
        with pytest.raises(ValueError):
            GeminiIntentResolver()

    @pytest.mark.asyncio
    async def test_resolve(self):
        models = FakeModels('{"intent": "intent_open_reels", "slots": {}}')
        resolver = GeminiIntentResolver(client=fake_client(models))
        intent = await resolver.resolve("reels dekhao", ResolverContext("Rahim"))
        assert intent == Intent("intent_open_reels")

        request = models.requests[0]
        assert request["model"] == "gemini-2.5-flash"
        assert "reels dekhao" in request["contents"]
        assert request["config"].response_mime_type == "application/json"
        assert "Rahim" in request["config"].system_instruction

    @pytest.mark.asyncio
    async def test_network_error_wrapped(self):
        models = FakeModels(error=ConnectionError("offline"))
        resolver = GeminiIntentResolver(client=fake_client(models))
        with pytest.raises(IntentResolverError):
            await resolver.resolve("open feed", ResolverContext())

    @pytest.mark.asyncio
    async def test_timeout_wrapped(self):
        models = FakeModels('{"intent": "intent_open_feed"}', delay=5)
        resolver = GeminiIntentResolver(
            config=ResolverConfig(timeout=1.0), client=fake_client(models)
        )
        with pytest.raises(IntentResolverError):
            await resolver.resolve("open feed", ResolverContext())

    @pytest.mark.asyncio
    async def test_bad_response_wrapped(self):
        models = FakeModels("I think you mean the feed")
        resolver = GeminiIntentResolver(client=fake_client(models))
        with pytest.raises(IntentResolverError):
            await resolver.resolve("open feed", ResolverContext())
