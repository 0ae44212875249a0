"""
voicebook/intents/resolver.py

Transcript -> Intent resolution.

IntentResolver is the boundary to the natural-language service; the
dispatcher only ever sees Intent values or IntentResolverError.

@module intents/resolver
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from google import genai
from google.genai import types

from voicebook.config.schema import ResolverConfig
from voicebook.intents.catalog import UNRECOGNIZED, is_unrecognized
from voicebook.intents.prompts import build_system_prompt

log = logging.getLogger("voicebook.resolver")


# =============================================================================
# VALUES
# =============================================================================


@dataclass(frozen=True)
class Intent:
    """A resolved command: intent label plus string slots."""

    name: str
    slots: dict[str, str] = field(default_factory=dict)

    @property
    def recognized(self) -> bool:
        return not is_unrecognized(self.name)

    def slot(self, key: str, default: str = "") -> str:
        return self.slots.get(key) or default

    @classmethod
    def unrecognized(cls) -> "Intent":
        return cls(UNRECOGNIZED)


@dataclass(frozen=True)
class ResolverContext:
    """What the resolver may use to disambiguate names."""

    user_name: Optional[str] = None
    contact_names: tuple[str, ...] = ()
    group_names: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "currentUser": self.user_name,
            "userNames": list(self.contact_names),
            "groupNames": list(self.group_names),
        }


class IntentResolverError(Exception):
    """Network, timeout or malformed-response failure."""


# =============================================================================
# RESPONSE PARSING
# =============================================================================


_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_intent_response(text: str) -> Intent:
    """
    Parse a model response into an Intent.

    Raises:
        IntentResolverError: if the text is not a JSON object with an intent.
    """
    cleaned = _FENCE_RE.sub("", (text or "").strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise IntentResolverError(f"Response is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise IntentResolverError("Response is not a JSON object")

    name = data.get("intent")
    if not isinstance(name, str):
        raise IntentResolverError("Response has no intent")

    raw_slots = data.get("slots") or {}
    if not isinstance(raw_slots, dict):
        raw_slots = {}
    slots = {
        str(key): value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        for key, value in raw_slots.items()
        if value is not None
    }

    if is_unrecognized(name):
        return Intent.unrecognized()
    return Intent(name.strip(), slots)


# =============================================================================
# RESOLVERS
# =============================================================================


class IntentResolver(ABC):
    """Base class for intent resolution services."""

    @abstractmethod
    async def resolve(self, transcript: str, context: ResolverContext) -> Intent:
        """Resolve a transcript. Raises IntentResolverError on failure."""
        ...


class GeminiIntentResolver(IntentResolver):
    """Resolve intents with a Gemini model returning JSON."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[ResolverConfig] = None,
        client: Any = None,
    ):
        self._config = config or ResolverConfig()
        if client is None:
            if not api_key:
                raise ValueError("GOOGLE_API_KEY is required for the Gemini resolver")
            client = genai.Client(api_key=api_key)
        self._client = client

    async def resolve(self, transcript: str, context: ResolverContext) -> Intent:
        request_config = types.GenerateContentConfig(
            system_instruction=build_system_prompt(context.to_dict()),
            response_mime_type="application/json",
            temperature=self._config.temperature,
        )
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=f'Command: "{transcript}"',
                    config=request_config,
                ),
                timeout=self._config.timeout,
            )
        except asyncio.TimeoutError as e:
            raise IntentResolverError(f"Gemini timed out after {self._config.timeout}s") from e
        except Exception as e:
            raise IntentResolverError(f"Gemini request failed: {e}") from e

        intent = parse_intent_response(response.text or "")
        log.debug(f"NLU {transcript!r} -> {intent.name} {intent.slots}")
        return intent
