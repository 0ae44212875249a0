"""
Intent resolution module.

Intent catalog, resolver boundary and the Gemini implementation.
"""

from voicebook.intents.catalog import UNRECOGNIZED
from voicebook.intents.resolver import (
    GeminiIntentResolver,
    Intent,
    IntentResolver,
    IntentResolverError,
    ResolverContext,
    parse_intent_response,
)

__all__ = [
    "UNRECOGNIZED",
    "GeminiIntentResolver",
    "Intent",
    "IntentResolver",
    "IntentResolverError",
    "ResolverContext",
    "parse_intent_response",
]
