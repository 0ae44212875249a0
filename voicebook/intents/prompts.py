"""NLU system instruction for the Gemini intent resolver."""

from __future__ import annotations

import json

from voicebook.intents.catalog import GLOBAL_INTENTS, INTENT_SLOTS, SCREEN_INTENTS, UNRECOGNIZED

NLU_SYSTEM_PROMPT = """You are the NLU (Natural Language Understanding) engine for VoiceBook, a voice-controlled social media app. Convert the user's raw command into a structured JSON object. Understand English, Bengali (Bangla) and "Banglish" (Bengali typed with English letters).

Your response MUST be a single valid JSON object and nothing else:
{{"intent": "<intent name>", "slots": {{"<slot>": "<value>"}}}}

RULES:
- "my profile", "amar profile" -> "intent_open_profile" with NO target_name slot.
- "<name> er profile dekho" -> "intent_open_profile" with target_name.
- Simple actions like "share", "save post", "hide post" refer to the post on screen; return only the base intent.
- Prefer names from the known contacts and groups when a name is ambiguous.
- If the intent is unclear or not in the list, use "{unknown}".

EXAMPLES:
- "home page e jao", "amar feed dekhao", "news feed" -> "intent_open_feed"
- "like koro", "like this post" -> {{"intent": "intent_react_to_post", "slots": {{"reaction_type": "like"}}}}
- "message dekhao", "inbox a jao" -> "intent_open_messages"
- "scroll koro", "niche jao" -> "intent_scroll_down"
- "upore jao" -> "intent_scroll_up"
- "khojo shojib" -> {{"intent": "intent_search_user", "slots": {{"target_name": "shojib"}}}}
- "pichone jao", "go back" -> "intent_go_back"

INTENTS:
{intents}

CONTEXT:
{context}
"""


def _intent_lines() -> str:
    lines = []
    for name in (*GLOBAL_INTENTS, *SCREEN_INTENTS):
        slots = INTENT_SLOTS.get(name)
        if slots:
            lines.append(f"- {name} (extracts {', '.join(repr(s) for s in slots)})")
        else:
            lines.append(f"- {name}")
    return "\n".join(lines)


def build_system_prompt(context: dict) -> str:
    """Render the system instruction with the caller's context bundle."""
    return NLU_SYSTEM_PROMPT.format(
        unknown=UNRECOGNIZED,
        intents=_intent_lines(),
        context=json.dumps(context, ensure_ascii=False),
    )
