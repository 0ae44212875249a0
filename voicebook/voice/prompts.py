"""Spoken/status prompts for the voice indicator, in English and Bengali."""

from __future__ import annotations

PROMPTS: dict[str, dict[str, str]] = {
    "welcome": {
        "en": "Say 'Hey VoiceBook' or click the mic.",
        "bn": "'হেই ভয়েসবুক' বলুন অথবা মাইকে ক্লিক করুন।",
    },
    "wake_hint": {
        "en": "Say 'Hey VoiceBook'...",
        "bn": "'হেই ভয়েসবুক' বলুন...",
    },
    "listening": {
        "en": "Listening...",
        "bn": "শুনছি...",
    },
    "busy": {
        "en": "Still working on your last command.",
        "bn": "আগের কমান্ডটি এখনও প্রক্রিয়া করা হচ্ছে।",
    },
    "error_mic_permission": {
        "en": "Microphone permission is needed. Please allow access and try again.",
        "bn": "মাইক্রোফোনের অনুমতি প্রয়োজন। অনুগ্রহ করে অনুমতি দিয়ে আবার চেষ্টা করুন।",
    },
    "error_generic": {
        "en": "Something went wrong with voice input. Trying again shortly.",
        "bn": "ভয়েস ইনপুটে সমস্যা হয়েছে। একটু পরে আবার চেষ্টা করা হবে।",
    },
    "error_no_speech_rec": {
        "en": "Speech recognition is not supported on this device.",
        "bn": "এই ডিভাইসে স্পিচ রিকগনিশন সমর্থিত নয়।",
    },
    "error_mic_not_found": {
        "en": "Could not start the microphone.",
        "bn": "মাইক্রোফোন চালু করা যায়নি।",
    },
    "not_understood": {
        "en": "Sorry, I didn't understand that.",
        "bn": "দুঃখিত, আমি বুঝতে পারিনি।",
    },
    "watchdog_apology": {
        "en": "Sorry, I can't do that from here.",
        "bn": "দুঃখিত, এখান থেকে এটি করা সম্ভব নয়।",
    },
}


def get_prompt(key: str, language: str = "en", **kwargs) -> str:
    """Look up a prompt, falling back to English, then to the key itself."""
    entry = PROMPTS.get(key)
    if entry is None:
        return key
    text = entry.get(language) or entry["en"]
    return text.format(**kwargs) if kwargs else text
