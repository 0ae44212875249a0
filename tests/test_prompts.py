"""Tests for status prompts and audio error classification."""

from voicebook.voice.audio import AudioErrorCode, ErrorKind, classify_error
from voicebook.voice.prompts import PROMPTS, get_prompt


class TestPrompts:
    def test_every_prompt_has_both_languages(self):
        for key, entry in PROMPTS.items():
            assert entry.get("en"), key
            assert entry.get("bn"), key

    def test_language_fallback(self):
        assert get_prompt("busy", "fr") == get_prompt("busy", "en")

    def test_unknown_key(self):
        assert get_prompt("no_such_prompt") == "no_such_prompt"


class TestClassifyError:
    def test_permission_codes(self):
        for code in ("permission-denied", "not-allowed", "service-not-allowed"):
            assert classify_error(code) is ErrorKind.PERMISSION

    def test_transient_codes(self):
        assert classify_error("aborted") is ErrorKind.TRANSIENT
        assert classify_error(AudioErrorCode.NO_SPEECH) is ErrorKind.TRANSIENT

    def test_other_codes(self):
        assert classify_error("network") is ErrorKind.OTHER
        assert classify_error("something-new") is ErrorKind.OTHER
