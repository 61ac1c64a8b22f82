"""Tests for FastPathMatcher."""

from datetime import datetime, timedelta, timezone

import pytest

from chatrelay.core.intent.constants import (
    FAST_PATH_AFFIRMATION,
    FAST_PATH_CAPABILITY,
    FAST_PATH_CONFIRMATION,
    FAST_PATH_GREETING,
    FAST_PATH_THANKS,
)
from chatrelay.core.intent.fast_path import (
    AFFIRMATION_REPLIES,
    CAPABILITIES_OVERVIEW,
    FULL_GREETING_OPENERS,
    QUICK_GREETINGS,
    THANKS_REPLIES,
    FastPathMatcher,
    is_capability_question,
    is_simple_greeting,
)
from chatrelay.core.memory.models import ConversationTurn

NOW = datetime(2025, 1, 1, 12, tzinfo=timezone.utc)
FULL_GREETING = f"{FULL_GREETING_OPENERS[0]}\n\n{CAPABILITIES_OVERVIEW}"


def _first(options):
    return options[0]


@pytest.fixture()
def matcher() -> FastPathMatcher:
    return FastPathMatcher(selector=_first)


def _history(age: timedelta) -> list[ConversationTurn]:
    return [ConversationTurn(role="assistant", content="hi", timestamp=NOW - age)]


class TestGreetingDetection:
    @pytest.mark.parametrize(
        "message",
        ["hi", "Hi!", "hello.", "hey there", "Hello there!", "good morning",
         "Good Evening!", "howdy", "what's up?", "how are you?", "yo dude"],
    )
    def test_simple_greetings(self, message):
        assert is_simple_greeting(message)

    @pytest.mark.parametrize(
        "message",
        ["hi, can you check my email", "this is fine", "hello world program"],
    )
    def test_not_simple_greetings(self, message):
        assert not is_simple_greeting(message)

    def test_capability_question(self):
        assert is_capability_question("so what can you do?")
        assert not is_capability_question("what can the weather do")

    @pytest.mark.parametrize("message", ["help me", "Help me!", "please help me?"])
    def test_bare_help_request_is_capability_question(self, message):
        assert is_capability_question(message)

    @pytest.mark.parametrize(
        "message",
        [
            "help me schedule a meeting with Bob tomorrow",
            "can you help me write an email",
            "what are you planning to search for",
        ],
    )
    def test_concrete_requests_are_not_capability_questions(self, message):
        assert not is_capability_question(message)


class TestFastPathMatcher:
    def test_first_greeting_gets_full_overview(self, matcher):
        match = matcher.match("hi", history=(), now=NOW)
        assert match is not None
        assert match.category == FAST_PATH_GREETING
        assert match.response == FULL_GREETING

    def test_recent_conversation_gets_quick_greeting(self, matcher):
        match = matcher.match("Hey!", history=_history(timedelta(minutes=5)), now=NOW)
        assert match.response == QUICK_GREETINGS[0]

    def test_stale_conversation_gets_full_overview(self, matcher):
        match = matcher.match("hello", history=_history(timedelta(hours=2)), now=NOW)
        assert match.response == FULL_GREETING

    def test_capability_question(self, matcher):
        match = matcher.match("What can you do?")
        assert match.category == FAST_PATH_CAPABILITY
        assert match.response == FULL_GREETING

    def test_help_with_a_task_goes_to_the_pipeline(self, matcher):
        assert matcher.match("help me schedule a meeting with Bob tomorrow") is None

    @pytest.mark.parametrize("message", ["thanks", "Thank you!", "thx", "ty"])
    def test_thanks(self, matcher, message):
        match = matcher.match(message)
        assert match.category == FAST_PATH_THANKS
        assert match.response == THANKS_REPLIES[0]

    @pytest.mark.parametrize("message", ["ok", "Cool!", "got it", "sounds good"])
    def test_affirmation(self, matcher, message):
        match = matcher.match(message)
        assert match.category == FAST_PATH_AFFIRMATION
        assert match.response == AFFIRMATION_REPLIES[0]

    @pytest.mark.parametrize("message", ["yes", "Yep!", "go ahead"])
    def test_positive_confirmation(self, matcher, message):
        match = matcher.match(message)
        assert match.category == FAST_PATH_CONFIRMATION
        assert match.response == "Got it! 👍"

    @pytest.mark.parametrize("message", ["no", "Cancel", "nope!"])
    def test_negative_confirmation(self, matcher, message):
        match = matcher.match(message)
        assert match.category == FAST_PATH_CONFIRMATION
        assert match.response == "No problem! 👌"

    @pytest.mark.parametrize(
        "message",
        ["", "   ", "what is the weather in Paris?", "send an email to bob",
         "yes please book the flight"],
    )
    def test_no_match(self, matcher, message):
        assert matcher.match(message) is None

    def test_selector_receives_candidates(self):
        seen = []

        def selector(options):
            seen.append(tuple(options))
            return options[-1]

        match = FastPathMatcher(selector=selector).match("thanks")
        assert seen == [THANKS_REPLIES]
        assert match.response == THANKS_REPLIES[-1]
