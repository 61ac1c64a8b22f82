"""FastPathMatcher: canned replies for trivially recognizable messages.

Runs before classification.  A match short-circuits the pipeline: no
classifier, no provider and no circuit breaker are involved, only the
memory append done by the orchestrator.

Matching order: greetings, capability questions, thank-you phrases,
affirmations, confirmations/negations.  Replies are picked by an
injected ``selector`` so tests can make the choice deterministic.
"""

import random
import re
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone

from chatrelay.core.memory.models import ConversationTurn

from .constants import (
    FAST_PATH_AFFIRMATION,
    FAST_PATH_CAPABILITY,
    FAST_PATH_CONFIRMATION,
    FAST_PATH_GREETING,
    FAST_PATH_THANKS,
)
from .models import FastPathMatch

Selector = Callable[[Sequence[str]], str]

_I = re.IGNORECASE

# A greeting after this much silence gets the full capabilities overview.
FULL_GREETING_AFTER = timedelta(hours=1)

SIMPLE_GREETINGS = frozenset(
    {
        "hi", "hello", "hey", "halo", "hola", "yo", "sup", "wassup",
        "good morning", "good afternoon", "good evening", "good night",
        "hey there", "hello there", "hi there", "howdy", "greetings",
    }
)

GREETING_PATTERNS = (
    re.compile(r"^(hi|hello|hey|halo|hola|yo|sup|wassup)(\s+(there|dude|man|bro|all|everyone))?[!.?]*$", _I),
    re.compile(r"^(good\s+(morning|afternoon|evening|night))[!.?]*$", _I),
    re.compile(r"^(how\s+(are\s+you|'s\s+it\s+going))[?!.]*$", _I),
    re.compile(r"^(what'?s\s+up)[?!.]*$", _I),
)

CAPABILITY_PATTERNS = (
    re.compile(r"what can you do", _I),
    re.compile(r"what do you do", _I),
    re.compile(r"^(please\s+)?help me(\s+please)?[!.?]*$", _I),
    re.compile(r"what are your capabilities", _I),
    re.compile(r"what features", _I),
    re.compile(r"how can you help", _I),
    re.compile(r"what can i ask", _I),
    re.compile(r"what are you[!.?]*$", _I),
)

THANKS_PATTERNS = (
    re.compile(r"^thanks?!?$", _I),
    re.compile(r"^thank you!?$", _I),
    re.compile(r"^ty!?$", _I),
    re.compile(r"^thx!?$", _I),
    re.compile(r"^appreciate it!?$", _I),
    re.compile(r"^much appreciated!?$", _I),
)

AFFIRMATION_PATTERNS = (
    re.compile(r"^(ok|okay|alright|cool|nice|great|awesome|perfect)!?$", _I),
    re.compile(r"^got it!?$", _I),
    re.compile(r"^understood!?$", _I),
    re.compile(r"^sounds good!?$", _I),
)

POSITIVE_CONFIRMATION = re.compile(r"^(yes|yep|yeah|sure|do it|go ahead|proceed)!?$", _I)
NEGATIVE_CONFIRMATION = re.compile(r"^(no|nope|cancel|stop|don't)!?$", _I)

# ---------------------------------------------------------------------------
# Reply candidates
# ---------------------------------------------------------------------------

FULL_GREETING_OPENERS = (
    "Hello! 👋",
    "Hi there, ready to help! 💪",
    "Hey! Good to see you. ⚡",
)

CAPABILITIES_OVERVIEW = "\n".join(
    (
        "I can help you with:",
        "• 📧 Email, calendar, tasks and notes",
        "• 🔍 Web research: news, weather, prices, anything current",
        "• 💬 General knowledge: questions, explanations, casual chat",
        "",
        "Just tell me what you need!",
    )
)

QUICK_GREETINGS = (
    "Hey! 👋",
    "Hi! How can I help? 💪",
    "Hey there! What do you need? 🚀",
    "Hi! Ready when you are 👍",
)

THANKS_REPLIES = (
    "You're welcome! 😊",
    "Happy to help! 🤖",
    "Anytime! 👍",
    "No problem! ⚡",
    "Glad I could help! 🚀",
    "My pleasure! 💪",
)

AFFIRMATION_REPLIES = (
    "👍",
    "Great! 😊",
    "Perfect! ⚡",
    "Awesome! 🚀",
)

POSITIVE_CONFIRMATION_REPLY = "Got it! 👍"
NEGATIVE_CONFIRMATION_REPLY = "No problem! 👌"


def is_simple_greeting(message: str) -> bool:
    normalized = message.lower().strip()
    if normalized.rstrip("!.?") in SIMPLE_GREETINGS:
        return True
    return any(p.match(normalized) for p in GREETING_PATTERNS)


def is_capability_question(message: str) -> bool:
    return any(p.search(message) for p in CAPABILITY_PATTERNS)


class FastPathMatcher:
    """Deterministic, side-effect-free matcher for trivial messages."""

    def __init__(self, selector: Selector = random.choice) -> None:
        self._select = selector

    def match(
        self,
        message: str,
        history: Sequence[ConversationTurn] = (),
        now: datetime | None = None,
    ) -> FastPathMatch | None:
        """Return a canned reply for *message*, or ``None`` if none applies."""
        normalized = message.lower().strip()
        if not normalized:
            return None

        if is_simple_greeting(normalized):
            if self._wants_full_greeting(history, now):
                response = self.full_greeting()
            else:
                response = self._select(QUICK_GREETINGS)
            return FastPathMatch(category=FAST_PATH_GREETING, response=response)

        if is_capability_question(normalized):
            return FastPathMatch(
                category=FAST_PATH_CAPABILITY, response=self.full_greeting()
            )

        if any(p.match(normalized) for p in THANKS_PATTERNS):
            return FastPathMatch(
                category=FAST_PATH_THANKS, response=self._select(THANKS_REPLIES)
            )

        if any(p.match(normalized) for p in AFFIRMATION_PATTERNS):
            return FastPathMatch(
                category=FAST_PATH_AFFIRMATION,
                response=self._select(AFFIRMATION_REPLIES),
            )

        if POSITIVE_CONFIRMATION.match(normalized):
            return FastPathMatch(
                category=FAST_PATH_CONFIRMATION, response=POSITIVE_CONFIRMATION_REPLY
            )
        if NEGATIVE_CONFIRMATION.match(normalized):
            return FastPathMatch(
                category=FAST_PATH_CONFIRMATION, response=NEGATIVE_CONFIRMATION_REPLY
            )

        return None

    def full_greeting(self) -> str:
        return f"{self._select(FULL_GREETING_OPENERS)}\n\n{CAPABILITIES_OVERVIEW}"

    @staticmethod
    def _wants_full_greeting(
        history: Sequence[ConversationTurn],
        now: datetime | None,
    ) -> bool:
        if not history:
            return True
        now = now or datetime.now(timezone.utc)
        return now - history[-1].timestamp > FULL_GREETING_AFTER
