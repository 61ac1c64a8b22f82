"""Intent names, confidence bands and fast-path categories."""

from typing import Literal

# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------

INTENT_GREETING = "greeting"
INTENT_WEB_SEARCH = "web_search"
INTENT_TOOL_USE = "tool_use"
INTENT_GENERAL_CHAT = "general_chat"

Intent = Literal["greeting", "web_search", "tool_use", "general_chat"]

VALID_INTENTS = frozenset(
    {
        INTENT_GREETING,
        INTENT_WEB_SEARCH,
        INTENT_TOOL_USE,
        INTENT_GENERAL_CHAT,
    }
)

# Confidence bands evaluated by the router
BAND_HIGH = "high"
BAND_MEDIUM = "medium"
BAND_LOW = "low"
BAND_FALLBACK = "fallback"

# Tool categories for tool_use
CATEGORY_EMAIL = "email"
CATEGORY_CALENDAR = "calendar"
CATEGORY_TASKS = "tasks"
CATEGORY_NOTES = "notes"
CATEGORY_FILES = "files"
CATEGORY_GENERAL = "general"

# Fast-path categories
FAST_PATH_GREETING = "greeting"
FAST_PATH_CAPABILITY = "capability"
FAST_PATH_THANKS = "thanks"
FAST_PATH_AFFIRMATION = "affirmation"
FAST_PATH_CONFIRMATION = "confirmation"

FastPathCategory = Literal[
    "greeting", "capability", "thanks", "affirmation", "confirmation"
]
