"""Built-in intent vocabularies, tool mappings and query clean-up rules."""

import re

from .constants import (
    CATEGORY_CALENDAR,
    CATEGORY_EMAIL,
    CATEGORY_FILES,
    CATEGORY_GENERAL,
    CATEGORY_NOTES,
    CATEGORY_TASKS,
    INTENT_GENERAL_CHAT,
    INTENT_GREETING,
    INTENT_TOOL_USE,
    INTENT_WEB_SEARCH,
)
from .models import IntentPattern

_I = re.IGNORECASE


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, _I) for p in patterns)


# ---------------------------------------------------------------------------
# Intent patterns (descending priority)
# ---------------------------------------------------------------------------

GREETING_PATTERN = IntentPattern(
    intent=INTENT_GREETING,
    priority=4,
    keywords=frozenset(
        {
            "hi", "hello", "hey", "halo", "hola", "bonjour", "salut",
            "good morning", "good afternoon", "good evening", "good night",
            "howdy", "greetings", "sup", "what's up", "whats up",
            "yo", "wassup", "how are you", "how's it going",
        }
    ),
    regex_patterns=_compile(
        r"^(hi|hello|hey|halo|hola|yo|sup|wassup)!?$",
        r"^(good\s+(morning|afternoon|evening|night))!?$",
        r"^(how\s+(are\s+you|'s\s+it\s+going))[?!]?$",
        r"^(what'?s\s+up)[?!]?$",
    ),
)

WEB_SEARCH_PATTERN = IntentPattern(
    intent=INTENT_WEB_SEARCH,
    priority=3,
    keywords=frozenset(
        {
            # search verbs
            "search", "google", "find", "look up", "lookup",
            # information seeking
            "what is", "what are", "who is", "who are", "where is",
            "where are", "when is", "when did", "when will", "how much",
            "how many",
            # real-time information
            "latest", "current", "recent", "now", "today", "this week",
            "breaking", "news", "update", "updates",
            # weather
            "weather", "temperature", "forecast", "climate", "rain", "snow",
            "sunny", "cloudy", "storm", "hurricane",
            # markets
            "stock", "price", "market", "trading", "crypto", "bitcoin",
            "exchange rate", "currency", "nasdaq", "dow jones",
            # sports
            "sports", "score", "game", "match", "tournament", "championship",
            "football", "basketball", "soccer", "baseball", "tennis",
            # trends
            "trending", "viral", "popular", "top rated", "best of",
            # location
            "near me", "nearby", "local", "in my area",
        }
    ),
    regex_patterns=_compile(
        r"\b(what|who|where|when|how|why)\s+(is|are|was|were|will|did|does|do)\b",
        r"\b(search|find|look up|lookup)\s+(for\s+)?(.+)",
        r"\b(latest|current|recent)\s+(news|information|updates?)\s+(about|on|for)\b",
        r"\b(what'?s|whats)\s+(the\s+)?(latest|current|news|weather|price|score)\b",
        r"\b(how much|how many)\s+(is|are|does|do|did|will)\b",
        r"\b(weather|temperature|forecast)\s+(in|for|at|today|tomorrow)\b",
        r"\b(stock|price|market)\s+(of|for|today|now)\b",
        r"\b(sports?|game|match)\s+(score|result|today|tonight)\b",
    ),
)

TOOL_USE_PATTERN = IntentPattern(
    intent=INTENT_TOOL_USE,
    priority=2,
    keywords=frozenset(
        {
            # email
            "send email", "email", "mail", "compose", "message", "reply",
            "forward", "inbox", "outbox", "draft",
            # calendar
            "schedule", "calendar", "appointment", "meeting", "event",
            "book", "reserve", "plan", "arrange", "set up",
            "remind", "reminder", "alert", "notification",
            # tasks
            "create task", "add task", "task", "todo", "to-do",
            "assign", "complete", "finish", "done", "check off",
            "project", "deadline", "due date",
            # notes
            "note", "notes", "write down", "save", "record",
            "document", "memo", "jot down", "remember",
            # files
            "create file", "save file", "upload", "download",
            "share", "collaborate", "edit", "modify",
            # action verbs
            "create", "add", "make", "new", "generate",
            "update", "change", "delete", "remove",
        }
    ),
    regex_patterns=_compile(
        r"\b(send|compose|write|reply to|forward)\s+(an?\s+)?(email|message|mail)\b",
        r"\b(email|mail|message)\s+(to|for)\s+(.+)",
        r"\b(schedule|book|arrange|set up)\s+(an?\s+)?(meeting|appointment|call|event)\b",
        r"\b(add|create)\s+(to\s+)?(calendar|schedule)\b",
        r"\b(remind|set reminder)\s+(me\s+)?(to|about|for)\b",
        r"\b(create|add|make)\s+(a\s+)?(task|todo|to-do)\b",
        r"\b(add\s+to|create\s+in)\s+(tasks?|todo|to-do)\s+(list|app)\b",
        r"\b(write|create|make|save)\s+(a\s+)?(note|memo)\b",
        r"\b(note|write down|jot down|record)\s+(that|this)\b",
        r"\b(create|add|make|generate)\s+(new\s+)?(.+)\s+(in|to|for)\b",
        r"\b(save|store|keep)\s+(this|that|it)\s+(in|to|for)\b",
    ),
)

GENERAL_CHAT_PATTERN = IntentPattern(
    intent=INTENT_GENERAL_CHAT,
    priority=1,
    keywords=frozenset(
        {
            "hello", "hi", "hey", "good morning", "good afternoon",
            "good evening", "greetings", "howdy", "what's up", "whats up",
            "thanks", "thank you", "appreciate", "grateful",
            "help", "assist", "support", "guide", "explain",
            "tell me", "show me", "teach me", "how to",
            "what do you think", "opinion", "advice", "suggest",
            "recommend", "idea", "thoughts", "perspective",
            "describe", "define", "meaning", "concept",
            "understand", "clarify", "elaborate", "detail",
            "chat", "talk", "discuss", "conversation", "tell me about",
            "interesting", "cool", "awesome", "amazing",
        }
    ),
    regex_patterns=_compile(
        r"\b(hello|hi|hey|good\s+(morning|afternoon|evening))\b",
        r"\b(what'?s\s+up|whats\s+up|how\s+are\s+you|how\s+do\s+you\s+do)\b",
        r"\b(help|assist|support)\s+(me\s+)?(with|to|in)?\b",
        r"\b(can\s+you|could\s+you|would\s+you)\s+(help|assist|explain|tell|show)\b",
        r"\b(explain|describe|define|tell\s+me\s+about)\s+(.+)",
        r"\b(what\s+is|what\s+are)\s+(.+)\s*\??\s*$",
        r"\b(how\s+does|how\s+do|how\s+can)\s+(.+)\s+(work|function|operate)\b",
        r"\b(what\s+do\s+you\s+think|opinion|advice|suggest|recommend)\b",
        r"\b(should\s+i|would\s+you|do\s+you\s+think)\b",
        r"\b(let'?s\s+)?(chat|talk|discuss)\s+(about)?\b",
        r"\b(tell\s+me\s+something|something\s+interesting)\b",
    ),
)

DEFAULT_INTENT_PATTERNS: tuple[IntentPattern, ...] = (
    GREETING_PATTERN,
    WEB_SEARCH_PATTERN,
    TOOL_USE_PATTERN,
    GENERAL_CHAT_PATTERN,
)

# ---------------------------------------------------------------------------
# Tool mapping
# ---------------------------------------------------------------------------

WEB_SEARCH_TOOLS: tuple[str, ...] = ("brave_search",)

TOOL_CATEGORY_TOOLS: dict[str, tuple[str, ...]] = {
    CATEGORY_EMAIL: ("email", "gmail", "outlook"),
    CATEGORY_CALENDAR: ("calendar", "google_calendar", "outlook_calendar"),
    CATEGORY_TASKS: ("tasks", "todo", "trello", "asana"),
    CATEGORY_NOTES: ("notes", "notion", "evernote", "onenote"),
    CATEGORY_FILES: ("drive", "dropbox", "onedrive"),
    CATEGORY_GENERAL: ("tools_general",),
}

# Second keyword pass for tool_use, checked in order; first hit wins.
TOOL_CATEGORY_VOCABULARY: tuple[tuple[str, re.Pattern[str]], ...] = (
    (CATEGORY_EMAIL, re.compile(r"\b(email|mail|send|message|compose|reply|forward)\b", _I)),
    (CATEGORY_CALENDAR, re.compile(r"\b(calendar|schedule|appointment|meeting|event|remind)\b", _I)),
    (CATEGORY_TASKS, re.compile(r"\b(task|todo|create|add|assign|complete|project)\b", _I)),
    (CATEGORY_NOTES, re.compile(r"\b(note|notes|write|save|record|document|memo)\b", _I)),
    (CATEGORY_FILES, re.compile(r"\b(file|document|upload|download|share|save)\b", _I)),
)

# ---------------------------------------------------------------------------
# Independent heuristics used to corroborate weak classifications
# ---------------------------------------------------------------------------

WEB_SEARCH_INDICATORS: tuple[re.Pattern[str], ...] = _compile(
    r"\b(latest|current|recent|today|now|breaking)\b",
    r"\b(weather|temperature|forecast)\b",
    r"\b(stock|price|market|crypto)\b",
    r"\b(news|update|trending)\b",
    r"\b(search|google|find|look up)\b",
)

ACTION_VERBS = re.compile(
    r"\b(send|create|add|schedule|remind|save|write|compose|book|arrange)\b", _I
)

# ---------------------------------------------------------------------------
# Search query clean-up, applied in order
# ---------------------------------------------------------------------------

SEARCH_QUERY_REMOVE_PATTERNS: tuple[re.Pattern[str], ...] = _compile(
    r"^(search\s+for\s+|search\s+|look\s+up\s+|find\s+|what\s+is\s+|what\s+are\s+)",
    r"^(tell\s+me\s+about\s+|information\s+about\s+|latest\s+|current\s+)",
    r"^(news\s+about\s+|how\s+much\s+is\s+|how\s+many\s+)",
    r"^(the|a|an)\s+",
    r"\s*\?+\s*$",
)
