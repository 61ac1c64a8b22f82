"""Response providers for the fallback chain."""

from .base import Provider, SearchClient, SearchResult, ToolCatalog, ToolSpec
from .llm import LangChainProvider, build_chat_model
from .search import BraveSearchClient
from .static import StaticProvider

__all__ = [
    "BraveSearchClient",
    "LangChainProvider",
    "Provider",
    "SearchClient",
    "SearchResult",
    "StaticProvider",
    "ToolCatalog",
    "ToolSpec",
    "build_chat_model",
]
