"""Core package for the deep research assistant."""

from .agents.researcher import ResearchState, simple_researcher
from .config import AppSettings, ChatSettings, ObservabilitySettings, SearchSettings, load_settings
from .search_models import SearchDepth, SearchOptions, SearchResult
from .tools.chat_model import ChatModel
from .tools.tavily_search import TavilySearchService

__all__ = [
    "AppSettings",
    "ChatModel",
    "ChatSettings",
    "ObservabilitySettings",
    "ResearchState",
    "SearchDepth",
    "SearchOptions",
    "SearchResult",
    "SearchSettings",
    "TavilySearchService",
    "load_settings",
    "simple_researcher",
]
