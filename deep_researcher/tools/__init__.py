"""Clients for the hosted search and chat-completion APIs."""

from .chat_model import ChatCompletionResult, ChatModel
from .tavily_search import (
    SearchMode,
    TavilySearchService,
    create_tavily_search_service,
    create_test_tavily_search_service,
)

__all__ = [
    "ChatCompletionResult",
    "ChatModel",
    "SearchMode",
    "TavilySearchService",
    "create_tavily_search_service",
    "create_test_tavily_search_service",
]
