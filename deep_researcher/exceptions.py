"""Custom exceptions for research assistant failures."""
from __future__ import annotations


class ResearcherError(RuntimeError):
    """Base exception for research assistant failures."""
    pass


class ConfigError(ResearcherError):
    """Raised when required configuration (such as a credential) is missing."""
    pass


class UpstreamError(ResearcherError):
    """Raised when a hosted API call fails."""
    pass


class SearchError(UpstreamError):
    """Raised when the web search API call fails."""
    pass


class ChatError(UpstreamError):
    """Raised when the chat-completion API call fails."""
    pass


class ParseError(ResearcherError):
    """Raised when an upstream response body cannot be interpreted."""
    pass
