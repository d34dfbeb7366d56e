"""Research agents."""

from .researcher import ResearchState, simple_researcher

__all__ = ["ResearchState", "simple_researcher"]
