"""Structured schemas for web search configuration and results."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SearchDepth(str, Enum):
    BASIC = "basic"
    DEEP = "deep"

    @classmethod
    def _missing_(cls, value: object) -> Optional["SearchDepth"]:
        # Accept Tavily's own tier names and any casing.
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "advanced":
                return cls.DEEP
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def api_value(self) -> str:
        # Tavily calls the deeper tier "advanced".
        return "advanced" if self is SearchDepth.DEEP else "basic"


class SearchResult(BaseModel):
    """One document returned by the search API."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    content: str = ""
    score: float = 0.0
    raw_content: Optional[str] = None


class SearchOptions(BaseModel):
    max_results: int = Field(default=5, ge=1)
    search_depth: SearchDepth = SearchDepth.BASIC
    include_raw_content: bool = True
    include_images: bool = False
    api_key: Optional[str] = None
    test_mode: bool = False
