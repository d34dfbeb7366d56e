"""Minimal research flow: gather a summary for the question, then ask the LLM."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple
from uuid import uuid4

from deep_researcher.config import load_settings
from deep_researcher.exceptions import SearchError
from deep_researcher.telemetry.logger import Logger
from deep_researcher.telemetry.monitoring import QueryTracker, get_tracker
from deep_researcher.telemetry.tracing import create_child_tracer, create_traced_function
from deep_researcher.tools.chat_model import ChatModel
from deep_researcher.tools.tavily_search import TavilySearchService

logger = Logger("researcher")

SYSTEM_PROMPT = "You are a helpful research assistant."
GENERATION_ERROR_ANSWER = "Sorry, I encountered an error while generating your answer."
NO_ANSWER = "Sorry, I couldn't find an answer."


@dataclass
class ResearchState:
    question: str
    research_summary: Optional[str] = None
    answer: Optional[str] = None


def placeholder_summary(question: str) -> str:
    return f"Found some interesting information about: {question}"


def build_messages(state: ResearchState) -> List[Tuple[str, str]]:
    return [
        ("system", SYSTEM_PROMPT),
        (
            "human",
            f"Question: {state.question}\nResearch: {state.research_summary}\nPlease provide a concise answer.",
        ),
    ]


async def _gather_research(
    state: ResearchState,
    search_service: Optional[TavilySearchService],
    tracker: QueryTracker,
    query_id: str,
) -> str:
    if search_service is None:
        return placeholder_summary(state.question)
    try:
        return await search_service.search_and_format_results(state.question, query_id=query_id, tracker=tracker)
    except SearchError as exc:
        logger.warn("Search failed; falling back to placeholder research", {"query_id": query_id, "error": str(exc)})
        tracker.record_error(query_id, exc)
        return placeholder_summary(state.question)


async def _simple_researcher(
    query: str,
    *,
    chat_model: Optional[ChatModel] = None,
    search_service: Optional[TavilySearchService] = None,
    tracker: Optional[QueryTracker] = None,
) -> str:
    """Answer ``query`` with a single LLM call over a research summary.

    The summary is a fixed placeholder unless ``search_service`` is given, in
    which case it is the formatted search output. Always returns a non-empty
    string: the generated answer or one of the two fallback messages.
    """
    if tracker is None:
        tracker = get_tracker()
    query_id = uuid4().hex
    tracker.start(query_id, query)
    logger.info("Starting research on query", {"query_id": query_id, "query": query})

    state = ResearchState(question=query)
    trace_child = create_child_tracer()
    try:
        logger.info("Researching information", {"query_id": query_id})
        state.research_summary = await _gather_research(state, search_service, tracker, query_id)

        logger.info("Generating answer based on research", {"query_id": query_id})
        chat_model = chat_model or ChatModel.from_settings(load_settings())
        try:
            result = await trace_child(
                "llm.generate",
                lambda: chat_model.generate(build_messages(state)),
                {"llm.model": chat_model.model_name},
            )
            state.answer = result.content
            if result.total_tokens:
                tracker.record_token_usage(query_id, result.total_tokens)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error generating answer", {"query_id": query_id, "error": str(exc)})
            tracker.record_error(query_id, exc)
            state.answer = GENERATION_ERROR_ANSWER
    finally:
        tracker.finalize(query_id)

    return state.answer or NO_ANSWER


simple_researcher = create_traced_function("simple_researcher", _simple_researcher)