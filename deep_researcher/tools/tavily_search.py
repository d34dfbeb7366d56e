"""Tavily web search client with a fixture-backed test mode."""
from __future__ import annotations

import argparse
import asyncio
import sys
import time
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from deep_researcher.config import AppSettings, load_settings
from deep_researcher.exceptions import ConfigError, ParseError, SearchError
from deep_researcher.search_models import SearchDepth, SearchOptions, SearchResult
from deep_researcher.telemetry.logger import Logger
from deep_researcher.telemetry.monitoring import QueryTracker, get_tracker

logger = Logger("tavily_search")

SUMMARY_EXCERPT_CHARS = 200
NO_RESULTS_MESSAGE = "No results found."


class SearchMode(str, Enum):
    LIVE = "live"
    MOCKED = "mocked"


def format_search_results(query: str, results: Sequence[SearchResult]) -> str:
    """Render results as a numbered, human-readable block."""

    if not results:
        return NO_RESULTS_MESSAGE

    lines = [f'Found {len(results)} results for "{query}":', ""]
    for index, result in enumerate(results, start=1):
        excerpt = result.content[:SUMMARY_EXCERPT_CHARS]
        if len(result.content) > SUMMARY_EXCERPT_CHARS:
            excerpt += "..."
        lines.extend(
            [
                f'{index}. "{result.title}"',
                f"   URL: {result.url}",
                f"   Relevance Score: {result.score}",
                f"   Summary: {excerpt}",
                "",
            ]
        )
    return "\n".join(lines) + "\n"


class TavilySearchService:
    """Wrapper around the Tavily search API.

    The mode is resolved once, at construction:

    * ``test_mode=True`` or :meth:`set_mock_results` -> ``MOCKED``; searches
      return the stored fixtures and never touch the network.
    * a credential from ``options.api_key`` or ``TAVILY_API_KEY`` -> ``LIVE``.
    * no credential -> ``MOCKED`` with a warning when ``APP_ENV=test``,
      otherwise :class:`ConfigError`.
    """

    def __init__(
        self,
        options: Optional[SearchOptions] = None,
        *,
        settings: Optional[AppSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.options = options or self._default_options(self.settings)
        self._http_client = http_client
        self._mock_results: List[SearchResult] = []
        self._api_key: Optional[str] = None

        if self.options.test_mode:
            self.mode = SearchMode.MOCKED
            return

        api_key = self.options.api_key or self.settings.tavily_api_key
        if not api_key:
            if self.settings.is_test_environment:
                logger.warn("Tavily API key not found, running in TEST MODE. Searches will not work.")
                self.mode = SearchMode.MOCKED
                return
            raise ConfigError("Tavily API key not found; set TAVILY_API_KEY or pass api_key")

        self._api_key = api_key
        self.mode = SearchMode.LIVE

    @staticmethod
    def _default_options(settings: AppSettings) -> SearchOptions:
        try:
            return SearchOptions(
                max_results=settings.search.max_results,
                search_depth=SearchDepth(settings.search.search_depth),
                include_raw_content=settings.search.include_raw_content,
                include_images=settings.search.include_images,
            )
        except (ValueError, ValidationError) as exc:
            raise ConfigError(f"Invalid Tavily search settings: {exc}") from exc

    def is_in_test_mode(self) -> bool:
        return self.mode is SearchMode.MOCKED

    def set_mock_results(self, mock_results: Iterable[SearchResult]) -> None:
        """Store fixture results and switch the instance to test mode."""
        self._mock_results = list(mock_results)
        self.mode = SearchMode.MOCKED

    async def search(
        self,
        query: str,
        *,
        query_id: Optional[str] = None,
        tracker: Optional[QueryTracker] = None,
    ) -> List[SearchResult]:
        """Run ``query`` against Tavily and return the parsed results.

        Request-building, transport and HTTP status failures raise
        :class:`SearchError`. A body
        that cannot be interpreted is logged and yields an empty list. When
        ``query_id`` is given, latency, result count and distinct-source count
        are recorded on ``tracker`` (the process-wide tracker by default).
        """
        started = time.perf_counter()
        if self.is_in_test_mode():
            results = list(self._mock_results)
            self._record(tracker, query_id, started, results)
            return results

        logger.info("Performing Tavily search", {"query": query, "query_id": query_id})
        try:
            response = await self._post(query)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.error("Error performing Tavily search", {"query": query, "error": str(exc)})
            raise SearchError(f"Tavily search failed: {exc}") from exc

        try:
            results = self._parse_results(response)
        except ParseError as exc:
            logger.error("Error parsing Tavily results", {"query": query, "error": str(exc)})
            results = []

        self._record(tracker, query_id, started, results)
        return results

    async def search_and_format_results(
        self,
        query: str,
        *,
        query_id: Optional[str] = None,
        tracker: Optional[QueryTracker] = None,
    ) -> str:
        results = await self.search(query, query_id=query_id, tracker=tracker)
        return format_search_results(query, results)

    def _request_body(self, query: str) -> Dict[str, Any]:
        return {
            "query": query,
            "search_depth": self.options.search_depth.api_value,
            "max_results": self.options.max_results,
            "include_raw_content": self.options.include_raw_content,
            "include_images": self.options.include_images,
        }

    async def _post(self, query: str) -> httpx.Response:
        url = self.settings.search.endpoint
        body = self._request_body(query)
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if self._http_client is not None:
            response = await self._http_client.post(url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.settings.search.timeout_seconds) as client:
                response = await client.post(url, json=body, headers=headers)
        response.raise_for_status()
        return response

    @staticmethod
    def _parse_results(response: httpx.Response) -> List[SearchResult]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ParseError(f"Tavily response is not valid JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise ParseError(f"Unexpected Tavily response type: {type(payload).__name__}")
        raw_results = payload.get("results", [])
        if not isinstance(raw_results, list):
            raise ParseError(f"Unexpected Tavily results type: {type(raw_results).__name__}")

        results: List[SearchResult] = []
        for item in raw_results:
            try:
                results.append(SearchResult.model_validate(item))
            except ValidationError as exc:
                logger.warn("Skipping malformed Tavily result", {"error": str(exc)})
        return results

    @staticmethod
    def _record(
        tracker: Optional[QueryTracker],
        query_id: Optional[str],
        started: float,
        results: Sequence[SearchResult],
    ) -> None:
        if query_id is None:
            return
        if tracker is None:
            tracker = get_tracker()
        tracker.record_search_latency(query_id, (time.perf_counter() - started) * 1000.0)
        tracker.record_documents_fetched(query_id, len(results))
        tracker.record_source_diversity(query_id, len({result.url for result in results}))


def create_tavily_search_service(options: Optional[SearchOptions] = None) -> TavilySearchService:
    return TavilySearchService(options)


def create_test_tavily_search_service(mock_results: Optional[Iterable[SearchResult]] = None) -> TavilySearchService:
    """Create a service in test mode, optionally preloaded with fixtures."""
    service = TavilySearchService(SearchOptions(test_mode=True))
    if mock_results is not None:
        service.set_mock_results(mock_results)
    return service


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Search the web with Tavily and print a summary.")
    parser.add_argument("query", nargs="?", default="What is LangGraph?", help="search query")
    args = parser.parse_args(argv)

    settings = load_settings()
    if not settings.tavily_api_key:
        print("TAVILY_API_KEY environment variable not set", file=sys.stderr)
        return 1

    service = TavilySearchService(settings=settings)
    print(f'Searching for: "{args.query}"')
    try:
        print(asyncio.run(service.search_and_format_results(args.query)))
    except SearchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
