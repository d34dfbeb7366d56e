"""Per-query metric tracking across the stages of one research request."""
from __future__ import annotations

import threading
import time
import traceback
from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from deep_researcher.config import load_settings
from deep_researcher.telemetry import metrics
from deep_researcher.telemetry.logger import Logger

logger = Logger("monitoring")


def _now_ms() -> float:
    return time.perf_counter() * 1000.0


@dataclass
class QueryMetrics:
    """Accumulated metrics for a single query. Times are in milliseconds."""

    query_id: str
    query_text: str
    start_time: float
    search_latency: Optional[float] = None
    document_fetch_count: Optional[int] = None
    token_usage: Optional[int] = None
    total_processing_time: Optional[float] = None
    error_count: Optional[int] = None
    source_diversity: Optional[int] = None
    hallucinations: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class QueryTracker:
    """Lock-guarded registry of in-flight query metrics.

    When ``max_age_seconds`` is set, entries that were never finalized are
    evicted once they are older than that age; eviction runs on every
    :meth:`start` and on demand through :meth:`evict_stale`.
    """

    def __init__(self, max_age_seconds: Optional[float] = None, clock: Callable[[], float] = _now_ms) -> None:
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._active: Dict[str, QueryMetrics] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)

    def __contains__(self, query_id: object) -> bool:
        with self._lock:
            return query_id in self._active

    def start(self, query_id: str, query_text: str) -> None:
        self.evict_stale()
        with self._lock:
            self._active[query_id] = QueryMetrics(
                query_id=query_id,
                query_text=query_text,
                start_time=self._clock(),
                error_count=0,
            )
        logger.info("Query tracking started", {"query_id": query_id, "query_text": query_text})

    def record_search_latency(self, query_id: str, latency_ms: float) -> None:
        with self._lock:
            query = self._active.get(query_id)
            if query is not None:
                query.search_latency = latency_ms
        if query is None:
            logger.warn("Attempted to record search latency for unknown query", {"query_id": query_id})
            return
        metrics.search_latency.record(latency_ms)
        metrics.search_requests.add(1)
        logger.debug("Search latency recorded", {"query_id": query_id, "latency_ms": latency_ms})

    def record_documents_fetched(self, query_id: str, count: int) -> None:
        with self._lock:
            query = self._active.get(query_id)
            if query is not None:
                query.document_fetch_count = count
        if query is None:
            logger.warn("Attempted to record documents fetched for unknown query", {"query_id": query_id})
            return
        metrics.documents_fetched.add(count)
        logger.debug("Documents fetched recorded", {"query_id": query_id, "count": count})

    def record_token_usage(self, query_id: str, tokens: int) -> None:
        with self._lock:
            query = self._active.get(query_id)
            if query is not None:
                query.token_usage = (query.token_usage or 0) + tokens
        if query is None:
            logger.warn("Attempted to record token usage for unknown query", {"query_id": query_id})
            return
        metrics.token_usage.add(tokens)
        logger.debug("Token usage recorded", {"query_id": query_id, "tokens": tokens})

    def record_source_diversity(self, query_id: str, unique_source_count: int) -> None:
        with self._lock:
            query = self._active.get(query_id)
            if query is not None:
                query.source_diversity = unique_source_count
        if query is None:
            logger.warn("Attempted to record source diversity for unknown query", {"query_id": query_id})
            return
        metrics.source_diversity.record(unique_source_count)
        logger.debug(
            "Source diversity recorded",
            {"query_id": query_id, "unique_source_count": unique_source_count},
        )

    def record_hallucinations(self, query_id: str, count: int) -> None:
        with self._lock:
            query = self._active.get(query_id)
            if query is not None:
                query.hallucinations = (query.hallucinations or 0) + count
        if query is None:
            logger.warn("Attempted to record hallucinations for unknown query", {"query_id": query_id})
            return
        metrics.hallucination_count.add(count)
        logger.debug("Hallucinations recorded", {"query_id": query_id, "count": count})

    def record_error(self, query_id: str, error: BaseException) -> None:
        with self._lock:
            query = self._active.get(query_id)
            if query is not None:
                query.error_count = (query.error_count or 0) + 1
        if query is None:
            logger.warn(
                "Attempted to record error for unknown query",
                {"query_id": query_id, "error_message": str(error)},
            )
            return
        metrics.error_count.add(1, {"query_id": query_id, "error_type": type(error).__name__})
        logger.error(
            "Error during query processing",
            {
                "query_id": query_id,
                "error_message": str(error),
                "error_stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
            },
        )

    def finalize(self, query_id: str) -> Optional[QueryMetrics]:
        """Close out tracking for ``query_id`` and return a snapshot of its metrics."""
        with self._lock:
            query = self._active.pop(query_id, None)
            if query is not None:
                query.total_processing_time = max(self._clock() - query.start_time, 0.0)
                snapshot = replace(query)
        if query is None:
            logger.warn("Attempted to finalize unknown query", {"query_id": query_id})
            return None

        metrics.query_handling_time.record(snapshot.total_processing_time)
        logger.info(
            "Query processing completed",
            {
                "query_id": query_id,
                "total_processing_time": snapshot.total_processing_time,
                "documents_fetched": snapshot.document_fetch_count,
                "token_usage": snapshot.token_usage,
                "source_diversity": snapshot.source_diversity,
                "error_count": snapshot.error_count,
            },
        )
        return snapshot

    def get(self, query_id: str) -> Optional[QueryMetrics]:
        with self._lock:
            query = self._active.get(query_id)
            return replace(query) if query is not None else None

    def active_query_ids(self) -> List[str]:
        with self._lock:
            return list(self._active)

    def evict_stale(self, now: Optional[float] = None) -> List[str]:
        """Drop entries older than ``max_age_seconds`` and return their ids."""
        if self.max_age_seconds is None:
            return []
        cutoff = (now if now is not None else self._clock()) - self.max_age_seconds * 1000.0
        with self._lock:
            stale = [query_id for query_id, query in self._active.items() if query.start_time < cutoff]
            for query_id in stale:
                del self._active[query_id]
        for query_id in stale:
            logger.warn("Evicted stale query tracking entry", {"query_id": query_id})
        return stale

    def reset(self) -> None:
        with self._lock:
            self._active.clear()


_default_tracker: Optional[QueryTracker] = None
_default_lock = threading.Lock()


def get_tracker() -> QueryTracker:
    """Return the process-wide tracker, creating it from settings on first use."""
    global _default_tracker
    with _default_lock:
        if _default_tracker is None:
            settings = load_settings()
            _default_tracker = QueryTracker(max_age_seconds=settings.observability.query_max_age_seconds)
        return _default_tracker


def start_query_tracking(query_id: str, query_text: str) -> None:
    get_tracker().start(query_id, query_text)


def record_search_latency(query_id: str, latency_ms: float) -> None:
    get_tracker().record_search_latency(query_id, latency_ms)


def record_documents_fetched(query_id: str, count: int) -> None:
    get_tracker().record_documents_fetched(query_id, count)


def record_token_usage(query_id: str, tokens: int) -> None:
    get_tracker().record_token_usage(query_id, tokens)


def record_source_diversity(query_id: str, unique_source_count: int) -> None:
    get_tracker().record_source_diversity(query_id, unique_source_count)


def record_hallucinations(query_id: str, count: int) -> None:
    get_tracker().record_hallucinations(query_id, count)


def record_error(query_id: str, error: BaseException) -> None:
    get_tracker().record_error(query_id, error)


def finalize_query_tracking(query_id: str) -> Optional[QueryMetrics]:
    return get_tracker().finalize(query_id)
