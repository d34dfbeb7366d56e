"""OpenTelemetry instruments shared by the research pipeline.

Instruments are created against the global meter provider. Until an SDK
provider is installed (see :mod:`deep_researcher.telemetry.setup`) every
``add``/``record`` call is a no-op.
"""
from __future__ import annotations

from opentelemetry import metrics

METER_NAME = "deep-research-assistant"


class MetricNames:
    SEARCH_LATENCY = "search_latency"
    SEARCH_REQUESTS = "search_requests"
    DOCUMENTS_FETCHED = "documents_fetched"
    TOKEN_USAGE = "llm_token_usage"
    QUERY_HANDLING_TIME = "query_handling_time"
    SOURCE_DIVERSITY = "source_diversity"
    HALLUCINATION_COUNT = "hallucination_count"
    ERROR_COUNT = "error_count"


meter = metrics.get_meter(METER_NAME)

search_latency = meter.create_histogram(
    MetricNames.SEARCH_LATENCY,
    unit="ms",
    description="Latency of search operations",
)

search_requests = meter.create_counter(
    MetricNames.SEARCH_REQUESTS,
    description="Number of search requests made",
)

documents_fetched = meter.create_counter(
    MetricNames.DOCUMENTS_FETCHED,
    description="Number of documents fetched",
)

token_usage = meter.create_counter(
    MetricNames.TOKEN_USAGE,
    description="Number of tokens used in LLM calls",
)

query_handling_time = meter.create_histogram(
    MetricNames.QUERY_HANDLING_TIME,
    unit="ms",
    description="Time to handle a user query end-to-end",
)

source_diversity = meter.create_histogram(
    MetricNames.SOURCE_DIVERSITY,
    unit="1",
    description="Number of distinct sources used in a response",
)

hallucination_count = meter.create_counter(
    MetricNames.HALLUCINATION_COUNT,
    description="Number of detected hallucinations in responses",
)

error_count = meter.create_counter(
    MetricNames.ERROR_COUNT,
    description="Number of errors encountered during processing",
)
