"""Logging level, tracing and metrics provider setup."""
from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

from deep_researcher.config import ObservabilitySettings
from deep_researcher.telemetry.logger import ROOT_LOGGER_NAME, Logger

SERVICE_NAME = "deep-research-assistant"
OTEL_RUNTIME_FLAG = "--otel"

logger = Logger("telemetry.setup")


def configure_logging(settings: ObservabilitySettings) -> None:
    """Apply the configured threshold to every component logger."""

    level = getattr(logging, settings.log_level.upper(), logging.DEBUG)
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)
    logger.debug("Logging configured", {"level": settings.log_level.upper()})


def otel_flags(settings: ObservabilitySettings, argv: Optional[Sequence[str]] = None) -> tuple[bool, bool]:
    """Return ``(runtime_flag_present, env_flag_set)``."""

    args = sys.argv[1:] if argv is None else argv
    return OTEL_RUNTIME_FLAG in args, settings.tracing_enabled


def _otlp_url(endpoint: str, signal: str) -> str:
    return f"{endpoint.rstrip('/')}/v1/{signal}"


def configure_tracing(settings: ObservabilitySettings, argv: Optional[Sequence[str]] = None) -> Optional[TracerProvider]:
    """Install an SDK tracer provider when both OpenTelemetry flags are present.

    Returns the provider, or ``None`` when tracing stays on the API's no-op
    implementation.
    """

    flag_present, env_set = otel_flags(settings, argv)
    if not (flag_present and env_set):
        logger.info("Tracing disabled by configuration", {"flag_present": flag_present, "env_set": env_set})
        return None

    provider = TracerProvider(
        resource=Resource.create({"service.name": SERVICE_NAME}),
        sampler=ParentBased(TraceIdRatioBased(settings.tracing_sample_rate)),
    )
    if settings.tracing_endpoint:
        exporter = OTLPSpanExporter(endpoint=_otlp_url(settings.tracing_endpoint, "traces"))
    else:
        exporter = ConsoleSpanExporter()
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    logger.info(
        "OpenTelemetry tracing configured",
        {"sample_rate": settings.tracing_sample_rate, "endpoint": settings.tracing_endpoint},
    )
    return provider


def configure_metrics(settings: ObservabilitySettings, argv: Optional[Sequence[str]] = None) -> Optional[MeterProvider]:
    """Install an SDK meter provider under the same conditions as tracing."""

    flag_present, env_set = otel_flags(settings, argv)
    if not (flag_present and env_set):
        logger.info("Metrics export disabled by configuration", {"flag_present": flag_present, "env_set": env_set})
        return None

    if settings.tracing_endpoint:
        exporter = OTLPMetricExporter(endpoint=_otlp_url(settings.tracing_endpoint, "metrics"))
    else:
        exporter = ConsoleMetricExporter()
    provider = MeterProvider(
        resource=Resource.create({"service.name": SERVICE_NAME}),
        metric_readers=[PeriodicExportingMetricReader(exporter)],
    )
    metrics.set_meter_provider(provider)
    logger.info("OpenTelemetry metrics configured", {"endpoint": settings.tracing_endpoint})
    return provider
