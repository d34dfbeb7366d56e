"""Logging, metrics, query tracking and tracing for the research assistant."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider

from deep_researcher.config import (
    AppSettings,
    langsmith_setup_instructions,
    load_settings,
    missing_langsmith_env_vars,
)
from deep_researcher.telemetry import metrics
from deep_researcher.telemetry.logger import Logger, LogLevel, get_logger
from deep_researcher.telemetry.setup import (
    OTEL_RUNTIME_FLAG,
    configure_logging,
    configure_metrics,
    configure_tracing,
    otel_flags,
)
from deep_researcher.telemetry.tracing import create_child_tracer, create_span_manager, create_traced_function

logger = Logger("telemetry")


@dataclass
class Telemetry:
    """Handles returned by :func:`initialize_telemetry`."""

    tracer_provider: Optional[TracerProvider] = None
    meter_provider: Optional[MeterProvider] = None
    langsmith_configured: bool = False

    @staticmethod
    def get_logger(component: str) -> Logger:
        return Logger(component)


def initialize_telemetry(settings: Optional[AppSettings] = None, argv: Optional[Sequence[str]] = None) -> Telemetry:
    """Initialize logging, OpenTelemetry providers and the LangSmith check."""

    settings = settings or load_settings()
    observability = settings.observability
    logger.info("Initializing telemetry system")
    configure_logging(observability)

    flag_present, env_set = otel_flags(observability, argv)
    if not (flag_present and env_set):
        logger.warn(
            "OpenTelemetry is not fully configured. Some telemetry features will be limited.",
            {"is_otel_flag_present": flag_present, "is_otel_env_set": env_set},
        )
        logger.info(f"To enable OpenTelemetry, run with: TRACING_ENABLED=true and the {OTEL_RUNTIME_FLAG} flag")
    else:
        logger.info("OpenTelemetry is enabled")

    tracer_provider = configure_tracing(observability, argv)
    meter_provider = configure_metrics(observability, argv)

    missing = missing_langsmith_env_vars()
    if missing:
        logger.warn(
            "LangSmith is not fully configured. LLM tracing will be limited.",
            {"missing": missing},
        )
        logger.info(langsmith_setup_instructions())
    else:
        logger.info("LangSmith is configured")

    logger.info("Telemetry system initialized")
    return Telemetry(
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
        langsmith_configured=not missing,
    )


__all__ = [
    "Logger",
    "LogLevel",
    "Telemetry",
    "create_child_tracer",
    "create_span_manager",
    "create_traced_function",
    "get_logger",
    "initialize_telemetry",
    "metrics",
]
