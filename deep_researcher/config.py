"""Environment-driven configuration helpers for the research assistant."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, MutableMapping, Optional

from dotenv import load_dotenv

DEFAULT_ENV_FILE = Path(".env")
DEFAULT_CHAT_MODEL = "gpt-3.5-turbo"
DEFAULT_SEARCH_ENDPOINT = "https://api.tavily.com/search"

LANGSMITH_REQUIRED_ENV_VARS = ("LANGSMITH_TRACING_V2", "LANGSMITH_API_KEY", "LANGSMITH_PROJECT")


def _to_bool(value: Optional[str], *, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass
class ObservabilitySettings:
    """Tracing, logging and query-tracking toggles."""

    tracing_enabled: bool = False
    tracing_sample_rate: float = 1.0
    tracing_endpoint: Optional[str] = None
    log_level: str = "DEBUG"
    query_max_age_seconds: Optional[float] = None


@dataclass
class SearchSettings:
    """Defaults for the Tavily search client."""

    max_results: int = 5
    search_depth: str = "basic"
    include_raw_content: bool = True
    include_images: bool = False
    timeout_seconds: float = 30.0
    endpoint: str = DEFAULT_SEARCH_ENDPOINT


@dataclass
class ChatSettings:
    """Defaults for the chat-completion client."""

    model_name: str = DEFAULT_CHAT_MODEL
    temperature: float = 0.0


@dataclass
class AppSettings:
    """Aggregated configuration for the application."""

    openai_api_key: Optional[str] = None
    tavily_api_key: Optional[str] = None
    environment: str = "development"
    chat: ChatSettings = field(default_factory=ChatSettings)
    search: SearchSettings = field(default_factory=SearchSettings)
    observability: ObservabilitySettings = field(default_factory=ObservabilitySettings)

    @property
    def is_test_environment(self) -> bool:
        return self.environment.strip().lower() == "test"


def load_settings(env: Mapping[str, str] | MutableMapping[str, str] | None = None, env_file: Optional[Path] = None) -> AppSettings:
    """Load settings from the provided environment mapping (defaults to ``os.environ``).

    A ``.env`` file is loaded first when present; variables already set in the
    process environment take precedence over the file.
    """

    env_file_path = env_file or DEFAULT_ENV_FILE
    if env is None and env_file_path.exists():
        load_dotenv(env_file_path, override=False)

    env = env if env is not None else os.environ

    chat = ChatSettings(
        model_name=env.get("OPENAI_CHAT_MODEL", DEFAULT_CHAT_MODEL),
        temperature=float(env.get("OPENAI_TEMPERATURE", 0.0)),
    )

    search = SearchSettings(
        max_results=int(env.get("TAVILY_MAX_RESULTS", 5)),
        search_depth=env.get("TAVILY_SEARCH_DEPTH", "basic").strip().lower(),
        include_raw_content=_to_bool(env.get("TAVILY_INCLUDE_RAW_CONTENT"), default=True),
        timeout_seconds=float(env.get("TAVILY_TIMEOUT_SECONDS", 30.0)),
        endpoint=env.get("TAVILY_ENDPOINT", DEFAULT_SEARCH_ENDPOINT),
    )

    observability = ObservabilitySettings(
        tracing_enabled=_to_bool(env.get("TRACING_ENABLED")),
        tracing_sample_rate=float(env.get("TRACING_SAMPLE_RATE", 1.0)),
        tracing_endpoint=env.get("TRACING_ENDPOINT"),
        log_level=env.get("LOG_LEVEL", "DEBUG"),
        query_max_age_seconds=_to_optional_float(env.get("QUERY_TRACKING_MAX_AGE_SECONDS")),
    )

    return AppSettings(
        openai_api_key=env.get("OPENAI_API_KEY"),
        tavily_api_key=env.get("TAVILY_API_KEY"),
        environment=env.get("APP_ENV", "development"),
        chat=chat,
        search=search,
        observability=observability,
    )


def missing_langsmith_env_vars(env: Mapping[str, str] | None = None) -> List[str]:
    """Return the LangSmith variables that are unset or empty."""

    env = env if env is not None else os.environ
    return [name for name in LANGSMITH_REQUIRED_ENV_VARS if not env.get(name)]


def langsmith_setup_instructions() -> str:
    return (
        "\n"
        "To configure LangSmith, set the following environment variables:\n"
        "\n"
        "export LANGSMITH_TRACING_V2=true\n"
        "export LANGSMITH_API_KEY=your_api_key\n"
        'export LANGSMITH_PROJECT="Deep Research Assistant"\n'
        "\n"
        "Optionally, you can also set:\n"
        "export LANGSMITH_ENDPOINT=https://api.smith.langchain.com\n"
    )
