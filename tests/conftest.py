import json
from types import SimpleNamespace

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from deep_researcher.config import AppSettings
from deep_researcher.search_models import SearchResult
from deep_researcher.telemetry.monitoring import QueryTracker

_SPAN_EXPORTER = InMemorySpanExporter()
_TRACER_PROVIDER = TracerProvider()
_TRACER_PROVIDER.add_span_processor(SimpleSpanProcessor(_SPAN_EXPORTER))
trace.set_tracer_provider(_TRACER_PROVIDER)


@pytest.fixture()
def span_exporter():
    _SPAN_EXPORTER.clear()
    yield _SPAN_EXPORTER
    _SPAN_EXPORTER.clear()


@pytest.fixture()
def tracker():
    return QueryTracker()


@pytest.fixture()
def settings():
    return AppSettings(tavily_api_key="tvly-test-key", openai_api_key="sk-test-key")


@pytest.fixture()
def sample_results():
    return [
        SearchResult(
            title="Deno - A secure runtime for JavaScript and TypeScript",
            url="https://deno.land/",
            content=(
                "Deno is a simple, modern and secure runtime for JavaScript and TypeScript that uses V8 "
                "and is built in Rust. It was created by Ryan Dahl, original creator of Node.js."
            ),
            score=0.95,
            raw_content="<html><body>Full HTML content here...</body></html>",
        ),
        SearchResult(
            title="Another Result",
            url="https://example.com",
            content="Example content for testing",
            score=0.8,
        ),
    ]


class FakeCompletions:
    """Records chat.completions.create calls and replays a canned reply or error."""

    def __init__(self, content="LangGraph is a library for stateful agents.", error=None, usage=(12, 8), choices=None):
        self.content = content
        self.error = error
        self.usage = usage
        self.choices = choices
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        prompt_tokens, completion_tokens = self.usage
        choices = self.choices
        if choices is None:
            choices = [SimpleNamespace(message=SimpleNamespace(content=self.content))]
        return SimpleNamespace(
            model=kwargs["model"],
            choices=choices,
            usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
        )


class FakeOpenAIClient:
    def __init__(self, completions):
        self.chat = SimpleNamespace(completions=completions)


@pytest.fixture()
def make_openai_client():
    def _make(**kwargs):
        return FakeOpenAIClient(FakeCompletions(**kwargs))

    return _make


@pytest.fixture()
def parse_log_lines():
    def _parse(text):
        return [json.loads(line) for line in text.splitlines() if line.strip()]

    return _parse
