"""OpenTelemetry span helpers for async work and manually scoped blocks."""
from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

TRACER_NAME = "deep-research-assistant"

AttributeValue = Any
T = TypeVar("T")


def _tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)


def _mark_error(span: Span, error: BaseException) -> None:
    span.record_exception(error)
    span.set_status(Status(StatusCode.ERROR, str(error)))


def create_traced_function(
    name: str,
    fn: Callable[..., Awaitable[T]],
    attributes: Optional[Mapping[str, AttributeValue]] = None,
    set_active: bool = True,
    parent_span: Optional[Span] = None,
) -> Callable[..., Awaitable[T]]:
    """Wrap an async callable so that every call runs inside a span named ``name``.

    Spans are parented to ``parent_span`` when given, otherwise to the span that
    is current at call time. Exceptions are recorded on the span with an ERROR
    status and re-raised; the span is always ended.

    Example::

        traced_fetch = create_traced_function("fetch_page", fetch_page, {"operation.type": "http"})
        page = await traced_fetch("https://example.com")
    """

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        parent_context = trace.set_span_in_context(parent_span) if parent_span is not None else None
        span = _tracer().start_span(name, context=parent_context, attributes=dict(attributes) if attributes else None)
        try:
            if set_active:
                with trace.use_span(span, end_on_exit=False, record_exception=False, set_status_on_exception=False):
                    return await fn(*args, **kwargs)
            return await fn(*args, **kwargs)
        except Exception as exc:
            _mark_error(span, exc)
            raise
        finally:
            span.end()

    return wrapper


class SpanManager:
    """Manual control over a span's lifetime.

    Usable either through explicit :meth:`start`/:meth:`end` calls or as a
    context manager::

        with create_span_manager("vector-lookup") as spans:
            spans.add_attribute("db.operation", "query")
            ...
            spans.add_event("rows-retrieved", {"count": 42})
    """

    def __init__(self, name: str, attributes: Optional[Mapping[str, AttributeValue]] = None, set_active: bool = True) -> None:
        self.name = name
        self.attributes = dict(attributes) if attributes else None
        self.set_active = set_active
        self._span: Optional[Span] = None
        self._token: Optional[object] = None

    def start(self) -> Span:
        if self._span is not None:
            return self._span
        self._span = _tracer().start_span(self.name, attributes=self.attributes)
        if self.set_active:
            self._token = otel_context.attach(trace.set_span_in_context(self._span))
        return self._span

    def end(self) -> None:
        if self._span is None:
            return
        self._span.end()
        if self._token is not None:
            otel_context.detach(self._token)
        self._span = None
        self._token = None

    def add_attribute(self, key: str, value: AttributeValue) -> None:
        if self._span is not None:
            self._span.set_attribute(key, value)

    def add_attributes(self, attributes: Optional[Mapping[str, AttributeValue]]) -> None:
        if self._span is not None and attributes:
            self._span.set_attributes(dict(attributes))

    def add_event(self, event_name: str, attributes: Optional[Mapping[str, AttributeValue]] = None) -> None:
        if self._span is not None:
            self._span.add_event(event_name, attributes=dict(attributes) if attributes else None)

    def record_error(self, error: BaseException) -> None:
        if self._span is not None:
            _mark_error(self._span, error)

    def get_span(self) -> Optional[Span]:
        return self._span

    def is_active(self) -> bool:
        return self._span is not None

    def __enter__(self) -> "SpanManager":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is not None:
            self.record_error(exc)
        self.end()


def create_span_manager(
    name: str,
    attributes: Optional[Mapping[str, AttributeValue]] = None,
    set_active: bool = True,
) -> SpanManager:
    return SpanManager(name, attributes=attributes, set_active=set_active)


def create_child_tracer(parent_span: Optional[Span] = None) -> Callable[..., Awaitable[Any]]:
    """Return ``trace_child(name, fn, attributes=None)`` for nested sub-operation spans.

    Child spans are parented to ``parent_span`` when given, otherwise to
    whatever span is current when ``trace_child`` is awaited.
    """

    async def trace_child(
        name: str,
        fn: Callable[[], Awaitable[T]],
        attributes: Optional[Mapping[str, AttributeValue]] = None,
    ) -> T:
        parent_context = trace.set_span_in_context(parent_span) if parent_span is not None else None
        span = _tracer().start_span(name, context=parent_context, attributes=dict(attributes) if attributes else None)
        try:
            with trace.use_span(span, end_on_exit=False, record_exception=False, set_status_on_exception=False):
                return await fn()
        except Exception as exc:
            _mark_error(span, exc)
            raise
        finally:
            span.end()

    return trace_child
