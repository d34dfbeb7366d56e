import threading
from types import SimpleNamespace

import pytest

from deep_researcher.telemetry import metrics, monitoring
from deep_researcher.telemetry.monitoring import QueryTracker


class RecordingInstrument:
    def __init__(self):
        self.calls = []

    def add(self, value, attributes=None):
        self.calls.append((value, attributes))

    def record(self, value, attributes=None):
        self.calls.append((value, attributes))


@pytest.fixture()
def instruments(monkeypatch):
    recorded = SimpleNamespace()
    for name in (
        "search_latency",
        "search_requests",
        "documents_fetched",
        "token_usage",
        "query_handling_time",
        "source_diversity",
        "hallucination_count",
        "error_count",
    ):
        instrument = RecordingInstrument()
        monkeypatch.setattr(metrics, name, instrument)
        setattr(recorded, name, instrument)
    return recorded


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_query_lifecycle_scenario(tracker):
    tracker.start("q1", "what is X")
    tracker.record_documents_fetched("q1", 3)
    tracker.record_token_usage("q1", 100)
    tracker.record_token_usage("q1", 50)

    final = tracker.finalize("q1")

    assert final is not None
    assert final.query_id == "q1"
    assert final.query_text == "what is X"
    assert final.document_fetch_count == 3
    assert final.token_usage == 150
    assert final.error_count == 0
    assert final.total_processing_time is not None
    assert final.total_processing_time >= 0
    assert tracker.finalize("q1") is None
    assert "q1" not in tracker


def test_finalize_returns_exact_recorded_fields():
    clock = FakeClock(now=500.0)
    tracker = QueryTracker(clock=clock)
    tracker.start("q2", "latency question")
    tracker.record_search_latency("q2", 250)
    tracker.record_source_diversity("q2", 4)
    tracker.record_source_diversity("q2", 3)
    tracker.record_hallucinations("q2", 1)
    tracker.record_hallucinations("q2", 2)
    clock.now = 740.0

    final = tracker.finalize("q2")

    assert final.to_dict() == {
        "query_id": "q2",
        "query_text": "latency question",
        "start_time": 500.0,
        "search_latency": 250,
        "document_fetch_count": None,
        "token_usage": None,
        "total_processing_time": 240.0,
        "error_count": 0,
        "source_diversity": 3,
        "hallucinations": 3,
    }


def test_record_error_accumulates_and_logs(tracker, instruments, capsys, parse_log_lines):
    tracker.start("q3", "failing question")
    tracker.record_error("q3", ValueError("first"))
    tracker.record_error("q3", RuntimeError("second"))

    assert tracker.get("q3").error_count == 2
    assert instruments.error_count.calls == [
        (1, {"query_id": "q3", "error_type": "ValueError"}),
        (1, {"query_id": "q3", "error_type": "RuntimeError"}),
    ]
    errors = [record for record in parse_log_lines(capsys.readouterr().err) if record["level"] == "ERROR"]
    assert [record["error_message"] for record in errors] == ["first", "second"]
    assert "ValueError" in errors[0]["error_stack"]


@pytest.mark.parametrize(
    "recorder, args, message",
    [
        ("record_search_latency", (120,), "Attempted to record search latency for unknown query"),
        ("record_documents_fetched", (2,), "Attempted to record documents fetched for unknown query"),
        ("record_token_usage", (10,), "Attempted to record token usage for unknown query"),
        ("record_source_diversity", (1,), "Attempted to record source diversity for unknown query"),
        ("record_hallucinations", (2,), "Attempted to record hallucinations for unknown query"),
        ("record_error", (ValueError("x"),), "Attempted to record error for unknown query"),
    ],
)
def test_unknown_query_warns_and_creates_nothing(tracker, instruments, capsys, parse_log_lines, recorder, args, message):
    getattr(tracker, recorder)("never-started", *args)

    assert len(tracker) == 0
    assert tracker.get("never-started") is None
    warnings = parse_log_lines(capsys.readouterr().err)
    assert [(record["level"], record["message"]) for record in warnings] == [("WARN", message)]
    assert warnings[0]["query_id"] == "never-started"
    assert all(not instrument.calls for instrument in vars(instruments).values())


def test_finalize_unknown_query_warns(tracker, capsys, parse_log_lines):
    assert tracker.finalize("ghost") is None
    [record] = parse_log_lines(capsys.readouterr().err)
    assert record["message"] == "Attempted to finalize unknown query"


def test_recorders_feed_metric_instruments(tracker, instruments):
    tracker.start("q4", "metrics")
    tracker.record_search_latency("q4", 42.0)
    tracker.record_documents_fetched("q4", 5)
    tracker.record_token_usage("q4", 1024)
    tracker.record_source_diversity("q4", 3)
    tracker.finalize("q4")

    assert instruments.search_latency.calls == [(42.0, None)]
    assert instruments.search_requests.calls == [(1, None)]
    assert instruments.documents_fetched.calls == [(5, None)]
    assert instruments.token_usage.calls == [(1024, None)]
    assert instruments.source_diversity.calls == [(3, None)]
    assert len(instruments.query_handling_time.calls) == 1


def test_finalize_returns_snapshot_not_live_record(tracker):
    tracker.start("q5", "snapshot")
    final = tracker.finalize("q5")
    final.token_usage = 999

    tracker.start("q5", "snapshot again")
    assert tracker.get("q5").token_usage is None


def test_concurrent_token_usage_does_not_lose_updates(tracker):
    tracker.start("shared", "concurrent")

    def worker():
        for _ in range(200):
            tracker.record_token_usage("shared", 1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert tracker.finalize("shared").token_usage == 1600


def test_stale_entries_are_evicted_on_start():
    clock = FakeClock(now=0.0)
    tracker = QueryTracker(max_age_seconds=60, clock=clock)
    tracker.start("abandoned", "never finalized")
    clock.now = 61_000.0

    tracker.start("fresh", "new query")

    assert tracker.active_query_ids() == ["fresh"]


def test_evict_stale_keeps_young_entries():
    clock = FakeClock(now=0.0)
    tracker = QueryTracker(max_age_seconds=60, clock=clock)
    tracker.start("old", "old")
    clock.now = 30_000.0
    tracker.start("young", "young")

    assert tracker.evict_stale(now=70_000.0) == ["old"]
    assert tracker.active_query_ids() == ["young"]


def test_unbounded_tracker_never_evicts():
    clock = FakeClock(now=0.0)
    tracker = QueryTracker(clock=clock)
    tracker.start("forever", "leaks")
    clock.now = 10**9

    assert tracker.evict_stale() == []
    assert "forever" in tracker


def test_module_functions_use_default_tracker(monkeypatch):
    default = QueryTracker()
    monkeypatch.setattr(monitoring, "_default_tracker", default)

    monitoring.start_query_tracking("m1", "module level")
    monitoring.record_documents_fetched("m1", 3)
    monitoring.record_token_usage("m1", 100)
    monitoring.record_token_usage("m1", 50)
    monitoring.record_search_latency("m1", 12.5)
    monitoring.record_source_diversity("m1", 2)
    monitoring.record_hallucinations("m1", 1)
    monitoring.record_error("m1", KeyError("k"))
    final = monitoring.finalize_query_tracking("m1")

    assert monitoring.get_tracker() is default
    assert final.document_fetch_count == 3
    assert final.token_usage == 150
    assert final.search_latency == 12.5
    assert final.source_diversity == 2
    assert final.hallucinations == 1
    assert final.error_count == 1
    assert monitoring.finalize_query_tracking("m1") is None
