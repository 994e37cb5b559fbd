import threading

from conftest import DeferredExecutor, RecordingActionLogger

from abbanner.core.storage import logged_key
from abbanner.models.schemas.banner import ActionType, Variant
from abbanner.services import metric_service
from abbanner.services.metric_service import MetricReporter


class RecordingLogger:
    def __init__(self):
        self.errors = []

    def info(self, event, **kw):
        pass

    def error(self, event, **kw):
        self.errors.append((event, kw))


def test_view_is_reported_once(store, action_logger, executor):
    reporter = MetricReporter(store, action_logger, executor=executor)

    assert reporter.report_if_needed("promo1", Variant.B, ActionType.VIEW, "visitor-1") is True
    assert reporter.report_if_needed("promo1", Variant.B, ActionType.VIEW, "visitor-1") is False

    assert len(action_logger.calls) == 1
    payload = action_logger.calls[0]
    assert payload.model_dump(mode="json", by_alias=True) == {
        "testId": "promo1",
        "variant": "B",
        "actionType": "View",
        "visitorId": "visitor-1",
    }
    assert store.get_item(logged_key("promo1", "View")) == "true"


def test_flags_are_per_test_and_action(store, action_logger, executor):
    reporter = MetricReporter(store, action_logger, executor=executor)

    reporter.report_if_needed("promo1", Variant.A, ActionType.VIEW, "v")
    reporter.report_if_needed("promo1", Variant.A, ActionType.CLICK, "v")
    reporter.report_if_needed("promo2", Variant.A, ActionType.VIEW, "v")
    reporter.report_if_needed("promo1", Variant.A, ActionType.CLICK, "v")

    sent = [(p.test_id, p.action_type) for p in action_logger.calls]
    assert sent == [
        ("promo1", ActionType.VIEW),
        ("promo1", ActionType.CLICK),
        ("promo2", ActionType.VIEW),
    ]


def test_existing_flag_suppresses_send(store, action_logger, executor):
    store.set_item(logged_key("promo1", "Click"), "true")
    reporter = MetricReporter(store, action_logger, executor=executor)

    assert reporter.report_if_needed("promo1", Variant.A, ActionType.CLICK, "v") is False
    assert action_logger.calls == []


def test_flag_is_set_before_the_call_completes(store, action_logger):
    executor = DeferredExecutor()
    reporter = MetricReporter(store, action_logger, executor=executor)

    reporter.report_if_needed("promo1", Variant.A, ActionType.VIEW, "v")

    assert action_logger.calls == []
    assert store.get_item(logged_key("promo1", "View")) == "true"
    assert reporter.report_if_needed("promo1", Variant.A, ActionType.VIEW, "v") is False

    executor.run_pending()
    assert len(action_logger.calls) == 1


def test_failed_call_is_logged_and_not_retried(store, executor, monkeypatch):
    recording = RecordingLogger()
    monkeypatch.setattr(metric_service, "logger", recording)
    failing_logger = RecordingActionLogger(fail=True)
    reporter = MetricReporter(store, failing_logger, executor=executor)

    assert reporter.report_if_needed("promo1", Variant.A, ActionType.VIEW, "v") is True
    assert reporter.report_if_needed("promo1", Variant.A, ActionType.VIEW, "v") is False

    assert len(failing_logger.calls) == 1
    assert [event for event, _ in recording.errors] == ["ab_test.logging_failed"]
    assert recording.errors[0][1]["test_id"] == "promo1"


def test_shared_executor_is_created_once_under_concurrency():
    metric_service.shutdown_reporter_executor()
    barrier = threading.Barrier(8)
    seen = []

    def grab():
        barrier.wait()
        seen.append(metric_service.get_reporter_executor())

    threads = [threading.Thread(target=grab) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    try:
        assert len(seen) == 8
        assert len({id(e) for e in seen}) == 1
    finally:
        metric_service.shutdown_reporter_executor()


def test_shutdown_resets_the_shared_executor():
    first = metric_service.get_reporter_executor()
    metric_service.shutdown_reporter_executor()

    assert metric_service._shared_executor is None
    second = metric_service.get_reporter_executor()
    assert second is not first
    metric_service.shutdown_reporter_executor()
