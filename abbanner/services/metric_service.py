# services/metric_service.py
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Optional

import structlog

from abbanner.core.settings import config_settings
from abbanner.core.storage import KeyValueStore, logged_key
from abbanner.models.schemas.action_log import ActionLogCreateModel
from abbanner.models.schemas.banner import ActionType, Variant
from abbanner.services.action_logger import ActionLogger

logger = structlog.get_logger(__name__)

_shared_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def get_reporter_executor() -> ThreadPoolExecutor:
    """Process-wide pool for fire-and-forget logging calls."""
    global _shared_executor
    with _executor_lock:
        if _shared_executor is None:
            _shared_executor = ThreadPoolExecutor(
                max_workers=config_settings.REPORTER_MAX_WORKERS,
                thread_name_prefix="ab-reporter",
            )
        return _shared_executor


def shutdown_reporter_executor(wait: bool = True) -> None:
    """Drains pending logging calls; the next caller gets a fresh pool."""
    global _shared_executor
    with _executor_lock:
        executor, _shared_executor = _shared_executor, None
    if executor is not None:
        executor.shutdown(wait=wait)


def _log_dispatch_outcome(payload: ActionLogCreateModel):
    def _callback(future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error(
                "ab_test.logging_failed",
                test_id=payload.test_id,
                action_type=payload.action_type.value,
                error=str(error),
            )

    return _callback


class MetricReporter:
    def __init__(
        self,
        store: KeyValueStore,
        action_logger: ActionLogger,
        executor: Optional[Executor] = None,
    ):
        self.store = store
        self.action_logger = action_logger
        self.executor = executor or get_reporter_executor()

    def report_if_needed(
        self,
        test_id: str,
        variant: Variant,
        action_type: ActionType,
        visitor_id: str,
    ) -> bool:
        """
        Sends one action for (test_id, action_type) unless it was sent before.

        The logged flag is written before the remote call completes, so a
        failed call is never retried. Returns True when a call was dispatched.
        """
        key = logged_key(test_id, action_type.value)
        if self.store.get_item(key):
            return False

        payload = ActionLogCreateModel(
            test_id=test_id,
            variant=variant,
            action_type=action_type,
            visitor_id=visitor_id,
        )
        future = self.executor.submit(self.action_logger.log_action, payload)
        self.store.set_item(key, "true")
        future.add_done_callback(_log_dispatch_outcome(payload))

        logger.info(
            "ab_test.action_reported",
            test_id=test_id,
            variant=variant.value,
            action_type=action_type.value,
        )
        return True
