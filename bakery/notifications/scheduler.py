from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from functools import lru_cache

from bakery.core.config import get_settings
from bakery.notifications.dispatcher import NotificationDispatcher, NotificationResult, get_dispatcher
from bakery.notifications.payloads import NotificationPayload

logger = logging.getLogger(__name__)


class NotificationScheduler:
    """Fire-and-forget sends on a small worker pool.

    A failed send is logged and never reaches the caller that scheduled it.
    """

    def __init__(self, dispatcher: NotificationDispatcher, max_workers: int = 4):
        self.dispatcher = dispatcher
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="notify")
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def _run(self, template_name: str, recipient: str, payload: NotificationPayload) -> NotificationResult | None:
        try:
            result = self.dispatcher.send(template_name, recipient, payload)
        except Exception:
            logger.exception(
                "notification %s for order %s to %s failed",
                template_name,
                payload.order_id,
                recipient,
            )
            return None
        logger.info("notification %s for order %s sent to %s", template_name, payload.order_id, recipient)
        return result

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def schedule(self, template_name: str, recipient: str, payload: NotificationPayload) -> Future:
        future = self._executor.submit(self._run, template_name, recipient, payload)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def wait_idle(self, timeout: float | None = None) -> bool:
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_pending)


@lru_cache(maxsize=1)
def get_notification_scheduler() -> NotificationScheduler:
    settings = get_settings()
    return NotificationScheduler(get_dispatcher(), max_workers=settings.notification_max_workers)


def shutdown_notification_scheduler() -> None:
    if get_notification_scheduler.cache_info().currsize:
        get_notification_scheduler().shutdown(wait_for_pending=True)
        get_notification_scheduler.cache_clear()
