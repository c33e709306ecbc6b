# src/notification/dispatcher.py
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from config import settings

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Runs notification sends as detached futures.

    Nobody waits on the returned future; exceptions end up in the log via a
    done-callback.
    """

    def __init__(self, executor: Optional[ThreadPoolExecutor] = None):
        self.executor = executor or ThreadPoolExecutor(
            max_workers=settings.NOTIFICATION_WORKERS, thread_name_prefix="notify"
        )

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future = self.executor.submit(fn, *args, **kwargs)
        future.add_done_callback(self._log_failure)
        return future

    @staticmethod
    def _log_failure(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Notification dispatch failed", exc_info=(type(exc), exc, exc.__traceback__))

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
