"""Fire-and-forget notification queue.

Services call ``enqueue`` after their transaction commits and move on. A
single worker task, started with the application, delivers messages in the
background. Delivery failures are logged and counted; they never reach the
request that queued the message.
"""
import asyncio
import contextlib

import structlog

from shared.observability.metrics import ecomm_notifications_total

from .senders import EmailSender, build_sender
from .templates import Notification

logger = structlog.get_logger(__name__)


class NotificationQueue:

    def __init__(self, sender: EmailSender):
        self.sender = sender
        self._queue: asyncio.Queue[Notification] = asyncio.Queue()
        self._worker: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def enqueue(self, notification: Notification) -> None:
        self._queue.put_nowait(notification)
        logger.info(
            "notification_queued",
            kind=notification.kind,
            order_number=notification.order_number,
        )

    async def start(self) -> None:
        if not self.running:
            self._worker = asyncio.create_task(self._run(), name="notification-worker")

    async def stop(self) -> None:
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        await self.drain()

    async def drain(self) -> int:
        """Deliver everything queued right now, in order. Returns how many were attempted."""
        delivered = 0
        while not self._queue.empty():
            notification = self._queue.get_nowait()
            try:
                await self._deliver(notification)
            finally:
                self._queue.task_done()
            delivered += 1
        return delivered

    async def _run(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self._deliver(notification)
            finally:
                self._queue.task_done()

    async def _deliver(self, notification: Notification) -> bool:
        try:
            message_id = await self.sender.send(notification.to, notification.subject, notification.body)
        except Exception:
            ecomm_notifications_total.labels(kind=notification.kind, outcome="failed").inc()
            logger.exception(
                "notification_failed",
                kind=notification.kind,
                order_number=notification.order_number,
            )
            return False

        ecomm_notifications_total.labels(kind=notification.kind, outcome="sent").inc()
        logger.info(
            "notification_sent",
            kind=notification.kind,
            order_number=notification.order_number,
            message_id=message_id,
        )
        return True


_current_notifier: NotificationQueue | None = None


def get_notifier() -> NotificationQueue:
    """Return the process-wide queue, creating it with the configured sender."""
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = NotificationQueue(build_sender())
    return _current_notifier


def set_notifier(notifier: NotificationQueue) -> None:
    """Override the active queue (useful for tests)."""
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None
