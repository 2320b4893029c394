"""Notification outbox for displaced reservations"""
import logging
from collections import deque
from threading import Lock
from typing import Callable, Deque, List

from domain.value_objects import DisplacementNotice

logger = logging.getLogger(__name__)

Subscriber = Callable[[DisplacementNotice], None]


class NotificationOutbox:
    """Keeps the most recent displacement notices and fans them out to subscribers"""

    def __init__(self, max_size: int = 500):
        self._notices: Deque[DisplacementNotice] = deque(maxlen=max_size)
        self._subscribers: List[Subscriber] = []
        self._lock = Lock()

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def publish(self, notice: DisplacementNotice) -> None:
        """Record a notice and deliver it; never called with a room lock held"""
        with self._lock:
            self._notices.append(notice)
            subscribers = list(self._subscribers)

        logger.info("Override notice: %s", notice.message())
        for callback in subscribers:
            try:
                callback(notice)
            except Exception:
                logger.exception("Notification subscriber %r failed", callback)

    def recent(self) -> List[DisplacementNotice]:
        with self._lock:
            return list(self._notices)
