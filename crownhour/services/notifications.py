"""
Transient user notifications.

Operations report outcomes here instead of raising; a UI subscribes to show
them and they expire from the recent list after a while.
"""

import logging
from collections import deque
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Deque, List, Optional

from pydantic import BaseModel, Field

from crownhour.utils.helpers import get_current_timestamp

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notice(BaseModel):
    message: str
    level: NoticeLevel = NoticeLevel.INFO
    created_at: datetime = Field(default_factory=get_current_timestamp)
    duration_seconds: Optional[float] = 5.0

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.duration_seconds is None:
            return False
        now = now or get_current_timestamp()
        return now - self.created_at >= timedelta(seconds=self.duration_seconds)


class Notifier:
    """Fan-out of notices to subscribers, keeping a bounded recent list."""

    def __init__(self, max_recent: int = 20):
        self._recent: Deque[Notice] = deque(maxlen=max_recent)
        self._subscribers: List[Callable[[Notice], None]] = []

    def subscribe(self, callback: Callable[[Notice], None]) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, message: str, level: NoticeLevel = NoticeLevel.INFO, duration_seconds: Optional[float] = 5.0) -> Notice:
        notice = Notice(message=message, level=level, duration_seconds=duration_seconds)
        self._recent.append(notice)

        if level == NoticeLevel.ERROR:
            logger.warning(f"[notice] {message}")
        else:
            logger.info(f"[notice] {message}")

        for callback in list(self._subscribers):
            try:
                callback(notice)
            except Exception as e:
                logger.error(f"Notification subscriber failed: {str(e)}")

        return notice

    def success(self, message: str) -> Notice:
        return self.notify(message, NoticeLevel.SUCCESS)

    def error(self, message: str) -> Notice:
        return self.notify(message, NoticeLevel.ERROR)

    def info(self, message: str) -> Notice:
        return self.notify(message, NoticeLevel.INFO)

    def active(self, now: Optional[datetime] = None) -> List[Notice]:
        """Notices that have not expired yet."""
        return [notice for notice in self._recent if not notice.is_expired(now)]

    def dismiss_all(self) -> None:
        self._recent.clear()
