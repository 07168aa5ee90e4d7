"""
Notifications - transient user-facing messages (toasts).

Every failure in the flow is scoped to the action that triggered it and
reported here. The frontend drains the queue on each render.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=datetime.now)


class Notifier:
    """Queue of pending toasts."""

    def __init__(self):
        self._pending: List[Notification] = []

    def notify(self, level: NotificationLevel, message: str):
        log = logger.warning if level == NotificationLevel.ERROR else logger.info
        log(f"[Toast:{level.value}] {message}")
        self._pending.append(Notification(level=level, message=message))

    def success(self, message: str):
        self.notify(NotificationLevel.SUCCESS, message)

    def info(self, message: str):
        self.notify(NotificationLevel.INFO, message)

    def error(self, message: str):
        self.notify(NotificationLevel.ERROR, message)

    @property
    def pending(self) -> List[Notification]:
        return list(self._pending)

    @property
    def last(self) -> Optional[Notification]:
        return self._pending[-1] if self._pending else None

    def drain(self) -> List[Notification]:
        """Return and clear pending notifications."""
        drained, self._pending = self._pending, []
        return drained
