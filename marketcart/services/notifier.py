from __future__ import annotations

import enum
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

_HISTORY_LIMIT = 50


class NotificationLevel(str, enum.Enum):
    success = "success"
    info = "info"
    error = "error"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


NotificationListener = Callable[[Notification], None]


class Notifier:
    """Transient user-facing messages (toasts) raised by cart operations."""

    def __init__(self, history_limit: int = _HISTORY_LIMIT) -> None:
        self._history: deque[Notification] = deque(maxlen=max(1, history_limit))
        self._listeners: list[NotificationListener] = []

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message[:255])
        self._history.append(notification)
        log_level = logging.WARNING if level is NotificationLevel.error else logging.INFO
        logger.log(log_level, "notification", extra={"level_name": level.value, "notification": notification.message})
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("notification_listener_failed")
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(NotificationLevel.success, message)

    def info(self, message: str) -> Notification:
        return self.notify(NotificationLevel.info, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationLevel.error, message)

    def has_errors(self) -> bool:
        return any(item.level is NotificationLevel.error for item in self._history)

    def clear(self) -> None:
        self._history.clear()
