"""User-facing notifications raised by the player (toasts in the web client)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    level: str
    message: str


class Notifier:
    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def notify(self, level: str, message: str) -> Notification:
        notification = Notification(level, message)
        self.notifications.append(notification)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), "[%s] %s", level, message)
        return notification

    def success(self, message: str) -> Notification:
        return self.notify("success", message)

    def info(self, message: str) -> Notification:
        return self.notify("info", message)

    def warning(self, message: str) -> Notification:
        return self.notify("warning", message)

    def error(self, message: str) -> Notification:
        return self.notify("error", message)

    @property
    def last(self) -> Notification | None:
        return self.notifications[-1] if self.notifications else None

    def clear(self) -> None:
        self.notifications.clear()


__all__ = ["Notification", "Notifier"]
