"""Owned, swappable slot for the native media player."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], Any]


class MediaPlayerHandle(Protocol):
    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, seconds: float) -> None: ...

    def set_volume(self, volume: int) -> None: ...

    def is_ready(self) -> bool: ...


def timer_scheduler(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class PlayerHandleSlot:
    """Holds at most one handle. Calls are wrapped so a missing or broken player never raises.

    A call that cannot be delivered is retried once after ``retry_delay``;
    if the retry also fails the slot gives up and reports ``on_give_up(method)``.
    """

    def __init__(
        self,
        retry_delay: float = 0.5,
        scheduler: Optional[Scheduler] = None,
        on_give_up: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.retry_delay = retry_delay
        self.scheduler = scheduler or timer_scheduler
        self.on_give_up = on_give_up
        self._handle: Optional[MediaPlayerHandle] = None

    @property
    def handle(self) -> Optional[MediaPlayerHandle]:
        return self._handle

    def attach(self, handle: MediaPlayerHandle) -> None:
        if self._handle is not None and self._handle is not handle:
            logger.debug("Replacing registered media player handle")
        self._handle = handle

    def detach(self) -> None:
        self._handle = None

    def is_ready(self) -> bool:
        handle = self._handle
        if handle is None:
            return False
        try:
            return bool(handle.is_ready())
        except Exception as exc:
            logger.warning("Media player readiness check failed: %s", exc)
            return False

    def _invoke(self, method: str, args: tuple) -> bool:
        if not self.is_ready():
            return False
        try:
            getattr(self._handle, method)(*args)
        except Exception as exc:
            logger.warning("Media player %s failed: %s", method, exc, exc_info=True)
            return False
        return True

    def call(self, method: str, *args: Any, retry: bool = True) -> bool:
        """Invoke ``method`` on the handle; returns True when delivered immediately."""
        if self._invoke(method, args):
            return True
        if not retry:
            logger.debug("Media player not ready for %s; not retrying", method)
            return False
        logger.debug("Media player not ready for %s; retrying in %.2fs", method, self.retry_delay)
        self.scheduler(self.retry_delay, lambda: self._retry(method, args))
        return False

    def _retry(self, method: str, args: tuple) -> None:
        if self._invoke(method, args):
            return
        logger.info("Media player still unavailable for %s; giving up", method)
        if self.on_give_up is not None:
            self.on_give_up(method)


__all__ = ["MediaPlayerHandle", "PlayerHandleSlot", "Scheduler", "timer_scheduler"]
