"""A timer that calls a handler at a fixed interval until stopped."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

log = logging.getLogger(__name__)


class TimerIdRefresh(Enum):
    """Which refresh a periodic timer drives."""

    ALLOC = "alloc"
    PERMS = "perms"


class PeriodicTimer:
    """Calls ``await handler.on_timeout(id)`` every ``interval`` seconds."""

    def __init__(self, timer_id: TimerIdRefresh = TimerIdRefresh.ALLOC, interval: float = 0.0) -> None:
        self.id = timer_id
        self.interval = interval
        self._close: Optional[asyncio.Event] = None

    def start(self, timeout_handler: Any) -> bool:
        """Start the timer; return False if it is already running."""
        if self._close is not None:
            return False
        close = asyncio.Event()
        asyncio.get_running_loop().create_task(self._run(timeout_handler, close))
        self._close = close
        return True

    async def _run(self, handler: Any, close: asyncio.Event) -> None:
        while True:
            try:
                await asyncio.wait_for(close.wait(), self.interval)
                return
            except asyncio.TimeoutError:
                pass
            try:
                await handler.on_timeout(self.id)
            except Exception:  # noqa: BLE001
                log.exception("timeout handler for %s failed", self.id)

    def stop(self) -> None:
        """Stop the timer."""
        close, self._close = self._close, None
        if close is not None:
            close.set()

    def is_running(self) -> bool:
        """Return whether the timer is running."""
        return self._close is not None