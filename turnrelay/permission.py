"""Server-side TURN permissions and the lifetime timer they share."""

from __future__ import annotations

import asyncio
import ipaddress
from typing import Callable, Optional

Address = tuple[str, int]

PERMISSION_TIMEOUT = 5 * 60.0


def _ip_fingerprint(addr: Address) -> str:
    return str(ipaddress.ip_address(addr[0]))


class _LifetimeTimer:
    """Fires a callback once a lifetime has elapsed; the lifetime can be reset."""

    def __init__(self, on_expire: Callable[[], None]) -> None:
        self._on_expire = on_expire
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wake: Optional[asyncio.Event] = None
        self._deadline = 0.0
        self._expired = False

    def start(self, lifetime: float) -> None:
        self._loop = asyncio.get_running_loop()
        self._deadline = self._loop.time() + lifetime
        self._wake = asyncio.Event()
        self._expired = False
        self._task = self._loop.create_task(self._run())

    async def _run(self) -> None:
        try:
            while True:
                delay = self._deadline - self._loop.time()
                if delay <= 0:
                    break
                self._wake.clear()
                try:
                    await asyncio.wait_for(self._wake.wait(), delay)
                except asyncio.TimeoutError:
                    pass
            self._on_expire()
        finally:
            self._expired = True

    def refresh(self, lifetime: float) -> None:
        if self._task is None:
            return
        self._deadline = self._loop.time() + lifetime
        self._wake.set()

    def stop(self) -> bool:
        """Stop the timer; return True if it had already expired or never ran."""
        expired = self._task is None or self._expired
        task, self._task = self._task, None
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if task is not current:
                task.cancel()
        return expired


class Permission:
    """A TURN permission for one peer IP address (RFC 5766, section 2.3)."""

    def __init__(self, addr: Address) -> None:
        self.addr = addr
        self.permissions: Optional[dict[str, Permission]] = None
        self._timer = _LifetimeTimer(self._expire)

    def __repr__(self) -> str:
        return f"Permission(addr={self.addr!r})"

    def _expire(self) -> None:
        if self.permissions is not None:
            self.permissions.pop(_ip_fingerprint(self.addr), None)

    def start(self, lifetime: float) -> None:
        """Start the lifetime timer; on expiry the permission leaves its map."""
        self._timer.start(lifetime)

    def stop(self) -> bool:
        """Stop the timer; return True if it had already expired or never started."""
        return self._timer.stop()

    def refresh(self, lifetime: float) -> None:
        """Reset the remaining lifetime to ``lifetime`` seconds from now."""
        self._timer.refresh(lifetime)