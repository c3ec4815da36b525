"""Server-side TURN channel bindings."""

from __future__ import annotations

import logging
from typing import Optional

from turnrelay.permission import Address, _LifetimeTimer

log = logging.getLogger(__name__)


class ChannelBind:
    """A TURN channel bound to a peer address (RFC 5766, section 2.5)."""

    def __init__(self, number: int, peer: Address) -> None:
        self.number = number
        self.peer = peer
        self.channel_bindings: Optional[dict[int, ChannelBind]] = None
        self._timer = _LifetimeTimer(self._expire)

    def __repr__(self) -> str:
        return f"ChannelBind(number={self.number:#x}, peer={self.peer!r})"

    def _expire(self) -> None:
        if self.channel_bindings is not None:
            if self.channel_bindings.pop(self.number, None) is None:
                log.error("Failed to remove ChannelBind for %d", self.number)

    def start(self, lifetime: float) -> None:
        """Start the lifetime timer; on expiry the binding leaves its map."""
        self._timer.start(lifetime)

    def stop(self) -> bool:
        """Stop the timer; return True if it had already expired or never started."""
        return self._timer.stop()

    def refresh(self, lifetime: float) -> None:
        """Reset the remaining lifetime to ``lifetime`` seconds from now."""
        self._timer.refresh(lifetime)