"""TURN allocations: permissions and channel bindings tied to a five-tuple."""

from __future__ import annotations

import ipaddress
import logging
from typing import Any, Optional

from turnrelay.channel_bind import ChannelBind
from turnrelay.five_tuple import FiveTuple, Protocol
from turnrelay.permission import PERMISSION_TIMEOUT, Address, Permission, _LifetimeTimer

log = logging.getLogger(__name__)


class AllocationClosedError(RuntimeError):
    """Raised when closing an allocation that is already closed."""


class ChannelConflictError(ValueError):
    """Raised when a channel number or peer is already bound to something else."""


def _ip_fingerprint(addr: Address) -> str:
    return str(ipaddress.ip_address(addr[0]))


class Allocation:
    """A relayed transport address on the server, owned by one five-tuple."""

    def __init__(
        self,
        turn_socket: Any,
        relay_socket: Any,
        relay_addr: Address,
        five_tuple: FiveTuple,
        allocations: Optional[dict[str, Allocation]] = None,
    ) -> None:
        self.protocol = Protocol.UDP
        self.turn_socket = turn_socket
        self.relay_socket = relay_socket
        self.relay_addr = relay_addr
        self.five_tuple = five_tuple
        self.allocations = allocations
        self.permissions: dict[str, Permission] = {}
        self.channel_bindings: dict[int, ChannelBind] = {}
        self.closed = False
        self._timer = _LifetimeTimer(self._expire)

    def __repr__(self) -> str:
        return f"Allocation(five_tuple={self.five_tuple}, relay_addr={self.relay_addr!r})"

    def has_permission(self, addr: Address) -> bool:
        """Return whether a permission exists for the IP of ``addr``."""
        return _ip_fingerprint(addr) in self.permissions

    def add_permission(self, p: Permission) -> None:
        """Install a permission, or refresh the one already held for its IP."""
        fingerprint = _ip_fingerprint(p.addr)
        existing = self.permissions.get(fingerprint)
        if existing is not None:
            existing.refresh(PERMISSION_TIMEOUT)
            return
        p.permissions = self.permissions
        p.start(PERMISSION_TIMEOUT)
        self.permissions[fingerprint] = p

    def remove_permission(self, addr: Address) -> bool:
        """Remove the permission for the IP of ``addr``; return whether one existed."""
        return self.permissions.pop(_ip_fingerprint(addr), None) is not None

    def add_channel_bind(self, c: ChannelBind, lifetime: float) -> None:
        """Bind a channel, or refresh an existing binding, and refresh its permission."""
        bound_addr = self.get_channel_addr(c.number)
        if bound_addr is not None and bound_addr != c.peer:
            raise ChannelConflictError("you cannot use the same channel number with different peer")
        bound_number = self.get_channel_number(c.peer)
        if bound_number is not None and bound_number != c.number:
            raise ChannelConflictError("you cannot use the same channel number with different peer")

        existing = self.channel_bindings.get(c.number)
        if existing is not None:
            existing.refresh(lifetime)
            self.add_permission(Permission(existing.peer))
            return

        c.channel_bindings = self.channel_bindings
        c.start(lifetime)
        self.channel_bindings[c.number] = c
        self.add_permission(Permission(c.peer))

    def remove_channel_bind(self, number: int) -> bool:
        """Remove a channel binding by number; return whether one existed."""
        return self.channel_bindings.pop(number, None) is not None

    def get_channel_addr(self, number: int) -> Optional[Address]:
        """Return the peer bound to ``number``, or None."""
        cb = self.channel_bindings.get(number)
        return cb.peer if cb is not None else None

    def get_channel_number(self, addr: Address) -> Optional[int]:
        """Return the channel number bound to ``addr``, or None."""
        return next((cb.number for cb in self.channel_bindings.values() if cb.peer == addr), None)

    def close(self) -> None:
        """Close the allocation and stop all of its timers."""
        if self.closed:
            raise AllocationClosedError("allocation is already closed")
        self.closed = True
        self.stop()
        for p in self.permissions.values():
            p.stop()
        for c in self.channel_bindings.values():
            c.stop()
        log.debug("allocation with %s closed!", self.five_tuple)

    def _expire(self) -> None:
        if self.allocations is None:
            return
        a = self.allocations.pop(self.five_tuple.fingerprint(), None)
        if a is not None:
            try:
                a.close()
            except AllocationClosedError:
                pass

    def start(self, lifetime: float) -> None:
        """Start the lifetime timer; on expiry the allocation is removed and closed."""
        self._timer.start(lifetime)

    def stop(self) -> bool:
        """Stop the lifetime timer; return True if it had already expired or never started."""
        return self._timer.stop()

    def refresh(self, lifetime: float) -> None:
        """Reset the allocation's remaining lifetime to ``lifetime`` seconds from now."""
        self._timer.refresh(lifetime)