"""Client-side channel bindings and the manager that numbers them."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from turnrelay.permission import Address

MIN_CHANNEL_NUMBER = 0x4000
MAX_CHANNEL_NUMBER = 0x7FFF


class BindingState(Enum):
    """Progress of a channel binding."""

    IDLE = "idle"
    REQUEST = "request"
    READY = "ready"
    REFRESH = "refresh"
    FAILED = "failed"


@dataclass
class Binding:
    """A channel number bound to a peer address."""

    number: int
    addr: Address
    state: BindingState = BindingState.IDLE
    refreshed_at: float = field(default_factory=time.monotonic)


class BindingManager:
    """Bindings indexed both by peer address and by channel number."""

    def __init__(self) -> None:
        self._chan_map: dict[int, Address] = {}
        self._addr_map: dict[Address, Binding] = {}
        self.next_number = MIN_CHANNEL_NUMBER

    def assign_channel_number(self) -> int:
        """Return the next channel number, wrapping back to the minimum."""
        n = self.next_number
        self.next_number = MIN_CHANNEL_NUMBER if n == MAX_CHANNEL_NUMBER else n + 1
        return n

    def create(self, addr: Address) -> Binding:
        """Create a binding for ``addr`` with a newly assigned channel number."""
        b = Binding(number=self.assign_channel_number(), addr=addr)
        self._chan_map[b.number] = addr
        self._addr_map[addr] = b
        return b

    def find_by_addr(self, addr: Address) -> Optional[Binding]:
        """Return the binding for ``addr``, or None."""
        return self._addr_map.get(addr)

    def find_by_number(self, number: int) -> Optional[Binding]:
        """Return the binding for channel ``number``, or None."""
        addr = self._chan_map.get(number)
        return None if addr is None else self._addr_map.get(addr)

    def delete_by_addr(self, addr: Address) -> bool:
        """Delete the binding for ``addr``; return whether it existed."""
        b = self._addr_map.pop(addr, None)
        if b is None:
            return False
        self._chan_map.pop(b.number, None)
        return True

    def delete_by_number(self, number: int) -> bool:
        """Delete the binding for channel ``number``; return whether it existed."""
        addr = self._chan_map.pop(number, None)
        if addr is None:
            return False
        self._addr_map.pop(addr, None)
        return True

    def __len__(self) -> int:
        return len(self._addr_map)