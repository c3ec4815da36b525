"""Holds the active allocations of a TURN server and the port reservations."""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Any, Optional

from turnrelay.allocation import Allocation
from turnrelay.five_tuple import FiveTuple
from turnrelay.permission import Address

log = logging.getLogger(__name__)

RESERVATION_TIMEOUT = 30.0


class LifetimeZeroError(ValueError):
    """Raised when an allocation is requested with a zero lifetime."""


class DuplicateFiveTupleError(ValueError):
    """Raised when an allocation already exists for a five-tuple."""


class _UdpRelaySocket(asyncio.DatagramProtocol):
    """A UDP socket with awaitable receive, used as a relay socket."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._transport: Optional[asyncio.DatagramTransport] = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport  # type: ignore[assignment]

    def datagram_received(self, data: bytes, addr: Any) -> None:
        self._queue.put_nowait((data, (addr[0], addr[1])))

    def error_received(self, exc: Exception) -> None:
        log.debug("relay socket error: %s", exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self._queue.put_nowait(None)

    async def recv_from(self) -> tuple[bytes, Address]:
        """Wait for the next datagram and return it with its source address."""
        item = await self._queue.get()
        if item is None:
            self._queue.put_nowait(None)
            raise ConnectionError("relay socket closed")
        return item

    async def send_to(self, data: bytes, addr: Address) -> int:
        """Send ``data`` to ``addr`` and return the number of bytes sent."""
        if self._transport is None or self._transport.is_closing():
            raise ConnectionError("relay socket closed")
        self._transport.sendto(data, addr)
        return len(data)

    def local_addr(self) -> Address:
        """Return the address the socket is bound to."""
        sockname = self._transport.get_extra_info("sockname")
        return (sockname[0], sockname[1])

    def close(self) -> None:
        """Close the socket."""
        if self._transport is not None:
            self._transport.close()


class RelayAddressGenerator:
    """Opens relay sockets bound to a fixed local address."""

    def __init__(self, address: str = "0.0.0.0") -> None:
        self.address = address

    async def allocate_conn(self, use_ipv4: bool, requested_port: int) -> tuple[_UdpRelaySocket, Address]:
        """Bind a UDP socket on ``requested_port`` (0 for any) and return it with its address."""
        loop = asyncio.get_running_loop()
        family = socket.AF_INET if use_ipv4 else socket.AF_INET6
        _, protocol = await loop.create_datagram_endpoint(
            _UdpRelaySocket,
            local_addr=(self.address, requested_port),
            family=family,
        )
        return protocol, protocol.local_addr()


def _close_socket(sock: Any) -> None:
    close = getattr(sock, "close", None)
    if callable(close):
        close()


class Manager:
    """Keeps the active allocations, keyed by five-tuple fingerprint."""

    def __init__(self, relay_addr_generator: RelayAddressGenerator) -> None:
        self.relay_addr_generator = relay_addr_generator
        self._allocations: dict[str, Allocation] = {}
        self._reservations: dict[str, int] = {}
        self._reservation_handles: dict[str, asyncio.TimerHandle] = {}

    def close(self) -> None:
        """Close every allocation held by the manager."""
        for handle in self._reservation_handles.values():
            handle.cancel()
        self._reservation_handles.clear()
        for a in list(self._allocations.values()):
            a.close()
            _close_socket(a.relay_socket)

    def get_allocation(self, five_tuple: FiveTuple) -> Optional[Allocation]:
        """Return the allocation for ``five_tuple``, or None."""
        return self._allocations.get(five_tuple.fingerprint())

    async def create_allocation(
        self,
        five_tuple: FiveTuple,
        turn_socket: Any,
        requested_port: int,
        lifetime: float,
    ) -> Allocation:
        """Create an allocation with a fresh relay socket and start its lifetime."""
        if lifetime == 0:
            raise LifetimeZeroError("allocations must not be created with a lifetime of 0")
        if self.get_allocation(five_tuple) is not None:
            raise DuplicateFiveTupleError("allocation attempt created with duplicate FiveTuple")

        relay_socket, relay_addr = await self.relay_addr_generator.allocate_conn(True, requested_port)
        a = Allocation(turn_socket, relay_socket, relay_addr, five_tuple, allocations=self._allocations)
        log.debug("listening on relay addr: %s", relay_addr)
        a.start(lifetime)
        self._allocations[five_tuple.fingerprint()] = a
        return a

    def delete_allocation(self, five_tuple: FiveTuple) -> None:
        """Remove and close the allocation for ``five_tuple`` if it exists."""
        a = self._allocations.pop(five_tuple.fingerprint(), None)
        if a is None:
            return
        try:
            a.close()
        except Exception as err:  # noqa: BLE001
            log.error("Failed to close allocation: %s", err)
        _close_socket(a.relay_socket)

    def create_reservation(self, reservation_token: str, port: int) -> None:
        """Store ``port`` under ``reservation_token`` for a limited time."""
        loop = asyncio.get_running_loop()
        old = self._reservation_handles.pop(reservation_token, None)
        if old is not None:
            old.cancel()
        self._reservation_handles[reservation_token] = loop.call_later(
            RESERVATION_TIMEOUT, self._expire_reservation, reservation_token
        )
        self._reservations[reservation_token] = port

    def _expire_reservation(self, reservation_token: str) -> None:
        self._reservation_handles.pop(reservation_token, None)
        self._reservations.pop(reservation_token, None)

    def get_reservation(self, reservation_token: str) -> Optional[int]:
        """Return the port reserved under ``reservation_token``, or None."""
        return self._reservations.get(reservation_token)

    async def get_random_even_port(self) -> int:
        """Return a port that the relay address generator can currently bind."""
        sock, addr = await self.relay_addr_generator.allocate_conn(True, 0)
        _close_socket(sock)
        return addr[1]