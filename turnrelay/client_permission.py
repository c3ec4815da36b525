"""Client-side record of which peer IPs have been permitted."""

from __future__ import annotations

import ipaddress
from enum import Enum
from typing import Optional

from turnrelay.permission import Address


class PermState(Enum):
    """Whether a CreatePermission has been issued for a peer IP."""

    IDLE = "idle"
    PERMITTED = "permitted"


def _ip_key(addr: Address) -> str:
    return str(ipaddress.ip_address(addr[0]))


class PermissionMap:
    """Permission states keyed by peer IP; the port is ignored."""

    def __init__(self) -> None:
        self._perm_map: dict[str, PermState] = {}

    def insert(self, addr: Address, state: PermState = PermState.IDLE) -> None:
        """Set the permission state for the IP of ``addr``."""
        self._perm_map[_ip_key(addr)] = state

    def find(self, addr: Address) -> Optional[PermState]:
        """Return the permission state for the IP of ``addr``, or None."""
        return self._perm_map.get(_ip_key(addr))

    def delete(self, addr: Address) -> None:
        """Forget the permission for the IP of ``addr``."""
        self._perm_map.pop(_ip_key(addr), None)

    def addrs(self) -> list[Address]:
        """Return the permitted IPs as addresses with port 0."""
        return [(ip, 0) for ip in self._perm_map]