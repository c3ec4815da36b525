"""The five-tuple that identifies a client's allocation on the server."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

Address = tuple[str, int]

_ANY_ADDR: Address = ("0.0.0.0", 0)


class Protocol(Enum):
    """Transport protocol between a client and the server."""

    UDP = "UDP"
    TCP = "TCP"

    def __str__(self) -> str:
        return self.value


def _format_addr(addr: Address) -> str:
    host, port = addr
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass(frozen=True)
class FiveTuple:
    """Client address, server address and transport protocol of one stream."""

    protocol: Protocol = Protocol.UDP
    src_addr: Address = _ANY_ADDR
    dst_addr: Address = _ANY_ADDR

    def __str__(self) -> str:
        return f"{self.protocol}_{_format_addr(self.src_addr)}_{_format_addr(self.dst_addr)}"

    def fingerprint(self) -> str:
        """Return the string that identifies this five-tuple."""
        return str(self)