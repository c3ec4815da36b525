"""STUN client transactions with retransmission."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from turnrelay.permission import Address

log = logging.getLogger(__name__)

MAX_RTX_INTERVAL_IN_MS = 1600
MAX_RTX_COUNT = 7


class TransactionError(Exception):
    """Raised or reported when a transaction cannot produce a result."""


@dataclass
class TransactionResult:
    """The outcome of a transaction."""

    msg: Any = None
    from_addr: Address = ("0.0.0.0", 0)
    retries: int = 0
    err: Optional[Exception] = None


class Transaction:
    """One outstanding request, retransmitted until answered or given up."""

    def __init__(
        self,
        key: str,
        raw: bytes,
        to: Address,
        interval: int,
        ignore_result: bool = False,
    ) -> None:
        self.key = key
        self.raw = bytes(raw)
        self.to = to
        self.interval = interval
        self.ignore_result = ignore_result
        self.n_rtx = 0
        self._timer_task: Optional[asyncio.Task] = None
        self._result: Optional[TransactionResult] = None
        self._closed = False
        self._done = asyncio.Event()

    def __repr__(self) -> str:
        return f"Transaction(key={self.key!r}, to={self.to!r}, n_rtx={self.n_rtx})"

    def start_rtx_timer(self, conn: Any, tr_map: TransactionMap) -> None:
        """Start retransmitting through ``conn`` with exponential back-off."""
        self.stop_rtx_timer()
        self._timer_task = asyncio.get_running_loop().create_task(self._run_rtx(conn, tr_map))

    async def _run_rtx(self, conn: Any, tr_map: TransactionMap) -> None:
        while True:
            await asyncio.sleep(self.interval / 1000)
            self.n_rtx += 1
            self.interval = min(self.interval * 2, MAX_RTX_INTERVAL_IN_MS)
            if await _on_rtx_timeout(conn, tr_map, self.key, self.n_rtx):
                return

    def stop_rtx_timer(self) -> None:
        """Stop retransmitting."""
        task, self._timer_task = self._timer_task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    def write_result(self, res: TransactionResult) -> bool:
        """Deliver ``res`` to the waiter; return False if nobody can receive it."""
        if self.ignore_result or self._closed or self._result is not None:
            return False
        self._result = res
        self._done.set()
        return True

    async def wait_for_result(self) -> TransactionResult:
        """Wait for the result of the transaction."""
        if self.ignore_result:
            raise TransactionError("wait_for_result called on a transaction that ignores its result")
        await self._done.wait()
        if self._result is None:
            raise TransactionError("transaction closed")
        return self._result

    def close(self) -> None:
        """Close the transaction; a waiter without a result is woken with an error."""
        self._closed = True
        self._done.set()

    def retries(self) -> int:
        """Return the number of retransmissions made."""
        return self.n_rtx


async def _fail_transaction(tr_map: TransactionMap, key: str) -> None:
    tr = tr_map.delete(key)
    if tr is not None:
        err = TransactionError(f"all retransmissions failed {key}")
        if not tr.write_result(TransactionResult(err=err)):
            log.debug("no listener for transaction")


async def _on_rtx_timeout(conn: Any, tr_map: TransactionMap, key: str, n_rtx: int) -> bool:
    tr = tr_map.find(key)
    if tr is None:
        return True

    if n_rtx == MAX_RTX_COUNT:
        await _fail_transaction(tr_map, key)
        return True

    log.debug("retransmitting transaction %s to %s (n_rtx=%d)", key, tr.to, n_rtx)
    try:
        await conn.send_to(tr.raw, tr.to)
    except OSError:
        await _fail_transaction(tr_map, key)
        return True
    return False


class TransactionMap:
    """Outstanding transactions keyed by transaction id."""

    def __init__(self) -> None:
        self._tr_map: dict[str, Transaction] = {}

    def insert(self, key: str, tr: Transaction) -> bool:
        """Insert a transaction; always succeeds."""
        self._tr_map[key] = tr
        return True

    def find(self, key: str) -> Optional[Transaction]:
        """Return the transaction for ``key``, or None."""
        return self._tr_map.get(key)

    def delete(self, key: str) -> Optional[Transaction]:
        """Remove and return the transaction for ``key``, or None."""
        return self._tr_map.pop(key, None)

    def close_and_delete_all(self) -> None:
        """Close every transaction and empty the map."""
        for tr in self._tr_map.values():
            tr.close()
        self._tr_map.clear()

    def __len__(self) -> int:
        return len(self._tr_map)