import asyncio
import random

import pytest

from turnrelay.allocation import AllocationClosedError
from turnrelay.allocation_manager import (
    DuplicateFiveTupleError,
    LifetimeZeroError,
    Manager,
    RelayAddressGenerator,
)
from turnrelay.five_tuple import FiveTuple

DEFAULT_LIFETIME = 600.0


def new_test_manager() -> Manager:
    return Manager(RelayAddressGenerator("127.0.0.1"))


def random_five_tuple() -> FiveTuple:
    return FiveTuple(
        src_addr=("0.0.0.0", random.randint(1, 65535)),
        dst_addr=("0.0.0.0", random.randint(1, 65535)),
    )


TURN_SOCKET = object()


@pytest.mark.asyncio
async def test_create_allocation_duplicate_five_tuple():
    m = new_test_manager()
    five_tuple = random_five_tuple()
    await m.create_allocation(five_tuple, TURN_SOCKET, 0, DEFAULT_LIFETIME)
    with pytest.raises(DuplicateFiveTupleError):
        await m.create_allocation(five_tuple, TURN_SOCKET, 0, DEFAULT_LIFETIME)
    m.close()


@pytest.mark.asyncio
async def test_create_allocation_zero_lifetime():
    m = new_test_manager()
    with pytest.raises(LifetimeZeroError):
        await m.create_allocation(random_five_tuple(), TURN_SOCKET, 0, 0)
    assert m.get_allocation(random_five_tuple()) is None


@pytest.mark.asyncio
async def test_delete_allocation():
    m = new_test_manager()
    five_tuple = random_five_tuple()
    a = await m.create_allocation(five_tuple, TURN_SOCKET, 0, DEFAULT_LIFETIME)
    assert m.get_allocation(five_tuple) is a
    m.delete_allocation(five_tuple)
    assert m.get_allocation(five_tuple) is None
    with pytest.raises(AllocationClosedError):
        a.close()


@pytest.mark.asyncio
async def test_allocation_relay_address_is_bound():
    m = new_test_manager()
    a = await m.create_allocation(random_five_tuple(), TURN_SOCKET, 0, DEFAULT_LIFETIME)
    host, port = a.relay_addr
    assert host == "127.0.0.1"
    assert port > 0
    assert a.relay_socket.local_addr() == a.relay_addr
    m.close()


@pytest.mark.asyncio
async def test_allocation_timeout():
    m = new_test_manager()
    lifetime = 0.1
    allocations = [
        await m.create_allocation(random_five_tuple(), TURN_SOCKET, 0, lifetime) for _ in range(5)
    ]

    await asyncio.sleep(lifetime + 0.1)

    for a in allocations:
        with pytest.raises(AllocationClosedError):
            a.close()
        assert m.get_allocation(a.five_tuple) is None
        a.relay_socket.close()


@pytest.mark.asyncio
async def test_manager_close():
    m = new_test_manager()
    a1 = await m.create_allocation(random_five_tuple(), TURN_SOCKET, 0, 0.1)
    a2 = await m.create_allocation(random_five_tuple(), TURN_SOCKET, 0, 0.2)

    await asyncio.sleep(0.15)
    m.close()

    for a in (a1, a2):
        with pytest.raises(AllocationClosedError):
            a.close()
    a1.relay_socket.close()


@pytest.mark.asyncio
async def test_reservations():
    m = new_test_manager()
    m.create_reservation("token", 5000)
    assert m.get_reservation("token") == 5000
    assert m.get_reservation("missing") is None
    m.close()


@pytest.mark.asyncio
async def test_get_random_even_port():
    m = new_test_manager()
    port = await m.get_random_even_port()
    assert 0 < port <= 65535