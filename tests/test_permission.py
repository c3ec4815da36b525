import asyncio

import pytest

from turnrelay.permission import Permission

ADDR = ("127.0.0.1", 3478)


def _registered(addr=ADDR):
    registry = {}
    p = Permission(addr)
    p.permissions = registry
    registry[addr[0]] = p
    return registry, p


def test_stop_without_start_reports_expired():
    assert Permission(ADDR).stop() is True


@pytest.mark.asyncio
async def test_expiry_removes_from_map():
    registry, p = _registered()
    p.start(0.02)
    await asyncio.sleep(0.1)
    assert ADDR[0] not in registry
    assert p.stop() is True


@pytest.mark.asyncio
async def test_stop_before_expiry_keeps_entry():
    registry, p = _registered()
    p.start(0.05)
    assert p.stop() is False
    await asyncio.sleep(0.15)
    assert registry[ADDR[0]] is p


@pytest.mark.asyncio
async def test_refresh_extends_lifetime():
    registry, p = _registered()
    p.start(0.08)
    await asyncio.sleep(0.05)
    p.refresh(0.2)
    await asyncio.sleep(0.08)
    assert ADDR[0] in registry
    await asyncio.sleep(0.2)
    assert ADDR[0] not in registry


@pytest.mark.asyncio
async def test_refresh_can_shorten_lifetime():
    registry, p = _registered()
    p.start(600)
    p.refresh(0)
    await asyncio.sleep(0.05)
    assert ADDR[0] not in registry


@pytest.mark.asyncio
async def test_expiry_normalises_ip_key():
    registry, p = _registered(("::0001", 3478))
    registry.clear()
    registry["::1"] = p
    p.start(0.01)
    await asyncio.sleep(0.08)
    assert registry == {}