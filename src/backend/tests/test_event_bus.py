"""Tests for the in-process EventBus."""

import pytest

from zigbridge.models.events import DeviceLeft
from zigbridge.services.event_bus import EventBus


class Owner:
    pass


@pytest.mark.asyncio
async def test_listeners_run_in_registration_order():
    bus = EventBus()
    calls = []

    async def first(event):
        calls.append(("first", event.ieee_addr))

    async def second(event):
        calls.append(("second", event.ieee_addr))

    bus.on_device_left(Owner(), first)
    bus.on_device_left(Owner(), second)
    await bus.emit_device_left(DeviceLeft(ieee_addr="0x01"))
    await bus.emit_device_left(DeviceLeft(ieee_addr="0x02"))

    assert calls == [("first", "0x01"), ("second", "0x01"), ("first", "0x02"), ("second", "0x02")]


@pytest.mark.asyncio
async def test_failing_listener_does_not_stop_others():
    bus = EventBus()
    seen = []

    async def broken(event):
        raise RuntimeError("boom")

    async def healthy(event):
        seen.append(event)

    bus.on_device_left(Owner(), broken)
    bus.on_device_left(Owner(), healthy)
    await bus.emit_device_left(DeviceLeft(ieee_addr="0x01"))

    assert len(seen) == 1


@pytest.mark.asyncio
async def test_remove_listeners_by_owner():
    bus = EventBus()
    keep, drop = Owner(), Owner()
    seen = []

    async def record(event):
        seen.append(event)

    bus.on_device_left(keep, record)
    bus.on_device_left(drop, record)
    bus.on_system_feedback(drop, record)
    bus.remove_listeners(drop)

    assert bus.listener_count(EventBus.DEVICE_LEFT) == 1
    assert bus.listener_count(EventBus.SYSTEM_FEEDBACK) == 0
    await bus.emit_device_left(DeviceLeft(ieee_addr="0x01"))
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_emit_without_listeners():
    await EventBus().emit_device_left(DeviceLeft(ieee_addr="0x01"))
