"""Bridge topic handler: device list and join/leave events.

Topics:
- ``<base>/bridge/devices``: retained list of every device on the network
- ``<base>/bridge/event``: ``{"type": "device_joined" | "device_leave", "data": {...}}``
"""

from typing import Any

import structlog

from zigbridge.models.device import Device
from zigbridge.models.events import DeviceJoined, DeviceLeft
from zigbridge.services.device_registry import DeviceRegistry
from zigbridge.services.event_bus import EventBus

logger = structlog.get_logger()


def device_from_bridge(entry: dict[str, Any]) -> Device:
    definition = entry.get("definition") or {}
    last_seen = entry.get("last_seen")
    return Device(
        ieee_addr=entry["ieee_address"],
        friendly_name=entry.get("friendly_name") or entry["ieee_address"],
        type=entry.get("type") or "EndDevice",
        power_source=entry.get("power_source"),
        vendor=definition.get("vendor"),
        model=definition.get("model"),
        last_seen=last_seen if isinstance(last_seen, int) else None,
    )


class BridgeHandler:
    """Keeps the registry in step with the bridge and emits lifecycle events."""

    def __init__(self, registry: DeviceRegistry, bus: EventBus):
        self.registry = registry
        self.bus = bus

    async def handle_devices(self, topic: str, payload: Any) -> None:
        if not isinstance(payload, list):
            logger.warning("Invalid bridge device list", topic=topic)
            return

        devices = []
        for entry in payload:
            try:
                devices.append(device_from_bridge(entry))
            except (KeyError, TypeError) as e:
                logger.warning("Skipping malformed bridge device", error=str(e))

        joined, left = self.registry.replace_all(devices)
        for device in left:
            await self.bus.emit_device_left(DeviceLeft(ieee_addr=device.ieee_addr, name=device.name))
        for device in joined:
            await self.bus.emit_device_joined(DeviceJoined(device=device))

    async def handle_event(self, topic: str, payload: Any) -> None:
        if not isinstance(payload, dict):
            logger.warning("Invalid bridge event", topic=topic)
            return

        event_type = payload.get("type")
        data = payload.get("data") or {}
        ieee_addr = data.get("ieee_address")
        if not ieee_addr:
            logger.debug("Bridge event without address", type=event_type)
            return

        if event_type == "device_joined":
            device = self.registry.get(ieee_addr) or Device(
                ieee_addr=ieee_addr,
                friendly_name=data.get("friendly_name") or ieee_addr,
            )
            self.registry.upsert(device)
            logger.info("Device joined", ieee_addr=ieee_addr, name=device.name)
            await self.bus.emit_device_joined(DeviceJoined(device=device))
        elif event_type == "device_leave":
            removed = self.registry.remove(ieee_addr)
            name = data.get("friendly_name") or (removed.name if removed else "")
            logger.info("Device left", ieee_addr=ieee_addr, name=name)
            await self.bus.emit_device_left(DeviceLeft(ieee_addr=ieee_addr, name=name))
