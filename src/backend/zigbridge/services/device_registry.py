"""In-memory registry of devices known to the Zigbee network.

The registry is fed by the MQTT bridge handlers (device list, join/leave
events, state messages) and is the source the feedback store syncs from.
Per-device overrides come from ``devices.<ieeeAddr>`` in the configuration
store and are re-read every time a device is returned.
"""

import time
from typing import Iterable

import structlog

from zigbridge.core.settings_store import SettingsStore
from zigbridge.models.device import Device

logger = structlog.get_logger()


class DeviceNotFoundError(Exception):
    """Raised when a device cannot be resolved by address or name."""
    pass


def now_ms() -> int:
    return int(time.time() * 1000)


class DeviceRegistry:
    """Devices keyed by IEEE address, in insertion order."""

    def __init__(self, store: SettingsStore | None = None):
        self.store = store
        self._devices: dict[str, Device] = {}

    def _with_options(self, device: Device) -> Device:
        if self.store is not None:
            options = self.store.get_path(["devices", device.ieee_addr], {}) or {}
            if isinstance(options, dict):
                device.options = options
        return device

    def devices(self, include_coordinator: bool = True) -> list[Device]:
        return [
            self._with_options(d)
            for d in self._devices.values()
            if include_coordinator or d.is_device()
        ]

    def get(self, ieee_addr: str) -> Device | None:
        device = self._devices.get(ieee_addr)
        return self._with_options(device) if device else None

    def resolve(self, key: str) -> Device:
        """Find a device by IEEE address or friendly name."""
        device = self._devices.get(key)
        if device is None:
            device = next((d for d in self._devices.values() if d.friendly_name == key), None)
        if device is None:
            raise DeviceNotFoundError(f"Unknown device: {key}")
        return self._with_options(device)

    def upsert(self, device: Device) -> bool:
        """Add or replace a device; return True when the address is new.

        Cached attributes and ``last_seen`` survive a replacement.
        """
        existing = self._devices.get(device.ieee_addr)
        if existing is not None:
            if not device.attributes:
                device.attributes = existing.attributes
            if device.last_seen is None:
                device.last_seen = existing.last_seen
        self._devices[device.ieee_addr] = device
        return existing is None

    def remove(self, ieee_addr: str) -> Device | None:
        return self._devices.pop(ieee_addr, None)

    def addresses(self) -> set[str]:
        return set(self._devices)

    def replace_all(self, devices: Iterable[Device]) -> tuple[list[Device], list[Device]]:
        """Replace registry contents; return ``(joined, left)`` devices."""
        incoming = {d.ieee_addr: d for d in devices}
        left = [d for addr, d in self._devices.items() if addr not in incoming]
        joined = []
        for addr in list(self._devices):
            if addr not in incoming:
                del self._devices[addr]
        for device in incoming.values():
            if self.upsert(device):
                joined.append(device)
        logger.info("Device list refreshed", total=len(self._devices), joined=len(joined), left=len(left))
        return joined, left

    def touch(self, ieee_addr: str, timestamp: int | None = None) -> None:
        device = self._devices.get(ieee_addr)
        if device is not None:
            device.last_seen = timestamp if timestamp is not None else now_ms()
