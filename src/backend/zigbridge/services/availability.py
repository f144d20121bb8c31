"""Online/offline evaluation from a device's last-seen timestamp."""

from typing import Callable

from zigbridge.core.settings_store import SettingsStore
from zigbridge.models.device import Device, DeviceType, PowerSource
from zigbridge.services.device_registry import now_ms

ACTIVE = "active"
PASSIVE = "passive"

# Minutes
DEFAULT_TIMEOUTS = {ACTIVE: 10, PASSIVE: 1500}


def minutes(value: float) -> int:
    return int(value * 60 * 1000)


class AvailabilityEvaluator:
    """Pure, uncached availability check.

    Timeout resolution: the device's own ``availability.timeout`` option, then
    ``availability.<role>.timeout`` from the configuration store, then the
    built-in role default. All timeouts are configured in minutes.
    """

    def __init__(self, store: SettingsStore, clock: Callable[[], int] = now_ms):
        self.store = store
        self.clock = clock

    @staticmethod
    def is_active(device: Device) -> bool:
        return (
            device.type == DeviceType.ROUTER.value and device.power_source != PowerSource.BATTERY.value
        ) or device.power_source == PowerSource.MAINS_SINGLE_PHASE.value

    def role(self, device: Device) -> str:
        return ACTIVE if self.is_active(device) else PASSIVE

    def timeout_ms(self, device: Device) -> int:
        availability = device.options.get("availability")
        if isinstance(availability, dict) and availability.get("timeout") is not None:
            return minutes(availability["timeout"])

        key = self.role(device)
        value = self.store.get_path(["availability", key, "timeout"])
        if value is None:
            value = DEFAULT_TIMEOUTS[key]
        return minutes(value)

    def is_available(self, device: Device) -> bool:
        now = self.clock()
        last_seen = device.last_seen if device.last_seen is not None else now
        return now - last_seen < self.timeout_ms(device)
