"""Zigbee device model as exposed by the device registry."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DeviceType(str, Enum):
    """Zigbee logical device types."""

    COORDINATOR = "Coordinator"
    ROUTER = "Router"
    END_DEVICE = "EndDevice"


class PowerSource(str, Enum):
    """Power sources reported by the Zigbee basic cluster."""

    UNKNOWN = "Unknown"
    MAINS_SINGLE_PHASE = "Mains (single phase)"
    MAINS_THREE_PHASE = "Mains (3 phase)"
    BATTERY = "Battery"
    DC = "DC Source"


@dataclass
class Device:
    """A device known to the gateway.

    ``last_seen`` is an epoch timestamp in milliseconds. ``options`` holds the
    per-device configuration overrides (friendly name, availability timeout).
    Raw cluster attributes are keyed by ``(endpoint, cluster, attribute)``.
    """

    ieee_addr: str
    friendly_name: str
    type: str = DeviceType.END_DEVICE.value
    power_source: str | None = None
    vendor: str | None = None
    model: str | None = None
    last_seen: int | None = None
    options: dict[str, Any] = field(default_factory=dict)
    attributes: dict[tuple[int, str, str], Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.friendly_name

    def is_device(self) -> bool:
        return self.type != DeviceType.COORDINATOR.value

    def read_attribute(self, cluster: str, attribute: str, endpoint: int = 1) -> Any:
        return self.attributes.get((endpoint, cluster, attribute))

    def set_attribute(self, cluster: str, attribute: str, value: Any, endpoint: int = 1) -> None:
        self.attributes[(endpoint, cluster, attribute)] = value
