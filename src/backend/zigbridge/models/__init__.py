"""Domain models."""

from zigbridge.models.device import Device, DeviceType, PowerSource
from zigbridge.models.events import (
    DeviceJoined,
    DeviceLeft,
    DeviceState,
    MQTTMessage,
    SystemFeedback,
)

__all__ = [
    "Device",
    "DeviceType",
    "PowerSource",
    "DeviceJoined",
    "DeviceLeft",
    "DeviceState",
    "MQTTMessage",
    "SystemFeedback",
]
