"""Events carried by the in-process event bus."""

from dataclasses import dataclass, field
from typing import Any

from zigbridge.models.device import Device


@dataclass(frozen=True)
class DeviceJoined:
    """A device joined the network (or was first seen by the registry)."""

    device: Device


@dataclass(frozen=True)
class DeviceLeft:
    """A device left the network."""

    ieee_addr: str
    name: str = ""


@dataclass(frozen=True)
class DeviceState:
    """A device published new state that should be relayed to callbacks.

    ``payload`` carries the device block (``device.model`` etc.) and the
    verified feedback record under ``system``.
    """

    topic: str
    payload: dict[str, Any]
    callback_url: str = ""


@dataclass(frozen=True)
class SystemFeedback:
    """Feedback fields for one device; ``fields["ieeeAddr"]`` names it."""

    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def ieee_addr(self) -> str | None:
        return self.fields.get("ieeeAddr")


@dataclass(frozen=True)
class MQTTMessage:
    """Outbound command to publish on the broker."""

    topic: str
    message: str
