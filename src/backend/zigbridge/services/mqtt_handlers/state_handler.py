"""Device state handler (``<base>/<name>``).

Refreshes the registry entry (last seen, on/off and metering attributes) and
emits a :class:`DeviceState` event carrying the verified feedback record.
"""

from typing import Any

import structlog

from zigbridge.models.events import DeviceState
from zigbridge.services.device_registry import DeviceNotFoundError, DeviceRegistry, now_ms
from zigbridge.services.event_bus import EventBus
from zigbridge.services.feedback_store import FeedbackStore

logger = structlog.get_logger()

DEFAULT_EVENT_TYPE = "device_state"


class StateHandler:

    def __init__(self, registry: DeviceRegistry, feedback: FeedbackStore, bus: EventBus):
        self.registry = registry
        self.feedback = feedback
        self.bus = bus

    async def __call__(self, topic: str, payload: Any) -> None:
        if not isinstance(payload, dict):
            return

        parts = topic.split("/")
        if len(parts) != 2 or parts[1] == "bridge":
            return

        try:
            device = self.registry.resolve(parts[1])
        except DeviceNotFoundError:
            logger.debug("State for unknown device", topic=topic)
            return

        last_seen = payload.get("last_seen")
        self.registry.touch(device.ieee_addr, last_seen if isinstance(last_seen, int) else now_ms())
        if "state" in payload:
            device.set_attribute("genOnOff", "onOff", 1 if payload["state"] == "ON" else 0)
        if "currentSummDelivered" in payload:
            device.set_attribute("seMetering", "currentSummDelivered", payload["currentSummDelivered"])

        system = self.feedback.verify(device.ieee_addr)
        event_payload = {
            "type": DEFAULT_EVENT_TYPE,
            **payload,
            "device": {
                "ieeeAddr": device.ieee_addr,
                "friendlyName": device.friendly_name,
                "model": device.model,
                "vendor": device.vendor,
            },
            "system": system,
        }
        await self.bus.emit_device_state(
            DeviceState(
                topic=device.friendly_name,
                payload=event_payload,
                callback_url=system.get("callback_url") or "",
            )
        )
