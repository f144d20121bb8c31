"""In-process async event bus.

Producers ``await`` the ``emit_*`` methods; listeners run one after another in
registration order, so a single producer (the MQTT listener loop) delivers
events to every subscriber in arrival order. A listener that raises is logged
and skipped; the remaining listeners still run.
"""

from collections import defaultdict
from typing import Any, Awaitable, Callable

import structlog

from zigbridge.models.events import (
    DeviceJoined,
    DeviceLeft,
    DeviceState,
    MQTTMessage,
    SystemFeedback,
)

logger = structlog.get_logger()

Listener = Callable[[Any], Awaitable[None]]


class EventBus:
    """Named-event publish/subscribe with per-owner listener removal."""

    DEVICE_JOINED = "device_joined"
    DEVICE_LEFT = "device_left"
    DEVICE_STATE = "device_state"
    SYSTEM_FEEDBACK = "system_feedback"
    MQTT_MESSAGE = "mqtt_message"

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[object, Listener]]] = defaultdict(list)

    def subscribe(self, event: str, owner: object, listener: Listener) -> None:
        self._listeners[event].append((owner, listener))

    def remove_listeners(self, owner: object) -> None:
        for event, listeners in self._listeners.items():
            self._listeners[event] = [(o, fn) for o, fn in listeners if o is not owner]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    async def emit(self, event: str, data: Any) -> None:
        for owner, listener in list(self._listeners.get(event, [])):
            try:
                await listener(data)
            except Exception as e:
                logger.error(
                    "Event listener failed",
                    event=event,
                    owner=type(owner).__name__,
                    error=str(e),
                    exc_info=True,
                )

    # Typed helpers

    def on_device_joined(self, owner: object, listener: Listener) -> None:
        self.subscribe(self.DEVICE_JOINED, owner, listener)

    def on_device_left(self, owner: object, listener: Listener) -> None:
        self.subscribe(self.DEVICE_LEFT, owner, listener)

    def on_device_state(self, owner: object, listener: Listener) -> None:
        self.subscribe(self.DEVICE_STATE, owner, listener)

    def on_system_feedback(self, owner: object, listener: Listener) -> None:
        self.subscribe(self.SYSTEM_FEEDBACK, owner, listener)

    def on_mqtt_message(self, owner: object, listener: Listener) -> None:
        self.subscribe(self.MQTT_MESSAGE, owner, listener)

    async def emit_device_joined(self, data: DeviceJoined) -> None:
        await self.emit(self.DEVICE_JOINED, data)

    async def emit_device_left(self, data: DeviceLeft) -> None:
        await self.emit(self.DEVICE_LEFT, data)

    async def emit_device_state(self, data: DeviceState) -> None:
        await self.emit(self.DEVICE_STATE, data)

    async def emit_system_feedback(self, data: SystemFeedback) -> None:
        await self.emit(self.SYSTEM_FEEDBACK, data)

    async def emit_mqtt_message(self, data: MQTTMessage) -> None:
        await self.emit(self.MQTT_MESSAGE, data)
