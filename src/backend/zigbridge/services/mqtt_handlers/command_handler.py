"""Device command handler (``<base>/<name>/set``).

A command that carries any tracked property is system feedback for the target
device: it replaces that device's feedback record.
"""

from typing import Any

import structlog

from zigbridge.models.events import SystemFeedback
from zigbridge.services.config_service import ConfigService
from zigbridge.services.device_registry import DeviceNotFoundError, DeviceRegistry
from zigbridge.services.event_bus import EventBus
from zigbridge.services.feedback_store import IDENTITY_PROPERTY, SOURCE_PROPERTY

logger = structlog.get_logger()


class CommandHandler:

    def __init__(self, registry: DeviceRegistry, config: ConfigService, bus: EventBus):
        self.registry = registry
        self.config = config
        self.bus = bus

    async def __call__(self, topic: str, payload: Any) -> None:
        if not isinstance(payload, dict):
            return

        parts = topic.split("/")
        if len(parts) != 3:
            logger.warning("Invalid command topic format", topic=topic)
            return

        carried = [
            prop
            for prop in self.config.tracked_properties()
            if prop not in (IDENTITY_PROPERTY, SOURCE_PROPERTY) and prop in payload
        ]
        if not carried:
            return

        try:
            device = self.registry.resolve(parts[1])
        except DeviceNotFoundError:
            logger.debug("Command for unknown device", topic=topic)
            return

        await self.bus.emit_system_feedback(
            SystemFeedback(fields={**payload, IDENTITY_PROPERTY: device.ieee_addr})
        )
