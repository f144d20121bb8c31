"""Device summaries and outbound device commands for the HTTP gateway."""

import json
from typing import Any

import structlog

from zigbridge.models.device import Device
from zigbridge.models.events import MQTTMessage
from zigbridge.services.availability import AvailabilityEvaluator
from zigbridge.services.config_service import ConfigService
from zigbridge.services.device_registry import DeviceRegistry
from zigbridge.services.event_bus import EventBus

logger = structlog.get_logger()

UNKNOWN = "Unknown"


def parse_energy(raw: Any) -> float | None:
    """Energy reading from a raw ``currentSummDelivered`` attribute.

    The metering plugs report the summation as a comma-delimited pair; the
    second element is the reading in hundredths of a kWh. An undelimited
    number is taken as-is. A falsy raw value means no reading (-1) and an
    unparseable one gives ``None``.
    """
    if not raw:
        return -1
    parts = str(raw).split(",")
    try:
        if len(parts) > 1:
            return int(parts[1]) / 100
        return float(parts[0])
    except ValueError:
        logger.debug("Unparseable energy reading", raw=raw)
        return None


def stable_json(data: dict[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


class DeviceService:
    """Builds device listings and publishes device commands."""

    def __init__(
        self,
        registry: DeviceRegistry,
        evaluator: AvailabilityEvaluator,
        config: ConfigService,
        bus: EventBus,
        base_topic: str = "zigbee2mqtt",
    ):
        self.registry = registry
        self.evaluator = evaluator
        self.config = config
        self.bus = bus
        self.base_topic = base_topic

    def summarize(self, device: Device, metered_models: list[str]) -> dict[str, Any]:
        info: dict[str, Any] = {
            "name": device.name,
            "ieeeAddr": device.ieee_addr,
            "friendly_name": device.options.get("friendly_name", device.friendly_name),
            "vendor": device.vendor or UNKNOWN,
            "model": device.model or UNKNOWN,
            "availability": "online" if self.evaluator.is_available(device) else "offline",
        }
        if info["model"] in metered_models:
            info["state"] = "ON" if device.read_attribute("genOnOff", "onOff") else "OFF"
            info["energy"] = parse_energy(device.read_attribute("seMetering", "currentSummDelivered"))
        return info

    def list_devices(self, name: str = "") -> list[dict[str, Any]]:
        """Summaries of every end device, optionally filtered by exact name."""
        metered_models = self.config.audit_models()
        summaries = []
        for device in self.registry.devices(include_coordinator=False):
            if name and device.name != name:
                continue
            try:
                summaries.append(self.summarize(device, metered_models))
            except Exception as e:
                logger.warning("Skipping device summary", ieee_addr=device.ieee_addr, error=str(e))
        return summaries

    def energy_by_name(self, name: str = "") -> dict[str, float | None]:
        """Energy per device name; devices without a meter are left out."""
        return {d["name"]: d["energy"] for d in self.list_devices(name) if "energy" in d}

    async def mute_all_sirens(self) -> int:
        """Send ``alarm: OFF`` to every alarm-class device; return how many."""
        alarm_models = self.config.alarm_models()
        muted = 0
        for device in self.list_devices():
            if device["model"] in alarm_models:
                await self.bus.emit_mqtt_message(
                    MQTTMessage(
                        topic=f"{self.base_topic}/{device['name']}/set",
                        message=stable_json({"alarm": "OFF"}),
                    )
                )
                muted += 1
        logger.info("Sirens muted", count=muted)
        return muted

    async def publish_command(self, topic: str, payload: dict[str, Any], body: dict[str, Any]) -> MQTTMessage:
        """Republish ``payload`` with the tracked properties found in ``body``."""
        extras = {
            prop: body[prop]
            for prop in self.config.tracked_properties()
            if body.get(prop)
        }
        message = MQTTMessage(topic=topic, message=stable_json({**(payload or {}), **extras}))
        await self.bus.emit_mqtt_message(message)
        return message
