"""MQTT message handlers for the zigbee2mqtt topic tree."""

from zigbridge.services.mqtt_handlers.bridge_handler import BridgeHandler
from zigbridge.services.mqtt_handlers.command_handler import CommandHandler
from zigbridge.services.mqtt_handlers.state_handler import StateHandler

__all__ = ["BridgeHandler", "CommandHandler", "StateHandler"]
