"""Gateway MQTT client service for the zigbee2mqtt broker.

Subscribes to the bridge and device topics under the base topic, routes each
message to the first matching handler, and publishes outbound device commands
emitted on the event bus.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable

import aiomqtt
import structlog

from zigbridge.core import metrics
from zigbridge.models.events import MQTTMessage
from zigbridge.services.event_bus import EventBus

logger = structlog.get_logger()

# Type for async message handlers
MessageHandler = Callable[[str, Any], Awaitable[None]]


class GatewayMQTTService:
    """Async MQTT client for the gateway."""

    def __init__(
        self,
        bus: EventBus,
        broker_host: str,
        broker_port: int = 1883,
        base_topic: str = "zigbee2mqtt",
        username: str = "",
        password: str = "",
        ca_cert_path: str = "",
        client_id: str = "zigbridge",
        reconnect_interval: int = 5,
        max_reconnect_interval: int = 60,
    ):
        self.bus = bus
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.base_topic = base_topic
        self.username = username
        self.password = password
        self.ca_cert_path = ca_cert_path
        self.client_id = client_id
        self.reconnect_interval = reconnect_interval
        self.max_reconnect_interval = max_reconnect_interval

        self._client: aiomqtt.Client | None = None
        self._listener_task: asyncio.Task | None = None
        self._message_handlers: dict[str, MessageHandler] = {}
        self._connected: bool = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def register_handler(self, topic_pattern: str, handler: MessageHandler) -> None:
        self._message_handlers[topic_pattern] = handler
        logger.info("Registered MQTT handler", topic_pattern=topic_pattern)

    @property
    def subscriptions(self) -> list[str]:
        return list(self._message_handlers)

    async def start(self) -> None:
        logger.info("Starting gateway MQTT service", broker=self.broker_host, port=self.broker_port)
        self.bus.on_mqtt_message(self, self._handle_outbound)
        self._listener_task = asyncio.create_task(self._listen_loop(), name="gateway-mqtt-listener")

    async def stop(self) -> None:
        self.bus.remove_listeners(self)
        if self._listener_task:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
        self._set_connected(False)
        logger.info("Gateway MQTT service stopped")

    async def publish(self, topic: str, payload: str, qos: int = 0, retain: bool = False) -> None:
        if not self._client:
            raise RuntimeError("MQTT client not connected")
        await self._client.publish(topic, payload, qos=qos, retain=retain)
        logger.debug("Published MQTT message", topic=topic, qos=qos)

    async def _handle_outbound(self, message: MQTTMessage) -> None:
        try:
            await self.publish(message.topic, message.message)
        except (RuntimeError, aiomqtt.MqttError) as e:
            logger.warning("Dropping outbound MQTT message", topic=message.topic, error=str(e))

    def _set_connected(self, connected: bool) -> None:
        self._connected = connected
        if not connected:
            self._client = None
        metrics.set_mqtt_connected(connected)

    def _client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "hostname": self.broker_host,
            "port": self.broker_port,
            "identifier": self.client_id,
        }
        if self.username:
            kwargs["username"] = self.username
            kwargs["password"] = self.password or None
        if self.ca_cert_path:
            kwargs["tls_params"] = aiomqtt.TLSParameters(ca_certs=self.ca_cert_path)
        return kwargs

    async def _listen_loop(self) -> None:
        """Main connection loop with exponential backoff reconnection."""
        interval = self.reconnect_interval
        while True:
            try:
                async with aiomqtt.Client(**self._client_kwargs()) as client:
                    self._client = client
                    self._set_connected(True)
                    interval = self.reconnect_interval  # Reset on success
                    logger.info("Connected to MQTT broker", broker=self.broker_host, port=self.broker_port)

                    for topic in self.subscriptions:
                        await client.subscribe(topic)
                        logger.info("Subscribed to MQTT topic", topic=topic)

                    async for message in client.messages:
                        await self._dispatch_message(str(message.topic), message.payload)

            except aiomqtt.MqttError as e:
                self._set_connected(False)
                logger.warning("MQTT connection lost, reconnecting", error=str(e), retry_in=interval)
                await asyncio.sleep(interval)
                interval = min(interval * 2, self.max_reconnect_interval)
            except asyncio.CancelledError:
                self._set_connected(False)
                logger.info("MQTT listener task cancelled")
                raise
            except Exception as e:
                self._set_connected(False)
                logger.error("Unexpected MQTT error, reconnecting", error=str(e), retry_in=interval)
                await asyncio.sleep(interval)
                interval = min(interval * 2, self.max_reconnect_interval)

    async def _dispatch_message(self, topic_str: str, raw: Any) -> None:
        try:
            if isinstance(raw, (bytes, bytearray)):
                raw = raw.decode()
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
            logger.debug("Non-JSON MQTT message payload", topic=topic_str, error=str(e))
            return

        matched = False
        for pattern, handler in self._message_handlers.items():
            if self._topic_matches(topic_str, pattern):
                matched = True
                try:
                    await handler(topic_str, payload)
                except Exception as e:
                    logger.error("MQTT handler error", topic=topic_str, pattern=pattern, error=str(e))
                break

        if not matched:
            logger.debug("No handler for MQTT topic", topic=topic_str)

    @staticmethod
    def _topic_matches(topic: str, pattern: str) -> bool:
        topic_parts = topic.split("/")
        pattern_parts = pattern.split("/")
        for i, pat in enumerate(pattern_parts):
            if pat == "#":
                return True
            if i >= len(topic_parts):
                return False
            if pat != "+" and pat != topic_parts[i]:
                return False
        return len(topic_parts) == len(pattern_parts)
