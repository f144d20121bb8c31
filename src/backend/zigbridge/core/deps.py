"""Service wiring and dependency injection utilities for FastAPI."""

from dataclasses import dataclass

import httpx
from fastapi import HTTPException, Request, status

from zigbridge.core.config import Settings
from zigbridge.core.settings_store import SettingsStore
from zigbridge.services.availability import AvailabilityEvaluator
from zigbridge.services.config_service import ConfigService
from zigbridge.services.device_registry import DeviceRegistry
from zigbridge.services.device_service import DeviceService
from zigbridge.services.event_bus import EventBus
from zigbridge.services.feedback_store import FeedbackStore
from zigbridge.services.mqtt_handlers import BridgeHandler, CommandHandler, StateHandler
from zigbridge.services.mqtt_service import GatewayMQTTService
from zigbridge.services.notification_dispatcher import NotificationDispatcher
from zigbridge.services.process_service import ProcessRestarter


@dataclass
class ServiceContainer:
    """Every long-lived service of one gateway instance."""

    store: SettingsStore
    bus: EventBus
    registry: DeviceRegistry
    config: ConfigService
    feedback: FeedbackStore
    evaluator: AvailabilityEvaluator
    dispatcher: NotificationDispatcher
    devices: DeviceService
    restarter: ProcessRestarter
    mqtt: GatewayMQTTService | None = None

    async def start(self) -> None:
        await self.feedback.start()
        self.dispatcher.start(self.bus)
        if self.mqtt:
            await self.mqtt.start()

    async def stop(self) -> None:
        if self.mqtt:
            await self.mqtt.stop()
        await self.feedback.stop()
        self.bus.remove_listeners(self.dispatcher)
        await self.dispatcher.aclose()


def register_mqtt_handlers(mqtt: GatewayMQTTService, services: ServiceContainer) -> None:
    """Route the zigbee2mqtt topic tree to the gateway handlers.

    Order matters: the first matching pattern wins.
    """
    base = mqtt.base_topic
    bridge = BridgeHandler(services.registry, services.bus)
    mqtt.register_handler(f"{base}/bridge/devices", bridge.handle_devices)
    mqtt.register_handler(f"{base}/bridge/event", bridge.handle_event)
    mqtt.register_handler(f"{base}/+/set", CommandHandler(services.registry, services.config, services.bus))
    mqtt.register_handler(f"{base}/+", StateHandler(services.registry, services.feedback, services.bus))


def build_services(
    settings: Settings,
    store: SettingsStore | None = None,
    client: httpx.AsyncClient | None = None,
) -> ServiceContainer:
    store = store if store is not None else SettingsStore(settings.config_file or None)
    bus = EventBus()
    registry = DeviceRegistry(store)
    config = ConfigService(store)
    evaluator = AvailabilityEvaluator(store)
    services = ServiceContainer(
        store=store,
        bus=bus,
        registry=registry,
        config=config,
        feedback=FeedbackStore(registry, config, bus),
        evaluator=evaluator,
        dispatcher=NotificationDispatcher(
            config,
            client or httpx.AsyncClient(timeout=settings.callback_timeout),
            namespace=settings.topic_namespace,
            callback_path=settings.callback_path,
        ),
        devices=DeviceService(registry, evaluator, config, bus, base_topic=settings.mqtt_base_topic),
        restarter=ProcessRestarter(settings.restart_command, settings.restart_delay),
    )
    if settings.mqtt_enabled:
        services.mqtt = GatewayMQTTService(
            bus,
            broker_host=settings.mqtt_broker_host,
            broker_port=settings.mqtt_broker_port,
            base_topic=settings.mqtt_base_topic,
            username=settings.mqtt_username,
            password=settings.mqtt_password,
            ca_cert_path=settings.mqtt_ca_cert,
            client_id=settings.mqtt_client_id,
            reconnect_interval=settings.mqtt_reconnect_interval,
            max_reconnect_interval=settings.mqtt_max_reconnect_interval,
        )
        register_mqtt_handlers(services.mqtt, services)
    return services


def get_services(request: Request) -> ServiceContainer:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Gateway services not initialized",
        )
    return services
