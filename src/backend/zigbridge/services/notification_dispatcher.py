"""Relay of device state events to the configured HTTP callbacks.

Each delivery is a single POST issued in its own task; the dispatcher returns
as soon as the tasks are scheduled. A failing or slow target only affects its
own task: errors are logged and dropped, there are no retries.
"""

import asyncio
import json
from typing import Any

import httpx
import structlog

from zigbridge.core import metrics
from zigbridge.models.events import DeviceState
from zigbridge.services.config_service import ConfigService
from zigbridge.services.event_bus import EventBus

logger = structlog.get_logger()


def _device_model(event: DeviceState) -> str | None:
    device = event.payload.get("device")
    if isinstance(device, dict):
        return device.get("model")
    return None


class NotificationDispatcher:
    """Builds outbound callback payloads and fans them out."""

    def __init__(
        self,
        config: ConfigService,
        client: httpx.AsyncClient,
        namespace: str = "utzigbee",
        callback_path: str = "/point_of_sales/deviceCallBackFn",
    ):
        self.config = config
        self.client = client
        self.namespace = namespace
        self.callback_path = callback_path
        self._pending: set[asyncio.Task] = set()

    def start(self, bus: EventBus) -> None:
        bus.on_device_state(self, self.dispatch)
        logger.info("Notification dispatcher started")

    def build_payload(self, event: DeviceState) -> dict[str, Any]:
        """Outbound body: topic, type, payload minus ``system``, and the
        ``system`` fields lifted to the top level."""
        system = event.payload.get("system") or {}
        inner = {k: v for k, v in event.payload.items() if k != "system"}
        body: dict[str, Any] = {
            "topic": f"{self.namespace}/{event.topic}",
            "type": event.payload.get("type"),
            "payload": inner,
        }
        body.update(system)
        return body

    @staticmethod
    def build_audit_record(event: DeviceState, body: dict[str, Any]) -> dict[str, Any]:
        return {
            "callback": event.callback_url,
            "topic": body["topic"],
            "type": event.payload.get("type"),
            "controlSource": body["payload"].get("controlSource"),
            "userData": dict(event.payload.get("system") or {}),
        }

    def targets(self, event: DeviceState) -> list[str]:
        if event.callback_url:
            return [event.callback_url]
        return self.config.callbacks()

    async def dispatch(self, event: DeviceState) -> list[asyncio.Task]:
        """Schedule deliveries for one event and return the scheduled tasks."""
        body = self.build_payload(event)
        audit = self.build_audit_record(event, body)
        model = _device_model(event)

        # Audited even when the model is suppressed below.
        if model in self.config.audit_models():
            logger.info("Device state event", audit=json.dumps(audit, sort_keys=True, default=str))

        if model in self.config.alarm_models():
            metrics.record_suppressed()
            logger.debug("Device state event suppressed", model=model, topic=body["topic"])
            return []

        tasks = []
        for url in self.targets(event):
            task = asyncio.create_task(self._deliver(url, body), name=f"callback:{url}")
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def _deliver(self, url: str, body: dict[str, Any]) -> bool:
        endpoint = f"{url}{self.callback_path}"
        try:
            response = await self.client.post(endpoint, json=body)
            response.raise_for_status()
        except Exception as e:
            metrics.record_delivery(False)
            logger.warning("Callback delivery failed", url=endpoint, topic=body.get("topic"), error=str(e))
            return False
        metrics.record_delivery(True)
        logger.debug("Callback delivered", url=endpoint, status=response.status_code)
        return True

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every outstanding delivery to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self.client.aclose()
