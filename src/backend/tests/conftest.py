"""Pytest configuration and fixtures for zigbridge tests."""

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from zigbridge.core.config import Settings
from zigbridge.core.deps import ServiceContainer, build_services
from zigbridge.core.settings_store import SettingsStore
from zigbridge.main import fastapi_app as app
from zigbridge.models.device import Device, DeviceType, PowerSource

AUTH_TOKEN = "s3cret"
PLUG_MODEL = "TO-Q-SY1-JZT"
SIREN_MODEL = "TS0216"

# Fixed clock: 2024-01-01T00:00:00Z in epoch ms
NOW_MS = 1_704_067_200_000


class CallbackRecorder:
    """httpx MockTransport handler that records every callback POST."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.failing_hosts: set[str] = set()
        self.erroring_hosts: set[str] = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host in self.erroring_hosts:
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.host in self.failing_hosts:
            return httpx.Response(500, text="boom")
        return httpx.Response(200, text="ok")

    @property
    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


def make_device(
    ieee_addr: str,
    friendly_name: str,
    model: str | None = "WSDCGQ11LM",
    type: str = DeviceType.END_DEVICE.value,
    power_source: str | None = PowerSource.BATTERY.value,
    last_seen: int | None = NOW_MS,
    vendor: str | None = "Xiaomi",
) -> Device:
    return Device(
        ieee_addr=ieee_addr,
        friendly_name=friendly_name,
        type=type,
        power_source=power_source,
        vendor=vendor,
        model=model,
        last_seen=last_seen,
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        config_file="",
        mqtt_enabled=False,
        metrics_enabled=False,
        callback_timeout=1.0,
        restart_delay=0.0,
    )


@pytest.fixture
def settings_store() -> SettingsStore:
    return SettingsStore(
        initial={
            "frontend": {"auth_token": AUTH_TOKEN},
            "gateway": {
                "callbacks": ["http://pos-a.local", "http://pos-b.local"],
                "tracked_properties": ["ieeeAddr", "source", "callback_url", "userId", "orderId", "note"],
                "default_devices": [PLUG_MODEL],
                "alarm_setting": {"models": [SIREN_MODEL]},
            },
        }
    )


@pytest.fixture
def recorder() -> CallbackRecorder:
    return CallbackRecorder()


@pytest_asyncio.fixture
async def services(test_settings, settings_store, recorder) -> AsyncGenerator[ServiceContainer, None]:
    """Gateway services over an in-memory store and a recording HTTP transport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder), timeout=1.0)
    container = build_services(test_settings, store=settings_store, client=client)
    container.evaluator.clock = lambda: NOW_MS
    container.registry.upsert(make_device("0x0001", "kitchen_sensor"))
    container.registry.upsert(
        make_device(
            "0x0002",
            "office_plug",
            model=PLUG_MODEL,
            type=DeviceType.ROUTER.value,
            power_source=PowerSource.MAINS_SINGLE_PHASE.value,
            vendor="TuYa",
        )
    )
    container.registry.upsert(make_device("0x0003", "hall_siren", model=SIREN_MODEL, vendor="TuYa"))
    container.registry.upsert(
        make_device("0x0000", "Coordinator", model=None, type=DeviceType.COORDINATOR.value, vendor=None)
    )
    await container.start()
    yield container
    await container.stop()


@pytest_asyncio.fixture
async def client(services) -> AsyncGenerator[AsyncClient, None]:
    """Test HTTP client bound to the gateway services."""
    app.state.services = services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.state.services = None
