"""Tests for the gateway HTTP endpoints."""

import json
from unittest.mock import patch

import pytest
from httpx import AsyncClient

from zigbridge.models.events import MQTTMessage
from tests.conftest import AUTH_TOKEN, PLUG_MODEL


class Capture:
    def __init__(self):
        self.messages: list[MQTTMessage] = []

    async def __call__(self, message: MQTTMessage) -> None:
        self.messages.append(message)


class TestDevicesAPI:

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_list_devices(self, client: AsyncClient, services):
        services.registry.get("0x0002").set_attribute("seMetering", "currentSummDelivered", "0,1000")

        response = await client.get("/devices")

        assert response.status_code == 200
        data = response.json()
        assert [d["name"] for d in data] == ["kitchen_sensor", "office_plug", "hall_siren"]
        assert data[0]["ieeeAddr"] == "0x0001"
        assert "energy" not in data[0]
        plug = data[1]
        assert plug["model"] == PLUG_MODEL
        assert plug["state"] == "OFF"
        assert plug["energy"] == 10.0
        assert plug["availability"] == "online"

    @pytest.mark.asyncio
    async def test_list_devices_by_name(self, client: AsyncClient):
        response = await client.get("/devices", params={"name": "hall_siren"})

        assert [d["name"] for d in response.json()] == ["hall_siren"]

    @pytest.mark.asyncio
    async def test_devices_by_name(self, client: AsyncClient):
        response = await client.get("/devices-by-name")

        assert response.status_code == 200
        assert response.json() == {"office_plug": -1}

    @pytest.mark.asyncio
    async def test_mute_all_sirens(self, client: AsyncClient, services):
        capture = Capture()
        services.bus.on_mqtt_message(capture, capture)

        response = await client.get("/mute-all-sirens")

        assert response.status_code == 200
        assert response.text == "OK"
        assert [m.topic for m in capture.messages] == ["zigbee2mqtt/hall_siren/set"]

    @pytest.mark.asyncio
    async def test_publish_device_command(self, client: AsyncClient, services):
        capture = Capture()
        services.bus.on_mqtt_message(capture, capture)

        response = await client.post(
            "/device",
            json={
                "topic": "zigbee2mqtt/office_plug/set",
                "payload": {"state": "ON"},
                "userId": "42",
                "ignored": "x",
            },
        )

        assert response.status_code == 200
        assert response.text == "OK"
        assert json.loads(capture.messages[0].message) == {"state": "ON", "userId": "42"}

    @pytest.mark.asyncio
    async def test_publish_device_command_requires_topic(self, client: AsyncClient):
        response = await client.post("/device", json={"payload": {}})

        assert response.status_code == 422


class TestConfigAPI:

    @pytest.mark.asyncio
    async def test_get_config(self, client: AsyncClient):
        response = await client.get("/config")

        assert response.status_code == 200
        data = response.json()
        assert data["callbacks"] == ["http://pos-a.local", "http://pos-b.local"]
        assert data["tracked_properties"][:3] == ["ieeeAddr", "source", "callback_url"]
        assert data["alarm_setting"] == {"models": ["TS0216"]}
        assert "auth_token" not in data

    @pytest.mark.asyncio
    async def test_set_config(self, client: AsyncClient, services):
        response = await client.post(
            "/config",
            json={"password": AUTH_TOKEN, "callbacks": ["http://pos-z.local"], "tracked_properties": ["siteId"]},
        )

        assert response.status_code == 200
        assert response.text == "OK"
        assert services.config.callbacks() == ["http://pos-z.local"]
        assert services.config.tracked_properties() == ["ieeeAddr", "source", "callback_url", "siteId"]
        assert services.feedback.verify("0x0001") == {
            "ieeeAddr": "0x0001",
            "source": "manual",
            "callback_url": "",
            "siteId": "0",
        }

    @pytest.mark.asyncio
    async def test_set_config_accepts_client_field_names(self, client: AsyncClient, services):
        response = await client.post(
            "/config",
            json={
                "password": AUTH_TOKEN,
                "ignoredPerperties": ["tableId"],
                "alarmSetting": {"models": ["SIREN-2"]},
            },
        )

        assert response.text == "OK"
        assert services.config.tracked_properties() == ["ieeeAddr", "source", "callback_url", "tableId"]
        assert services.config.alarm_models() == ["SIREN-2"]

    @pytest.mark.asyncio
    async def test_set_config_rejected(self, client: AsyncClient, services, settings_store):
        before = settings_store.get()

        response = await client.post("/config", json={"password": "nope", "callbacks": ["http://evil"]})

        assert response.status_code == 200
        assert response.text == "Invalid credential!"
        assert settings_store.get() == before

    @pytest.mark.asyncio
    async def test_restart(self, client: AsyncClient, services):
        with patch.object(services.restarter, "schedule") as schedule:
            response = await client.post("/restart", json={"password": AUTH_TOKEN, "key": "zigbee"})

        assert response.text == "Restart in 1 sec"
        schedule.assert_called_once_with("zigbee")

    @pytest.mark.asyncio
    async def test_restart_rejected(self, client: AsyncClient, services):
        with patch.object(services.restarter, "schedule") as schedule:
            response = await client.post("/restart", json={"password": "nope", "key": "zigbee"})

        assert response.text == "Invalid credential!"
        schedule.assert_not_called()
