"""Device listing and command endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from zigbridge.core.deps import ServiceContainer, get_services

router = APIRouter()


class DeviceSummary(BaseModel):
    """Device listing entry."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    ieee_addr: str = Field(alias="ieeeAddr")
    friendly_name: str
    vendor: str
    model: str
    availability: str
    state: str | None = None
    energy: float | None = None


class DeviceCommandRequest(BaseModel):
    """Outbound command; any tracked property may ride along as an extra field."""

    model_config = ConfigDict(extra="allow")

    topic: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)


@router.get("/devices", response_model=list[DeviceSummary], response_model_exclude_none=True, response_model_by_alias=True)
async def list_devices(
    name: str = Query("", description="Exact device name filter"),
    services: ServiceContainer = Depends(get_services),
):
    """List devices with availability and, for metering plugs, state and energy."""
    return services.devices.list_devices(name)


@router.get("/devices-by-name")
async def devices_by_name(
    name: str = Query(""),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, float | None]:
    """Energy reading per device name."""
    return services.devices.energy_by_name(name)


@router.get("/mute-all-sirens", response_class=PlainTextResponse)
async def mute_all_sirens(services: ServiceContainer = Depends(get_services)) -> str:
    await services.devices.mute_all_sirens()
    return "OK"


@router.post("/device", response_class=PlainTextResponse)
async def publish_device_command(
    request: DeviceCommandRequest,
    services: ServiceContainer = Depends(get_services),
) -> str:
    """Republish a device command with the tracked properties found in the body."""
    await services.devices.publish_command(request.topic, request.payload, request.model_dump())
    return "OK"
