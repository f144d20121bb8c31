"""Gateway configuration and process control endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from zigbridge.core.deps import ServiceContainer, get_services
from zigbridge.services.config_service import ConfigPatch, ConfigUpdateOutcome

router = APIRouter()

INVALID_CREDENTIAL = "Invalid credential!"


class AlarmSetting(BaseModel):
    models: list[str] = Field(default_factory=list)


class ConfigResponse(BaseModel):
    """Current gateway configuration (without the shared secret)."""

    callbacks: list[str]
    tracked_properties: list[str]
    devices: dict[str, Any]
    alarm_setting: AlarmSetting
    default_devices: list[str]


class ConfigUpdateRequest(BaseModel):
    """Config update; only non-empty fields are applied.

    Point-of-sale clients send ``ignoredPerperties`` and ``alarmSetting``;
    the field names are accepted as well.
    """

    model_config = ConfigDict(populate_by_name=True)

    password: str = ""
    auth_token: str | None = None
    callbacks: list[str] | None = None
    tracked_properties: list[str] | None = Field(default=None, alias="ignoredPerperties")
    devices: dict[str, Any] | None = None
    alarm_setting: dict[str, Any] | None = Field(default=None, alias="alarmSetting")
    default_devices: list[str] | None = None


class RestartRequest(BaseModel):
    password: str = ""
    key: str = Field(..., min_length=1)


@router.get("/config", response_model=ConfigResponse)
async def get_config(services: ServiceContainer = Depends(get_services)):
    return services.config.get()


@router.post("/config", response_class=PlainTextResponse)
async def set_config(
    request: ConfigUpdateRequest,
    services: ServiceContainer = Depends(get_services),
):
    patch = ConfigPatch(**request.model_dump(exclude={"password"}))
    outcome = services.config.set(request.password, patch)
    if outcome is ConfigUpdateOutcome.REJECTED:
        return INVALID_CREDENTIAL
    if outcome is ConfigUpdateOutcome.FAILED:
        return PlainTextResponse(
            "Failed to persist configuration",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return "OK"


@router.post("/restart", response_class=PlainTextResponse)
async def restart_process(
    request: RestartRequest,
    services: ServiceContainer = Depends(get_services),
) -> str:
    """Restart a supervised process after a one-second delay."""
    if not services.config.check_token(request.password):
        return INVALID_CREDENTIAL
    services.restarter.schedule(request.key)
    return "Restart in 1 sec"
