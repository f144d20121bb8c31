"""Read/update surface for the gateway's tunable parameters.

Updates are presence-based: each field of a :class:`ConfigPatch` is applied
on its own, and only when it carries a non-empty value. Absent or empty
fields leave the stored value untouched.
"""

import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from zigbridge.core.settings_store import (
    MANDATORY_PROPERTIES,
    ConfigStoreError,
    SettingsStore,
)

logger = structlog.get_logger()

CALLBACKS = ("gateway", "callbacks")
TRACKED_PROPERTIES = ("gateway", "tracked_properties")
DEFAULT_DEVICES = ("gateway", "default_devices")
ALARM_SETTING = ("gateway", "alarm_setting")
DEVICES = ("devices",)
AUTH_TOKEN = ("frontend", "auth_token")


class ConfigUpdateOutcome(str, Enum):
    """Result of a config update request."""

    APPLIED = "applied"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class ConfigPatch:
    """Partial configuration update; every field is optional."""

    auth_token: str | None = None
    callbacks: list[str] | None = None
    tracked_properties: list[str] | None = None
    devices: dict[str, Any] | None = None
    alarm_setting: dict[str, Any] | None = None
    default_devices: list[str] | None = None


def normalize_tracked_properties(properties: list[str]) -> list[str]:
    """Put the mandatory keys first, exactly once, ahead of the caller's list."""
    rest = [p for p in properties if p not in MANDATORY_PROPERTIES]
    return [*MANDATORY_PROPERTIES, *rest]


class ConfigService:
    """Config surface backed by the durable settings store."""

    def __init__(self, store: SettingsStore):
        self.store = store

    # Per-event reads

    def callbacks(self) -> list[str]:
        return list(self.store.get_path(CALLBACKS, []) or [])

    def tracked_properties(self) -> list[str]:
        stored = self.store.get_path(TRACKED_PROPERTIES, []) or []
        return normalize_tracked_properties(list(stored))

    def alarm_models(self) -> list[str]:
        alarm_setting = self.store.get_path(ALARM_SETTING, {}) or {}
        return list(alarm_setting.get("models") or [])

    def audit_models(self) -> list[str]:
        return list(self.store.get_path(DEFAULT_DEVICES, []) or [])

    def check_token(self, token: str | None) -> bool:
        expected = self.store.get_path(AUTH_TOKEN, "") or ""
        if not token or not expected:
            return False
        return secrets.compare_digest(str(token), str(expected))

    def get(self) -> dict[str, Any]:
        """Current config snapshot; the shared secret is never included."""
        return {
            "callbacks": self.callbacks(),
            "tracked_properties": self.tracked_properties(),
            "devices": self.store.get_path(DEVICES, {}) or {},
            "alarm_setting": self.store.get_path(ALARM_SETTING, {}) or {},
            "default_devices": self.audit_models(),
        }

    def set(self, token: str | None, patch: ConfigPatch) -> ConfigUpdateOutcome:
        if not self.check_token(token):
            logger.warning("Config update rejected: invalid credential")
            return ConfigUpdateOutcome.REJECTED

        try:
            if patch.auth_token:
                self.store.set(AUTH_TOKEN, patch.auth_token)
            if patch.callbacks:
                self.store.set(CALLBACKS, list(patch.callbacks))
            if patch.tracked_properties:
                self.store.set(TRACKED_PROPERTIES, normalize_tracked_properties(patch.tracked_properties))
            if patch.devices:
                self.store.set(DEVICES, dict(patch.devices))
            if patch.alarm_setting:
                self.store.set(ALARM_SETTING, dict(patch.alarm_setting))
            if patch.default_devices:
                self.store.set(DEFAULT_DEVICES, list(patch.default_devices))
        except ConfigStoreError as e:
            logger.warning("Config update could not be persisted", error=str(e))
            return ConfigUpdateOutcome.FAILED

        logger.info(
            "Config updated",
            fields=[name for name, value in vars(patch).items() if value and name != "auth_token"],
        )
        return ConfigUpdateOutcome.APPLIED
