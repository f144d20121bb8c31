"""Latest feedback record per device, defaulted and verified against the
configured tracked-property list.

Tracked properties fall into four categories:

- identity: ``ieeeAddr``, defaults to the device address
- source: ``source``, ``"manual"`` for defaults and ``"system"`` for records
  built from a feedback event
- id-like: any name ending in ``Id``, defaults to ``"0"``
- freeform: everything else, defaults to ``""``

Only the read path (:meth:`FeedbackStore.verify`) projects records onto the
current property list. Stored records keep whatever keys they were written
with until the next event or resync replaces them.
"""

import asyncio
from enum import Enum
from typing import Any

import structlog

from zigbridge.core import metrics
from zigbridge.models.events import DeviceJoined, DeviceLeft, SystemFeedback
from zigbridge.services.config_service import ConfigService
from zigbridge.services.device_registry import DeviceRegistry
from zigbridge.services.event_bus import EventBus

logger = structlog.get_logger()

FeedbackRecord = dict[str, Any]

IDENTITY_PROPERTY = "ieeeAddr"
SOURCE_PROPERTY = "source"
SOURCE_MANUAL = "manual"
SOURCE_SYSTEM = "system"


class PropertyCategory(str, Enum):
    IDENTITY = "identity"
    SOURCE = "source"
    ID_LIKE = "id_like"
    FREEFORM = "freeform"


def categorize(prop: str) -> PropertyCategory:
    if prop == IDENTITY_PROPERTY:
        return PropertyCategory.IDENTITY
    if prop == SOURCE_PROPERTY:
        return PropertyCategory.SOURCE
    if prop.endswith("Id"):
        return PropertyCategory.ID_LIKE
    return PropertyCategory.FREEFORM


def missing_value(prop: str) -> str:
    """Placeholder for a property absent from a stored record."""
    return "0" if categorize(prop) is PropertyCategory.ID_LIKE else ""


def default_record(ieee_addr: str, properties: list[str]) -> FeedbackRecord:
    record: FeedbackRecord = {}
    for prop in properties:
        category = categorize(prop)
        if category is PropertyCategory.IDENTITY:
            record[prop] = ieee_addr
        elif category is PropertyCategory.SOURCE:
            record[prop] = SOURCE_MANUAL
        else:
            record[prop] = missing_value(prop)
    return record


class FeedbackStore:
    """Owns the in-memory feedback snapshot.

    Writers (sync, join, leave, feedback events) are serialized by one lock;
    ``verify`` reads the latest committed record without taking it.
    """

    def __init__(self, registry: DeviceRegistry, config: ConfigService, bus: EventBus | None = None):
        self.registry = registry
        self.config = config
        self.bus = bus
        self._records: dict[str, FeedbackRecord] = {}
        self._lock = asyncio.Lock()

    @property
    def properties(self) -> list[str]:
        return self.config.tracked_properties()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, ieee_addr: str) -> bool:
        return ieee_addr in self._records

    def raw(self, ieee_addr: str) -> FeedbackRecord | None:
        """Stored record as-is (no projection)."""
        record = self._records.get(ieee_addr)
        return dict(record) if record is not None else None

    async def start(self) -> None:
        logger.info("Feedback store started")
        await self.sync()
        if self.bus is not None:
            self.bus.on_device_joined(self, self._handle_joined)
            self.bus.on_device_left(self, self._handle_left)
            self.bus.on_system_feedback(self, self._handle_feedback)

    async def stop(self) -> None:
        if self.bus is not None:
            self.bus.remove_listeners(self)
        logger.info("Feedback store stopped")

    async def sync(self) -> None:
        """Drop every record and default one per device the registry knows."""
        async with self._lock:
            self._records = {}
            properties = self.properties
            for device in self.registry.devices():
                try:
                    ieee_addr = device.ieee_addr
                    self._records[ieee_addr] = default_record(ieee_addr, properties)
                except Exception as e:
                    logger.warning("Could not default feedback record", device=repr(device), error=str(e))
            metrics.set_feedback_records(len(self._records))
        logger.info("Feedback store synchronized", records=len(self._records))

    async def on_device_joined(self, ieee_addr: str) -> None:
        async with self._lock:
            self._records[ieee_addr] = default_record(ieee_addr, self.properties)
            metrics.set_feedback_records(len(self._records))

    async def on_device_left(self, ieee_addr: str) -> None:
        async with self._lock:
            self._records.pop(ieee_addr, None)
            metrics.set_feedback_records(len(self._records))

    async def on_state_event(self, ieee_addr: str, raw_fields: dict[str, Any]) -> None:
        """Replace the record with the tracked fields of a feedback event."""
        record: FeedbackRecord = {}
        for prop in self.properties:
            if prop == SOURCE_PROPERTY:
                record[prop] = SOURCE_SYSTEM
            else:
                record[prop] = raw_fields.get(prop)
        async with self._lock:
            self._records[ieee_addr] = record
            metrics.set_feedback_records(len(self._records))

    def verify(self, ieee_addr: str) -> FeedbackRecord:
        """Normalized record for ``ieee_addr``.

        Unknown addresses get the full default record. Known records are
        re-projected onto the current property list, with ``"0"`` or ``""``
        standing in for anything missing.
        """
        properties = self.properties
        stored = self._records.get(ieee_addr)
        if stored is None:
            return default_record(ieee_addr, properties)
        return {
            prop: stored[prop] if stored.get(prop) is not None else missing_value(prop)
            for prop in properties
        }

    async def _handle_joined(self, event: DeviceJoined) -> None:
        await self.on_device_joined(event.device.ieee_addr)

    async def _handle_left(self, event: DeviceLeft) -> None:
        await self.on_device_left(event.ieee_addr)

    async def _handle_feedback(self, event: SystemFeedback) -> None:
        if not event.ieee_addr:
            logger.warning("Feedback event without ieeeAddr ignored")
            return
        await self.on_state_event(event.ieee_addr, event.fields)
