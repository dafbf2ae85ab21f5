"""In-process decoy device table.

Holds the DeviceRecords that decoy hits are attributed to.  Seeded at startup
with the built-in decoys; more can be registered at runtime.  Records are
never deleted.

The table hands out copies so that counters are only ever mutated here,
under the table lock.
"""

from __future__ import annotations

import threading
from datetime import datetime

from loguru import logger

from honeytrap.sensor.models.device import DeviceCreate, DeviceRecord
from honeytrap.sensor.models.enums import EndpointKind


class DuplicateDeviceError(ValueError):
    """Raised when registering a device id that already exists."""


def default_devices() -> list[DeviceRecord]:
    """Built-in decoys present at process start."""
    return [
        DeviceRecord(
            id="cam-001",
            name="Security Camera #1",
            kind=EndpointKind.CAMERA,
            ip="192.168.1.101",
            location="Front Entrance",
            firmware="2.1.4",
            uptime="7d 14h",
        ),
        DeviceRecord(
            id="router-001",
            name="WiFi Router",
            kind=EndpointKind.ROUTER,
            ip="192.168.1.1",
            location="Server Room",
            firmware="4.2.8",
            uptime="30d 12h",
        ),
        DeviceRecord(
            id="lock-001",
            name="Smart Lock",
            kind=EndpointKind.LOCK,
            ip="192.168.1.104",
            location="Main Door",
            firmware="3.0.1",
            uptime="12d 3h",
        ),
    ]


class DeviceTable:
    """Thread-safe table of decoy devices keyed by id.

    A hit on an endpoint kind is attributed to the first registered device of
    that kind.  Kinds with no registered device are still valid decoys; their
    hits simply leave the table untouched.
    """

    def __init__(self, devices: list[DeviceRecord] | None = None) -> None:
        self._devices: dict[str, DeviceRecord] = {}
        self._lock = threading.Lock()
        for device in devices or []:
            self._insert(device)

    @classmethod
    def with_defaults(cls) -> DeviceTable:
        return cls(default_devices())

    # -- Mutation --------------------------------------------------------------

    def register(self, body: DeviceCreate) -> DeviceRecord:
        """Register a new device.  Raises ``DuplicateDeviceError`` on id clash."""
        device = DeviceRecord(**body.model_dump())
        self._insert(device)
        logger.info("Devices: registered {} ({}, {})", device.id, device.kind, device.ip)
        return device.model_copy()

    def _insert(self, device: DeviceRecord) -> None:
        with self._lock:
            if device.id in self._devices:
                msg = f"Device '{device.id}' already exists"
                raise DuplicateDeviceError(msg)
            self._devices[device.id] = device

    def record_hit(self, kind: EndpointKind, seen_at: datetime) -> DeviceRecord | None:
        """Increment the attack counter of the device mapped to *kind*.

        Returns a copy of the updated record, or ``None`` if no device of that
        kind is registered.
        """
        with self._lock:
            device = self._for_kind_locked(kind)
            if device is None:
                return None
            device.attacks += 1
            device.last_seen = max(device.last_seen, seen_at)
            return device.model_copy()

    # -- Query -----------------------------------------------------------------

    def get(self, device_id: str) -> DeviceRecord | None:
        with self._lock:
            device = self._devices.get(device_id)
            return device.model_copy() if device else None

    def for_kind(self, kind: EndpointKind) -> DeviceRecord | None:
        with self._lock:
            device = self._for_kind_locked(kind)
            return device.model_copy() if device else None

    def all_devices(self) -> list[DeviceRecord]:
        """Return a snapshot of all devices in registration order."""
        with self._lock:
            return [d.model_copy() for d in self._devices.values()]

    def _for_kind_locked(self, kind: EndpointKind) -> DeviceRecord | None:
        for device in self._devices.values():
            if device.kind == kind:
                return device
        return None
