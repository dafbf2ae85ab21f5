"""Decoy device endpoints: list and register."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from honeytrap.sensor.deps import Devices
from honeytrap.sensor.devices import DuplicateDeviceError
from honeytrap.sensor.models.api import envelope
from honeytrap.sensor.models.device import DeviceCreate

router = APIRouter(prefix="/devices", tags=["devices"])


@router.get("")
async def list_devices(devices: Devices) -> dict:
    return envelope([d.model_dump(mode="json", by_alias=True) for d in devices.all_devices()])


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_device(body: DeviceCreate, devices: Devices) -> dict:
    """Register an additional decoy device."""
    try:
        device = devices.register(body)
    except DuplicateDeviceError:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=f"Device '{body.id}' already exists.") from None
    return envelope(device.model_dump(mode="json", by_alias=True))
