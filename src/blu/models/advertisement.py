"""BLE advertisement data structures."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData


@dataclass(frozen=True)
class DeviceAdvertisement:
    """One advertisement received from a device.

    Attributes:
        address: Device address (MAC, or platform UUID on macOS)
        name: Advertised local name, falling back to the device name
        manufacturer_data: Manufacturer data keyed by company identifier
        service_data: Service data keyed by service UUID
        service_uuids: Advertised service UUIDs
        signal_strength: RSSI in dBm
        transmission_power: TX power in dBm, if advertised
        timestamp: Reception time (``time.time()``)
    """
    address: str
    name: str | None = None
    manufacturer_data: dict[int, bytes] = field(default_factory=dict)
    service_data: dict[str, bytes] = field(default_factory=dict)
    service_uuids: tuple[str, ...] = ()
    signal_strength: int | None = None
    transmission_power: int | None = None
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_bleak(
        cls,
        device: BLEDevice,
        advertisement: AdvertisementData,
    ) -> DeviceAdvertisement:
        """Build from the pair bleak passes to a detection callback."""
        return cls(
            address=device.address,
            name=advertisement.local_name or device.name,
            manufacturer_data={
                company: bytes(data)
                for company, data in advertisement.manufacturer_data.items()
            },
            service_data={
                uuid: bytes(data)
                for uuid, data in advertisement.service_data.items()
            },
            service_uuids=tuple(advertisement.service_uuids),
            signal_strength=advertisement.rssi,
            transmission_power=advertisement.tx_power,
        )
