"""Discovered GATT service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .node import GATTNode

if TYPE_CHECKING:
    from .characteristic import Characteristic
    from .device import Device
    from .schema import ServiceDescription


class Service(GATTNode):
    """GATT service of a connected device."""

    description: ServiceDescription

    def __init__(self, device: Device, native: Any, description: ServiceDescription):
        super().__init__(native, description)
        self.device = device
        self.characteristics: list[Characteristic] = []

    @property
    def path(self) -> tuple[str, ...]:
        return (self.device.name, self.name)

    def add_characteristic(self, characteristic: Characteristic) -> None:
        """Attach a discovered characteristic."""
        self.characteristics.append(characteristic)
        self._register_member(characteristic)

    def find_characteristic(self, uuid: str) -> Characteristic | None:
        """Return the attached characteristic with this UUID, if any."""
        for characteristic in self.characteristics:
            if characteristic.uuid == uuid:
                return characteristic
        return None
