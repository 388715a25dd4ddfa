"""Discovered GATT descriptor."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

from .exceptions import BluError, OperationError
from .node import GATTNode
from .protocol.response import BYTES_LIKE, Response

if TYPE_CHECKING:
    from .characteristic import Characteristic
    from .device import Device
    from .schema import DescriptorDescription

_LOGGER = logging.getLogger(__name__)


class Descriptor(GATTNode):
    """GATT descriptor of a connected device."""

    response_type: ClassVar[type[Response]] = Response

    description: DescriptorDescription

    def __init__(
            self,
            characteristic: Characteristic,
            native: Any,
            description: DescriptorDescription,
    ):
        super().__init__(native, description)
        self.characteristic = characteristic
        self._value: bytes | None = None

    @property
    def device(self) -> Device:
        return self.characteristic.service.device

    @property
    def path(self) -> tuple[str, ...]:
        return self.characteristic.path + (self.name,)

    @property
    def value(self) -> bytes | None:
        """Last read value, None if never read."""
        return self._value

    async def read(self) -> Response:
        """Read the value and wrap it in ``response_type``."""
        return self.response_type(await self.read_value())

    async def read_value(self) -> bytes:
        """Read the value from the device.

        Raises:
            OperationError: If the read fails
        """
        async def _read() -> bytes:
            value = bytes(await self.device.transport.read_descriptor(self._native))
            self._value = value
            return value

        try:
            value = await self.device.perform_operation(_read)
        except BluError as e:
            raise OperationError("Could not read value.", e, path=self.path) from e

        if self.device.configuration.data_transfer_logging:
            _LOGGER.debug("%s: Read: %s", " → ".join(self.path), value.hex())
        return value

    async def write(self, value: bytes | bytearray | memoryview) -> None:
        """Write a value.

        Raises:
            OperationError: If the value is not bytes-like or the write fails
        """
        if not isinstance(value, BYTES_LIKE):
            raise OperationError(
                f"Value must be bytes-like, got {type(value).__name__}", path=self.path
            )

        data = bytes(value)
        if self.device.configuration.data_transfer_logging:
            _LOGGER.debug("%s: Write: %s", " → ".join(self.path), data.hex())

        try:
            await self.device.perform_operation(
                lambda: self.device.transport.write_descriptor(self._native, data)
            )
        except BluError as e:
            raise OperationError("Could not write value.", e, path=self.path) from e
