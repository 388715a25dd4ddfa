"""Bleak-backed GATT transport."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bleak import BleakClient, BleakScanner
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from .base import DisconnectedCallback, GATTNotFoundError, NotifyCallback

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.descriptor import BleakGATTDescriptor
    from bleak.backends.device import BLEDevice
    from bleak.backends.service import BleakGATTService

_LOGGER = logging.getLogger(__name__)


class BleakTransport:
    """GATT transport over a BleakClient.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Lookups resolved against the services bleak discovered on connect
    """

    def __init__(
            self,
            address: str,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
    ):
        """Initialize transport.

        Args:
            address: Device address
            ble_device: Optional BLEDevice (e.g. from a scan or Home Assistant)
            timeout: Scan and connect timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
        """
        self._address = address
        self.ble_device = ble_device
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

        self._client: BleakClient | None = None
        self._disconnected_callback: DisconnectedCallback | None = None

    @property
    def address(self) -> str:
        return self._address

    @property
    def name(self) -> str | None:
        return self.ble_device.name if self.ble_device else None

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to device."""
        return self._client is not None and self._client.is_connected

    def set_disconnected_callback(self, callback: DisconnectedCallback | None) -> None:
        self._disconnected_callback = callback

    async def connect(self) -> None:
        """Establish the link.

        Raises:
            GATTNotFoundError: If the device cannot be found by address
            BleakError: If the connection fails
        """
        if self.is_connected:
            return

        if self.ble_device is None:
            # For address-only usage, scan for the device
            self.ble_device = await BleakScanner.find_device_by_address(
                self._address,
                timeout=self.timeout,
            )
            if self.ble_device is None:
                raise GATTNotFoundError(f"Device {self._address} not found during scan")

        _LOGGER.debug(
            "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
            self._address,
            self.max_attempts,
        )

        self._client = await establish_connection(
            client_class=BleakClientWithServiceCache,
            device=self.ble_device,
            name=self.ble_device.name or self._address,
            disconnected_callback=self._on_disconnected,
            max_attempts=self.max_attempts,
            use_services_cache=self.use_services_cache,
            timeout=self.timeout,
        )

        _LOGGER.debug("Link established to %s", self._address)

    async def disconnect(self) -> None:
        """Close the link.

        The client is kept if the native disconnect fails, so the link still
        reports as connected.
        """
        client = self._client
        if client is not None and client.is_connected:
            _LOGGER.debug("Disconnecting from %s", self._address)
            await client.disconnect()
        self._client = None

    def _on_disconnected(self, client: BleakClient) -> None:
        if self._disconnected_callback is not None:
            self._disconnected_callback()

    def _require_client(self) -> BleakClient:
        if self._client is None or not self._client.is_connected:
            raise ConnectionError(f"{self._address} is not connected")
        return self._client

    async def get_service(self, uuid: str) -> BleakGATTService:
        service = self._require_client().services.get_service(uuid)
        if service is None:
            raise GATTNotFoundError(f"Service {uuid} not found")
        return service

    async def get_services(self) -> list[BleakGATTService]:
        return list(self._require_client().services)

    async def get_characteristic(
            self, service: BleakGATTService, uuid: str
    ) -> BleakGATTCharacteristic:
        characteristic = service.get_characteristic(uuid)
        if characteristic is None:
            raise GATTNotFoundError(f"Characteristic {uuid} not found in {service.uuid}")
        return characteristic

    async def get_characteristics(
            self, service: BleakGATTService
    ) -> list[BleakGATTCharacteristic]:
        return list(service.characteristics)

    async def get_descriptor(
            self, characteristic: BleakGATTCharacteristic, uuid: str
    ) -> BleakGATTDescriptor:
        descriptor = characteristic.get_descriptor(uuid)
        if descriptor is None:
            raise GATTNotFoundError(
                f"Descriptor {uuid} not found in {characteristic.uuid}"
            )
        return descriptor

    async def get_descriptors(
            self, characteristic: BleakGATTCharacteristic
    ) -> list[BleakGATTDescriptor]:
        return list(characteristic.descriptors)

    async def read_characteristic(self, characteristic: BleakGATTCharacteristic) -> bytes:
        return bytes(await self._require_client().read_gatt_char(characteristic))

    async def write_characteristic(
            self,
            characteristic: BleakGATTCharacteristic,
            data: bytes,
            response: bool,
    ) -> None:
        await self._require_client().write_gatt_char(characteristic, data, response=response)

    async def read_descriptor(self, descriptor: BleakGATTDescriptor) -> bytes:
        return bytes(await self._require_client().read_gatt_descriptor(descriptor.handle))

    async def write_descriptor(self, descriptor: BleakGATTDescriptor, data: bytes) -> None:
        await self._require_client().write_gatt_descriptor(descriptor.handle, data)

    async def start_notify(
            self,
            characteristic: BleakGATTCharacteristic,
            callback: NotifyCallback,
    ) -> None:
        await self._require_client().start_notify(characteristic, callback)

    async def stop_notify(self, characteristic: BleakGATTCharacteristic) -> None:
        await self._require_client().stop_notify(characteristic)
