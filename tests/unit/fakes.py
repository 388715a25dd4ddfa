"""In-memory GATT transport shared by the unit tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Any

from blu import BluContext, Device
from blu.schema import normalize_uuid
from blu.transport import GATTNotFoundError

ADDRESS = "AA:BB:CC:DD:EE:FF"


class FakeDescriptor:
    def __init__(self, uuid: str | int, value: bytes = b""):
        self.uuid = normalize_uuid(uuid)
        self.value = value
        self.handle = id(self)


class FakeCharacteristic:
    def __init__(
            self,
            uuid: str | int,
            properties: Sequence[str] = ("read",),
            value: bytes = b"",
            descriptors: Sequence[FakeDescriptor] = (),
    ):
        self.uuid = normalize_uuid(uuid)
        self.properties = list(properties)
        self.value = value
        self.descriptors = list(descriptors)


class FakeService:
    def __init__(self, uuid: str | int, characteristics: Sequence[FakeCharacteristic] = ()):
        self.uuid = normalize_uuid(uuid)
        self.characteristics = list(characteristics)


class FakeTransport:
    """GATT transport backed by a fixed tree of fake services.

    ``responders`` maps a characteristic UUID to a function turning written
    data into the notifications the device sends back.
    """

    def __init__(
            self,
            services: Sequence[FakeService] = (),
            address: str = ADDRESS,
            name: str | None = "Fake Device",
    ):
        self.services = list(services)
        self._address = address
        self._name = name
        self.connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.connect_gate: asyncio.Event | None = None
        self.connect_error: Exception | None = None
        self.disconnect_error: Exception | None = None
        self.service_lookup_failures = 0
        self.lookup_gate: asyncio.Event | None = None
        self.read_gate: asyncio.Event | None = None
        self.disconnected_callback: Callable[[], None] | None = None
        self.writes: list[tuple[str, bytes, bool]] = []
        self.write_error: Exception | None = None
        self.subscriptions: dict[str, Callable[[Any, bytearray], None]] = {}
        self.responders: dict[str, Callable[[bytes], list[bytes]]] = {}
        self.log: list[str] = []

    @property
    def address(self) -> str:
        return self._address

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def is_connected(self) -> bool:
        return self.connected

    def set_disconnected_callback(self, callback: Callable[[], None] | None) -> None:
        self.disconnected_callback = callback

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.disconnect_error is not None:
            raise self.disconnect_error
        was_connected, self.connected = self.connected, False
        if was_connected and self.disconnected_callback is not None:
            self.disconnected_callback()

    def drop_link(self) -> None:
        """Simulate the peripheral going out of range."""
        self.connected = False
        if self.disconnected_callback is not None:
            self.disconnected_callback()

    async def get_service(self, uuid: str) -> FakeService:
        if self.lookup_gate is not None:
            # Only the next lookup waits for the gate
            gate, self.lookup_gate = self.lookup_gate, None
            await gate.wait()
        if self.service_lookup_failures:
            self.service_lookup_failures -= 1
            raise RuntimeError("GATT server busy")
        for service in self.services:
            if service.uuid == uuid:
                return service
        raise GATTNotFoundError(f"Service {uuid} not found")

    async def get_services(self) -> list[FakeService]:
        return list(self.services)

    async def get_characteristic(self, service: FakeService, uuid: str) -> FakeCharacteristic:
        for characteristic in service.characteristics:
            if characteristic.uuid == uuid:
                return characteristic
        raise GATTNotFoundError(f"Characteristic {uuid} not found")

    async def get_characteristics(self, service: FakeService) -> list[FakeCharacteristic]:
        return list(service.characteristics)

    async def get_descriptor(
            self, characteristic: FakeCharacteristic, uuid: str
    ) -> FakeDescriptor:
        for descriptor in characteristic.descriptors:
            if descriptor.uuid == uuid:
                return descriptor
        raise GATTNotFoundError(f"Descriptor {uuid} not found")

    async def get_descriptors(self, characteristic: FakeCharacteristic) -> list[FakeDescriptor]:
        return list(characteristic.descriptors)

    async def read_characteristic(self, characteristic: FakeCharacteristic) -> bytes:
        self.log.append(f"read {characteristic.uuid}")
        if self.read_gate is not None:
            await self.read_gate.wait()
        return characteristic.value

    async def write_characteristic(
            self,
            characteristic: FakeCharacteristic,
            data: bytes,
            response: bool,
    ) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.writes.append((characteristic.uuid, data, response))
        characteristic.value = data

        responder = self.responders.get(characteristic.uuid)
        if responder is not None:
            loop = asyncio.get_running_loop()
            for chunk in responder(data):
                loop.call_soon(self.notify, characteristic.uuid, chunk)

    async def read_descriptor(self, descriptor: FakeDescriptor) -> bytes:
        return descriptor.value

    async def write_descriptor(self, descriptor: FakeDescriptor, data: bytes) -> None:
        descriptor.value = data

    async def start_notify(
            self,
            characteristic: FakeCharacteristic,
            callback: Callable[[Any, bytearray], None],
    ) -> None:
        self.log.append(f"subscribe {characteristic.uuid}")
        self.subscriptions[characteristic.uuid] = callback

    async def stop_notify(self, characteristic: FakeCharacteristic) -> None:
        self.log.append(f"unsubscribe {characteristic.uuid}")
        self.subscriptions.pop(characteristic.uuid, None)

    def notify(self, uuid: str | int, data: bytes) -> None:
        """Push a notification to the subscribed callback, if any."""
        callback = self.subscriptions.get(normalize_uuid(uuid))
        if callback is not None:
            callback(None, bytearray(data))


def make_device(
        transport: FakeTransport,
        interface: Sequence[Any] = (),
        device_type: type[Device] = Device,
        **options: Any,
) -> Device:
    """Create a device with its own context; discovery retries without delay."""
    context = BluContext()
    context.configure(discovery_retry_delay=0, **options)
    return device_type(transport, context=context, interface=interface)
