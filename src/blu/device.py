"""Bluetooth device and its connection lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from bleak import BleakScanner
from pyee.base import EventEmitter

from .config import Configuration
from .context import BluContext
from .discovery import InterfaceDiscoveryEngine
from .exceptions import (
    ConnectionTimeoutError,
    ConstructionError,
    DeviceConnectionError,
    DeviceOperationError,
)
from .models.advertisement import DeviceAdvertisement
from .models.enums import ConnectionState
from .node import MemberLookup
from .operation_queue import OperationQueue
from .schema import ServiceDescription, validate_interface
from .transport.base import GATTTransport
from .transport.connection import BleakTransport

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData

    from .characteristic import Characteristic
    from .service import Service

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
D = TypeVar("D", bound="Device")


class _ConnectAttempt:
    """Result channel of one connect() call; abandoned once the caller gave up."""

    def __init__(self) -> None:
        self.abandoned = False


class Device(MemberLookup, EventEmitter):
    """Bluetooth device.

    Declare the expected GATT interface on a subclass (or pass it in), then
    connect. Services, characteristics and descriptors with an identifier
    become attributes.

    Usage:
        class Thermometer(Device):
            interface = [
                ServiceDescription(
                    uuid=0x180F,
                    identifier="battery",
                    characteristics=[
                        CharacteristicDescription(uuid=0x2A19, identifier="level"),
                    ],
                ),
            ]

        async with Thermometer.from_address("AA:BB:CC:DD:EE:FF") as device:
            level = await device.battery.level.read_value()

    Events:
        connected, disconnected, connection-lost: the device
        advertised: a DeviceAdvertisement
        state-changed: previous and new ConnectionState
    """

    EVENT_CONNECTED = "connected"
    EVENT_DISCONNECTED = "disconnected"
    EVENT_CONNECTION_LOST = "connection-lost"
    EVENT_ADVERTISED = "advertised"
    EVENT_STATE_CHANGED = "state-changed"

    interface: ClassVar[Sequence[ServiceDescription]] = ()

    def __init__(
            self,
            transport: GATTTransport,
            *,
            context: BluContext | None = None,
            interface: Sequence[ServiceDescription] | None = None,
            name: str | None = None,
    ):
        """Initialize device.

        Args:
            transport: Native GATT transport of the device
            context: Shared context (a private one is created if omitted)
            interface: Expected interface, overriding the class attribute
            name: Display name (defaults to the transport's device name)

        Raises:
            ConstructionError: If the transport is missing or the interface is invalid
        """
        EventEmitter.__init__(self)
        self._members: dict[str, Any] = {}
        self.name = name or getattr(transport, "name", None) or "Unnamed Device"

        if transport is None:
            raise ConstructionError("GATT transport unavailable.", path=(self.name,))

        try:
            self.interface = validate_interface(
                interface if interface is not None else type(self).interface
            )
        except ConstructionError as e:
            raise ConstructionError(
                "The device's interface description is invalid.", e, path=(self.name,)
            ) from e

        self.transport = transport
        self.id = transport.address
        self.context = context or BluContext()
        self.services: list[Service] = []

        self._queue = OperationQueue()
        self._discovery = InterfaceDiscoveryEngine(self)
        self._state = ConnectionState.DISCONNECTED
        self._will_disconnect = False
        self._attempt: _ConnectAttempt | None = None
        self._advertisement_scanner: BleakScanner | None = None

    @classmethod
    def from_ble_device(
            cls: type[D],
            ble_device: BLEDevice,
            *,
            context: BluContext | None = None,
            interface: Sequence[ServiceDescription] | None = None,
            **transport_options: Any,
    ) -> D:
        """Create a device from a BLEDevice found by a bleak scan."""
        return cls(
            BleakTransport(ble_device.address, ble_device, **transport_options),
            context=context,
            interface=interface,
        )

    @classmethod
    def from_address(
            cls: type[D],
            address: str,
            *,
            context: BluContext | None = None,
            interface: Sequence[ServiceDescription] | None = None,
            **transport_options: Any,
    ) -> D:
        """Create a device from its address; it is scanned for on connect."""
        return cls(
            BleakTransport(address, **transport_options),
            context=context,
            interface=interface,
        )

    async def __aenter__(self: D) -> D:
        """Connect (context manager entry)."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect if still connected (context manager exit)."""
        if self._state is ConnectionState.CONNECTED:
            await self.disconnect()

    @property
    def configuration(self) -> Configuration:
        return self.context.configuration

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Whether the device is connected and its interface is ready."""
        return self._state is ConnectionState.CONNECTED and self.transport.is_connected

    @property
    def characteristics(self) -> list[Characteristic]:
        """All discovered characteristics across services."""
        return [c for service in self.services for c in service.characteristics]

    @property
    def operation_queue(self) -> OperationQueue:
        return self._queue

    @property
    def discovery_attempts(self) -> int:
        """Number of discovery attempts the last connection needed."""
        return self._discovery.attempts

    def perform_operation(self, operation: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Queue a GATT operation behind all earlier ones.

        Raises:
            OperationQueueError: Immediately, if operation is not callable

        The returned future fails with OperationError when the operation fails
        or takes longer than the queue's operation timeout.
        """
        return self._queue.add(operation)

    def find_service(self, uuid: str) -> Service | None:
        """Return the discovered service with this UUID, if any."""
        for service in self.services:
            if service.uuid == uuid:
                return service
        return None

    async def before_ready(self) -> None:
        """Hook awaited after discovery, before ``connected`` is emitted.

        Override to run setup reads or writes.
        """

    async def connect(self) -> None:
        """Connect, discover the interface and initialize it.

        Raises:
            DeviceOperationError: If the device is not disconnected
            ConnectionTimeoutError: If ``connection_timeout`` elapses first
            DeviceConnectionError: If any stage fails (wrapping the cause)
        """
        if self._state is not ConnectionState.DISCONNECTED:
            raise DeviceOperationError(
                f"Cannot connect a device that is {self._state.value}.", path=(self.name,)
            )

        attempt = _ConnectAttempt()
        self._attempt = attempt
        timeout = self.configuration.connection_timeout

        _LOGGER.info("%s: Connecting...", self.name)
        task = asyncio.ensure_future(self._establish(attempt))

        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            await self._abandon(attempt, task)
            raise

        if not done:
            await self._abandon(attempt, task)
            raise ConnectionTimeoutError(
                f"Connection attempt timed out after {timeout} s.", path=(self.name,)
            )

        error = task.exception()
        if error is not None:
            await self._teardown()
            raise DeviceConnectionError(
                "Could not connect the device.", error, path=(self.name,)
            ) from error

        if not self.transport.is_connected:
            await self._teardown()
            raise DeviceConnectionError(
                "Connection lost while initializing the device.", path=(self.name,)
            )

        self._set_state(ConnectionState.CONNECTED)
        _LOGGER.info("%s: Connected", self.name)
        self._emit_lifecycle(self.EVENT_CONNECTED)

    async def disconnect(self) -> None:
        """Disconnect the device.

        Raises:
            DeviceOperationError: If the device is not connected
            DeviceConnectionError: If the native disconnect fails
        """
        if self._state is not ConnectionState.CONNECTED:
            raise DeviceOperationError(
                "Cannot disconnect a device that is not connected.", path=(self.name,)
            )

        self._set_state(ConnectionState.DISCONNECTING)
        self._will_disconnect = True
        try:
            await self.transport.disconnect()
        except Exception as e:
            if self.transport.is_connected:
                self._set_state(ConnectionState.CONNECTED)
            else:
                self._on_link_down()
            raise DeviceConnectionError(
                "Could not disconnect the device.", e, path=(self.name,)
            ) from e
        else:
            # Native event may arrive late or not at all
            if self._state is ConnectionState.DISCONNECTING:
                self._on_link_down()
        finally:
            self._will_disconnect = False

    async def start_reporting_advertisements(self) -> None:
        """Start emitting ``advertised`` for this device's advertisements.

        Raises:
            DeviceOperationError: If already reporting or the scanner cannot start
        """
        if self._advertisement_scanner is not None:
            raise DeviceOperationError(
                "Already reporting advertisements.", path=(self.name,)
            )

        scanner = BleakScanner(detection_callback=self._on_advertisement_received)
        try:
            await scanner.start()
        except Exception as e:
            raise DeviceOperationError(
                "Could not start reporting advertisements.", e, path=(self.name,)
            ) from e
        self._advertisement_scanner = scanner

    async def stop_reporting_advertisements(self) -> None:
        """Stop emitting ``advertised`` events.

        Raises:
            DeviceOperationError: If not reporting advertisements
        """
        if self._advertisement_scanner is None:
            raise DeviceOperationError(
                "Cannot stop reporting advertisements on a device that is not "
                "reporting advertisements.",
                path=(self.name,),
            )
        scanner, self._advertisement_scanner = self._advertisement_scanner, None
        await scanner.stop()

    async def _establish(self, attempt: _ConnectAttempt) -> None:
        try:
            self._set_state(ConnectionState.CONNECTING)
            await self.transport.connect()
            if attempt.abandoned:
                return

            self._set_state(ConnectionState.DISCOVERING_INTERFACE)
            await self._discovery.discover(lambda: not attempt.abandoned)
            if attempt.abandoned:
                return

            self.transport.set_disconnected_callback(self._on_link_disconnected)
            self._set_state(ConnectionState.INITIALIZING)
            await self.before_ready()
        finally:
            # The native connect or discovery may finish after the caller gave up
            if attempt.abandoned and self._attempt is attempt:
                await self._teardown()

    async def _abandon(self, attempt: _ConnectAttempt, task: asyncio.Future[None]) -> None:
        attempt.abandoned = True
        task.add_done_callback(_retrieve_result)
        await self._teardown()

    async def _teardown(self) -> None:
        """Best-effort return to Disconnected after a failed connection attempt."""
        self.transport.set_disconnected_callback(None)
        if self.transport.is_connected:
            try:
                await self.transport.disconnect()
            except Exception as e:
                # Device is in an unknown state and gets discarded anyway
                _LOGGER.debug("%s: Disconnect during teardown failed: %s", self.name, e)
        self._clear_services()
        self._set_state(ConnectionState.DISCONNECTED)

    def _on_link_disconnected(self) -> None:
        """Native disconnect event."""
        if self._state in (ConnectionState.CONNECTED, ConnectionState.DISCONNECTING):
            self._on_link_down()

    def _on_link_down(self) -> None:
        self.transport.set_disconnected_callback(None)
        intentional = self._will_disconnect

        if intentional:
            _LOGGER.info("%s: Disconnected", self.name)
        else:
            self._set_state(ConnectionState.CONNECTION_LOST)
            _LOGGER.warning("%s: Connection lost", self.name)

        self._clear_services()
        self._set_state(ConnectionState.DISCONNECTED)
        self._emit_lifecycle(
            self.EVENT_DISCONNECTED if intentional else self.EVENT_CONNECTION_LOST
        )

    def _on_advertisement_received(
            self,
            ble_device: BLEDevice,
            advertisement_data: AdvertisementData,
    ) -> None:
        if ble_device.address.lower() != self.id.lower():
            return
        self.emit(
            self.EVENT_ADVERTISED,
            DeviceAdvertisement.from_bleak(ble_device, advertisement_data),
        )

    def _emit_lifecycle(self, event: str) -> None:
        self.emit(event, self)
        self.context.emit(event, self)

    def _set_state(self, state: ConnectionState) -> None:
        previous, self._state = self._state, state
        if previous is not state:
            _LOGGER.debug("%s: %s -> %s", self.name, previous.value, state.value)
            self.emit(self.EVENT_STATE_CHANGED, previous, state)

    def _add_service(self, service: Service) -> None:
        self.services.append(service)
        self._register_member(service)

    def _clear_services(self) -> None:
        self.services.clear()
        self._members.clear()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} {self.id} {self._state.value}>"


def _retrieve_result(task: asyncio.Future[Any]) -> None:
    if not task.cancelled() and task.exception() is not None:
        _LOGGER.debug("Abandoned connection attempt failed: %s", task.exception())
