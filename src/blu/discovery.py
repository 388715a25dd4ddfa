"""Interface discovery: resolving a declared schema against a physical device."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import TYPE_CHECKING, Any

from .exceptions import (
    BluError,
    InterfaceDiscoveryError,
    InterfaceMatchingError,
    OperationError,
)
from .models.enums import ConnectionState, InterfaceMatching
from .schema import (
    CharacteristicDescription,
    DescriptorDescription,
    InterfaceDescription,
    ServiceDescription,
)
from .transport.base import GATTNotFoundError

if TYPE_CHECKING:
    from .characteristic import Characteristic
    from .device import Device
    from .service import Service

_LOGGER = logging.getLogger(__name__)


class DiscoveryAbandonedError(InterfaceDiscoveryError):
    """The connection attempt that started discovery was given up."""


class InterfaceDiscoveryEngine:
    """Builds a device's service/characteristic/descriptor graph.

    One attempt:
    1. Resolve every declared service, characteristic and descriptor by UUID.
       Missing optional nodes are skipped; missing required nodes mark the
       interface incomplete.
    2. Apply the interface matching policy (strict fails when incomplete).
    3. Optionally enumerate everything else on the device as generic nodes.
    4. Auto-subscribe notifiable characteristics.
    5. Await readiness hooks bottom-up: descriptors, characteristic, service.

    Failed attempts are retried ``discovery_attempts`` times with
    ``discovery_retry_delay`` seconds in between.
    """

    def __init__(self, device: Device):
        self._device = device
        self.attempts = 0

    async def discover(self, should_continue: Callable[[], bool] = lambda: True) -> None:
        """Run discovery with retries.

        Args:
            should_continue: Checked after every lookup and before every change
                to the device; discovery stops when it returns False (e.g. the
                connection attempt timed out)

        Raises:
            DiscoveryAbandonedError: If should_continue returned False
            InterfaceDiscoveryError: After the last failed attempt, wrapping its cause
        """
        device = self._device
        config = device.configuration
        last_error: BaseException | None = None
        self.attempts = 0

        for attempt in range(1, config.discovery_attempts + 1):
            run = _DiscoveryRun(device, should_continue)
            run.checkpoint()

            self.attempts = attempt
            try:
                await run.execute()
                _LOGGER.debug(
                    "%s: Interface discovered (attempt %d/%d)",
                    device.name,
                    attempt,
                    config.discovery_attempts,
                )
                return
            except DiscoveryAbandonedError:
                _LOGGER.debug("%s: Interface discovery abandoned", device.name)
                raise
            except Exception as e:
                last_error = e
                _LOGGER.warning(
                    "%s: Interface discovery attempt %d/%d failed: %s",
                    device.name,
                    attempt,
                    config.discovery_attempts,
                    e,
                )
                await run.reset()

            if attempt < config.discovery_attempts:
                run.enter(ConnectionState.DISCOVERING_INTERFACE)
                await asyncio.sleep(config.discovery_retry_delay)

        raise InterfaceDiscoveryError(
            "Could not discover the device's Bluetooth interface.",
            last_error,
            path=(device.name,),
        ) from last_error


class _DiscoveryRun:
    """One discovery attempt on behalf of one connection attempt."""

    def __init__(self, device: Device, should_continue: Callable[[], bool]):
        self._device = device
        self._should_continue = should_continue

    @property
    def _matching(self) -> InterfaceMatching:
        return self._device.configuration.interface_matching

    def checkpoint(self) -> None:
        """Raise if the owning connection attempt was given up.

        Raises:
            DiscoveryAbandonedError: The device now belongs to a newer attempt
        """
        if not self._should_continue():
            raise DiscoveryAbandonedError(
                "Interface discovery abandoned.", path=(self._device.name,)
            )

    def enter(self, state: ConnectionState) -> None:
        self.checkpoint()
        self._device._set_state(state)

    async def execute(self) -> None:
        device = self._device
        transport = device.transport

        if not transport.is_connected:
            # The link is sometimes reported as disconnected right after connecting
            await transport.connect()
            self.checkpoint()

        device._clear_services()

        incomplete = await self._discover_declared()
        if incomplete:
            if self._matching is InterfaceMatching.STRICT:
                raise InterfaceMatchingError(
                    "The device's Bluetooth interface does not match expectations. "
                    "Make sure the service descriptions are correct or relax the "
                    "interface matching policy.",
                    path=(device.name,),
                )
            _LOGGER.log(
                logging.WARNING if self._matching is InterfaceMatching.MINIMAL else logging.DEBUG,
                "%s: Interface incomplete, continuing (interface_matching=%s)",
                device.name,
                self._matching.value,
            )

        if device.configuration.extensive_discovery:
            await self._discover_additional()

        self.enter(ConnectionState.INITIALIZING)
        await self._auto_subscribe()
        await self._initialize()
        self.checkpoint()

    async def _lookup(self, operation: Callable[[], Awaitable[Any]]) -> Any:
        try:
            result = await self._device.perform_operation(operation)
        except OperationError:
            self.checkpoint()
            raise
        self.checkpoint()
        return result

    async def _resolve(
            self,
            description: InterfaceDescription,
            operation: Callable[[], Awaitable[Any]],
            location: str,
    ) -> Any | None:
        """Look up one declared node, returning None if it is unavailable."""
        try:
            return await self._lookup(operation)
        except OperationError as e:
            if description.optional:
                level = logging.DEBUG
                label = "optional"
            else:
                level = logging.DEBUG if self._matching is InterfaceMatching.OFF else logging.WARNING
                label = "required"
            _LOGGER.log(
                level,
                "%s: Could not discover %s %r (UUID: %s)%s: %s",
                self._device.name,
                label,
                description.name,
                description.uuid,
                location,
                e.cause or e,
            )
            return None

    async def _discover_declared(self) -> bool:
        """Resolve the declared interface. Returns True if a required node is missing."""
        device = self._device
        transport = device.transport
        incomplete = False

        for service_description in device.interface:
            native_service = await self._resolve(
                service_description,
                partial(transport.get_service, service_description.uuid),
                "",
            )
            if native_service is None:
                incomplete |= not service_description.optional
                continue

            service = service_description.create(device, native_service)
            device._add_service(service)
            incomplete |= await self._discover_declared_characteristics(
                service, service_description
            )

        return incomplete

    async def _discover_declared_characteristics(
            self,
            service: Service,
            service_description: ServiceDescription,
    ) -> bool:
        transport = self._device.transport
        incomplete = False

        for description in service_description.characteristics:
            native = await self._resolve(
                description,
                partial(transport.get_characteristic, service.native, description.uuid),
                f" in {service_description.name!r}",
            )
            if native is None:
                incomplete |= not description.optional
                continue

            characteristic = description.create(service, native)
            self._check_properties(characteristic, description)
            service.add_characteristic(characteristic)
            incomplete |= await self._discover_declared_descriptors(
                characteristic, description
            )

        return incomplete

    async def _discover_declared_descriptors(
            self,
            characteristic: Characteristic,
            characteristic_description: CharacteristicDescription,
    ) -> bool:
        transport = self._device.transport
        incomplete = False

        for description in characteristic_description.descriptors:
            native = await self._resolve(
                description,
                partial(transport.get_descriptor, characteristic.native, description.uuid),
                f" in {characteristic_description.name!r}",
            )
            if native is None:
                incomplete |= not description.optional
                continue

            characteristic.add_descriptor(description.create(characteristic, native))

        return incomplete

    def _check_properties(
            self,
            characteristic: Characteristic,
            description: CharacteristicDescription,
    ) -> None:
        if self._matching is InterfaceMatching.OFF or description.expected_properties is None:
            return
        mismatches = description.expected_properties.mismatches(characteristic.properties)
        if mismatches:
            _LOGGER.warning(
                "%s: %r (%s) has unexpected properties: %s",
                self._device.name,
                description.name,
                description.uuid,
                ", ".join(mismatches),
            )

    async def _discover_additional(self) -> None:
        """Add every undeclared service, characteristic and descriptor as a generic node."""
        device = self._device
        transport = device.transport

        for native_service in await self._lookup(transport.get_services):
            service = device.find_service(str(native_service.uuid).lower())
            if service is None:
                service = ServiceDescription(uuid=str(native_service.uuid)).create(
                    device, native_service
                )
                device._add_service(service)

            native_characteristics = await self._lookup(
                partial(transport.get_characteristics, service.native)
            )
            for native_characteristic in native_characteristics:
                uuid = str(native_characteristic.uuid).lower()
                characteristic = service.find_characteristic(uuid)
                if characteristic is None:
                    characteristic = CharacteristicDescription(uuid=uuid).create(
                        service, native_characteristic
                    )
                    service.add_characteristic(characteristic)

                await self._discover_additional_descriptors(characteristic)

    async def _discover_additional_descriptors(self, characteristic: Characteristic) -> None:
        try:
            natives = await self._lookup(
                partial(self._device.transport.get_descriptors, characteristic.native)
            )
        except OperationError as e:
            if not isinstance(e.cause, GATTNotFoundError):
                raise InterfaceDiscoveryError(
                    f"Could not discover descriptors of characteristic {characteristic.uuid}.",
                    e,
                    path=(self._device.name,),
                ) from e
            natives = []

        for native in natives:
            uuid = str(native.uuid).lower()
            if characteristic.find_descriptor(uuid) is None:
                characteristic.add_descriptor(
                    DescriptorDescription(uuid=uuid).create(characteristic, native)
                )

    async def _auto_subscribe(self) -> None:
        config = self._device.configuration
        for characteristic in self._device.characteristics:
            if (
                characteristic.properties.notify
                and not characteristic.is_listening
                and config.auto_subscribes(characteristic.description.identifier)
            ):
                self.checkpoint()
                await characteristic.start_notifications()

    async def _initialize(self) -> None:
        for service in self._device.services:
            for characteristic in service.characteristics:
                for descriptor in characteristic.descriptors:
                    self.checkpoint()
                    await descriptor.before_ready()
                self.checkpoint()
                await characteristic.before_ready()
            self.checkpoint()
            await service.before_ready()

    async def reset(self) -> None:
        """Undo a failed attempt: stop notifications it started and drop the graph."""
        for characteristic in self._device.characteristics:
            if characteristic.is_listening:
                self.checkpoint()
                try:
                    await characteristic.stop_notifications()
                except BluError as e:
                    _LOGGER.debug(
                        "%s: Could not stop notifications on %r: %s",
                        self._device.name,
                        characteristic.name,
                        e,
                    )
        self.checkpoint()
        self._device._clear_services()
