"""Discovered GATT characteristic."""

from __future__ import annotations

import logging
from collections.abc import Hashable, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from .exceptions import BluError, OperationError
from .models.properties import CharacteristicProperties
from .node import GATTNode
from .protocol.correlator import DEFAULT_REQUEST_TIMEOUT, RequestCorrelator
from .protocol.request import Request
from .protocol.response import BYTES_LIKE, CompoundResponse, Response
from .protocol.threads import ResponseThreadManager

if TYPE_CHECKING:
    from .descriptor import Descriptor
    from .device import Device
    from .schema import CharacteristicDescription
    from .service import Service

_LOGGER = logging.getLogger(__name__)


class Characteristic(GATTNode):
    """GATT characteristic of a connected device.

    Emits ``notification`` with a ``response_type`` instance for every value
    pushed by the device. Subclasses streaming multi-part data set
    ``compound_response_type`` and override ``thread_id``; completed threads
    are emitted as ``compound-notification``.
    """

    EVENT_NOTIFICATION = "notification"
    EVENT_COMPOUND_NOTIFICATION = "compound-notification"

    response_type: ClassVar[type[Response]] = Response
    compound_response_type: ClassVar[type[CompoundResponse] | None] = None

    description: CharacteristicDescription

    def __init__(
            self,
            service: Service,
            native: Any,
            description: CharacteristicDescription,
    ):
        super().__init__(native, description)
        self.service = service
        self.properties = CharacteristicProperties.from_names(native.properties)
        self.descriptors: list[Descriptor] = []
        self.response_threads = ResponseThreadManager()
        self._correlator = RequestCorrelator(self)
        self._value: bytes | None = None

    @property
    def device(self) -> Device:
        return self.service.device

    @property
    def path(self) -> tuple[str, ...]:
        return (self.device.name, self.service.name, self.name)

    @property
    def value(self) -> bytes | None:
        """Last known value (from a read or notification), None if never seen."""
        return self._value

    @property
    def is_listening(self) -> bool:
        """Whether notifications are enabled."""
        return bool(self.properties.is_listening)

    @property
    def has_expected_properties(self) -> bool:
        """Whether the properties match the description's expectations."""
        expected = self.description.expected_properties
        return expected is None or expected.matches(self.properties)

    def add_descriptor(self, descriptor: Descriptor) -> None:
        """Attach a discovered descriptor."""
        self.descriptors.append(descriptor)
        self._register_member(descriptor)

    def find_descriptor(self, uuid: str) -> Descriptor | None:
        """Return the attached descriptor with this UUID, if any."""
        for descriptor in self.descriptors:
            if descriptor.uuid == uuid:
                return descriptor
        return None

    def thread_id(self, response: Response) -> Hashable | None:
        """Return the thread a notification belongs to, or None if it is standalone.

        Only consulted when ``compound_response_type`` is set.
        """
        return None

    def log_data_transfer(self, label: str, data: bytes | None) -> None:
        """Log payloads when data transfer logging is enabled."""
        if self.device.configuration.data_transfer_logging:
            _LOGGER.debug(
                "%s: %s: %s",
                " → ".join(self.path),
                label,
                data.hex() if data is not None else None,
            )

    async def read(self) -> Response:
        """Read the value and wrap it in ``response_type``."""
        return self.response_type(await self.read_value())

    async def read_value(self) -> bytes:
        """Read the value from the device.

        Raises:
            OperationError: If not readable or the read fails
        """
        if not self.properties.read:
            raise OperationError(
                "Could not read from a non-readable characteristic.", path=self.path
            )

        async def _read() -> bytes:
            value = bytes(await self.device.transport.read_characteristic(self._native))
            # Cached even when the caller already timed out
            self._value = value
            return value

        try:
            value = await self.device.perform_operation(_read)
        except BluError as e:
            raise OperationError("Could not read value.", e, path=self.path) from e

        self.log_data_transfer("Read", value)
        return value

    async def write(
            self,
            value: bytes | bytearray | memoryview,
            without_response: bool = False,
    ) -> None:
        """Write a value.

        Args:
            value: Data to write
            without_response: Use write-without-response

        Raises:
            OperationError: If the characteristic does not support the write
                type, the value is not bytes-like, or the write fails
        """
        if without_response and not self.properties.write_without_response:
            raise OperationError(
                "Cannot write without response to a characteristic without the "
                '"write-without-response" property.',
                path=self.path,
            )
        if not without_response and not self.properties.write:
            raise OperationError(
                "Cannot write to a non-writable characteristic.", path=self.path
            )
        if not isinstance(value, BYTES_LIKE):
            raise OperationError(
                f"Value must be bytes-like, got {type(value).__name__}", path=self.path
            )

        data = bytes(value)
        self.log_data_transfer("Write", data)

        try:
            await self.device.perform_operation(
                lambda: self.device.transport.write_characteristic(
                    self._native, data, not without_response
                )
            )
        except BluError as e:
            raise OperationError("Could not write.", e, path=self.path) from e

    async def request(
            self,
            request: Request,
            timeout: float | None = DEFAULT_REQUEST_TIMEOUT,
    ) -> Response | CompoundResponse:
        """Write a request and wait for the notification answering it.

        See RequestCorrelator.request.
        """
        return await self._correlator.request(request, timeout)

    async def request_all(
            self,
            requests: Sequence[Request],
            timeout: float | None = DEFAULT_REQUEST_TIMEOUT,
    ) -> list[Response | CompoundResponse]:
        """Send requests sequentially, responses in request order."""
        return await self._correlator.request_all(requests, timeout)

    async def start_notifications(self) -> None:
        """Subscribe to value notifications.

        Raises:
            OperationError: If not notifiable, already listening, or the
                subscription fails
        """
        if not self.properties.notify:
            raise OperationError(
                "Could not start listening for notifications on a non-notifying "
                "characteristic.",
                path=self.path,
            )
        if self.properties.is_listening:
            raise OperationError(
                "Already listening for notifications.", path=self.path
            )

        try:
            await self.device.perform_operation(
                lambda: self.device.transport.start_notify(
                    self._native, self._on_notification
                )
            )
        except BluError as e:
            raise OperationError(
                "Could not start listening for notifications.", e, path=self.path
            ) from e

        self.properties.is_listening = True
        _LOGGER.debug("%s: Started listening for notifications", " → ".join(self.path))

    async def stop_notifications(self) -> None:
        """Unsubscribe from value notifications.

        Raises:
            OperationError: If not listening or the unsubscription fails
        """
        if not self.properties.is_listening:
            raise OperationError(
                "Not listening for notifications.", path=self.path
            )

        try:
            await self.device.perform_operation(
                lambda: self.device.transport.stop_notify(self._native)
            )
        except BluError as e:
            raise OperationError(
                "Could not stop listening for notifications.", e, path=self.path
            ) from e

        self.properties.is_listening = False
        _LOGGER.debug("%s: Stopped listening for notifications", " → ".join(self.path))

    def _on_notification(self, sender: Any, data: bytearray) -> None:
        """Handle a value pushed by the device.

        Args:
            sender: Native characteristic (ignored)
            data: Notification data
        """
        self._value = bytes(data)
        self.log_data_transfer("Notification", self._value)

        try:
            response = self.response_type(self._value)
        except BluError as e:
            _LOGGER.warning("%s: Dropped notification: %s", " → ".join(self.path), e)
            return

        self.emit(self.EVENT_NOTIFICATION, response)

        compound_type = self.compound_response_type
        if compound_type is None:
            return

        thread_id = self.thread_id(response)
        if thread_id is None or not compound_type.validator(response):
            return

        partial = Response(response.data)
        self.response_threads.add(thread_id, partial)
        if compound_type.has_follow_up(partial):
            return

        compound = compound_type(*self.response_threads.resolve(thread_id))
        compound.complete()
        self.log_data_transfer("Compound notification", compound.data)
        self.emit(self.EVENT_COMPOUND_NOTIFICATION, compound)
