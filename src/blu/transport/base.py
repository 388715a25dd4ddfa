"""Native GATT transport interface."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

NotifyCallback = Callable[[Any, bytearray], None]
DisconnectedCallback = Callable[[], None]


class GATTNotFoundError(LookupError):
    """Raised by a transport when a service, characteristic or descriptor is absent."""


class GATTTransport(Protocol):
    """Primitive GATT capability of one remote device.

    Native objects returned by lookups expose ``uuid``; characteristics also
    expose ``properties`` (names such as ``"read"`` or ``"notify"``).
    """

    @property
    def address(self) -> str: ...

    @property
    def name(self) -> str | None: ...

    @property
    def is_connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    def set_disconnected_callback(self, callback: DisconnectedCallback | None) -> None:
        """Install the handler for unsolicited link loss (None removes it)."""

    async def get_service(self, uuid: str) -> Any: ...

    async def get_services(self) -> list[Any]: ...

    async def get_characteristic(self, service: Any, uuid: str) -> Any: ...

    async def get_characteristics(self, service: Any) -> list[Any]: ...

    async def get_descriptor(self, characteristic: Any, uuid: str) -> Any: ...

    async def get_descriptors(self, characteristic: Any) -> list[Any]: ...

    async def read_characteristic(self, characteristic: Any) -> bytes: ...

    async def write_characteristic(
            self, characteristic: Any, data: bytes, response: bool
    ) -> None: ...

    async def read_descriptor(self, descriptor: Any) -> bytes: ...

    async def write_descriptor(self, descriptor: Any, data: bytes) -> None: ...

    async def start_notify(self, characteristic: Any, callback: NotifyCallback) -> None: ...

    async def stop_notify(self, characteristic: Any) -> None: ...
