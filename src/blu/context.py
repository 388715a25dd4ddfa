"""Shared state for a group of devices."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pyee.base import EventEmitter

from .config import Configuration

if TYPE_CHECKING:
    from .device import Device
    from .scanner import Scanner

_LOGGER = logging.getLogger(__name__)


class BluContext(EventEmitter):
    """Configuration and connected-device registry shared by devices.

    Devices re-emit their ``connected``, ``disconnected`` and
    ``connection-lost`` events here, which keeps ``connected_devices`` current.

    Usage:
        context = BluContext()
        context.configure(interface_matching="minimal", connection_timeout=15.0)
        device = await context.scanner().get_device()
        await device.connect()
    """

    EVENT_CONNECTED = "connected"
    EVENT_DISCONNECTED = "disconnected"
    EVENT_CONNECTION_LOST = "connection-lost"

    def __init__(self, configuration: Configuration | None = None):
        super().__init__()
        self._configuration = configuration or Configuration()
        # dict keeps connection order
        self._connected: dict[Device, None] = {}

        self.on(self.EVENT_CONNECTED, self._on_connected)
        self.on(self.EVENT_DISCONNECTED, self._on_gone)
        self.on(self.EVENT_CONNECTION_LOST, self._on_gone)

    @property
    def configuration(self) -> Configuration:
        """Active configuration."""
        return self._configuration

    def configure(self, **options: Any) -> Configuration:
        """Replace selected options of the active configuration.

        Raises:
            ConfigurationError: If an option is unknown or invalid
        """
        self._configuration = self._configuration.update(**options)
        return self._configuration

    def restore_defaults(self) -> None:
        """Reset the configuration to its defaults."""
        self._configuration = Configuration()

    @property
    def connected_devices(self) -> list[Device]:
        """Connected devices in connection order."""
        return list(self._connected)

    @property
    def connected_device(self) -> Device | None:
        """Most recently connected device, or None."""
        return next(reversed(self._connected), None)

    def scanner(self) -> Scanner:
        """Create a scanner bound to this context."""
        from .scanner import Scanner

        return Scanner(self)

    def _on_connected(self, device: Device) -> None:
        self._connected[device] = None
        _LOGGER.debug("%s registered as connected", device.name)

    def _on_gone(self, device: Device) -> None:
        self._connected.pop(device, None)
