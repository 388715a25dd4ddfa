"""Finding devices by their advertisements."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bleak import BleakScanner
from pyee.base import EventEmitter

from .config import ScannerFilter
from .device import Device
from .exceptions import ScannerError
from .models.advertisement import DeviceAdvertisement
from .schema import normalize_uuid

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData

    from .context import BluContext

_LOGGER = logging.getLogger(__name__)


def filter_matches(
        scanner_filter: ScannerFilter,
        ble_device: BLEDevice,
        advertisement_data: AdvertisementData,
) -> bool:
    """Whether an advertisement satisfies every field set on a filter."""
    name = advertisement_data.local_name or ble_device.name or ""
    if scanner_filter.name is not None and name != scanner_filter.name:
        return False
    if scanner_filter.name_prefix is not None and not name.startswith(scanner_filter.name_prefix):
        return False

    advertised = {uuid.lower() for uuid in advertisement_data.service_uuids}
    if any(normalize_uuid(uuid) not in advertised for uuid in scanner_filter.service_uuids):
        return False

    if scanner_filter.manufacturer_ids and not any(
        company in advertisement_data.manufacturer_data
        for company in scanner_filter.manufacturer_ids
    ):
        return False
    return True


class Scanner(EventEmitter):
    """Scans for devices using the context's configuration.

    A device matches when any configured scanner filter matches (or none are
    configured) and it advertises every service the device type declares as
    ``advertised``.

    Usage:
        scanner = context.scanner()
        device = await scanner.get_device()
    """

    EVENT_ADVERTISEMENT = "advertisement"

    def __init__(self, context: BluContext):
        super().__init__()
        self.context = context
        self._scanner: BleakScanner | None = None

    @property
    def device_type(self) -> type[Device]:
        return self.context.configuration.device_type or Device

    @property
    def is_scanning(self) -> bool:
        return self._scanner is not None

    def matches(self, ble_device: BLEDevice, advertisement_data: AdvertisementData) -> bool:
        """Whether a scanned device qualifies for ``get_device``."""
        filters = self.context.configuration.scanner_filters
        if filters and not any(
            filter_matches(f, ble_device, advertisement_data) for f in filters
        ):
            return False

        advertised = {uuid.lower() for uuid in advertisement_data.service_uuids}
        return all(
            service.uuid in advertised
            for service in self.device_type.interface
            if service.advertised
        )

    async def get_device(self, timeout: float | None = None) -> Device:
        """Scan for the first matching device.

        Args:
            timeout: Seconds to scan (defaults to ``scan_timeout``)

        Returns:
            Instance of the configured device type bound to this context

        Raises:
            ScannerError: If scanning fails or no device matches in time
        """
        timeout = timeout if timeout is not None else self.context.configuration.scan_timeout
        _LOGGER.debug("Scanning for %s (timeout=%.1fs)", self.device_type.__name__, timeout)

        try:
            ble_device = await BleakScanner.find_device_by_filter(self.matches, timeout=timeout)
        except Exception as e:
            raise ScannerError("Could not scan for devices.", e) from e

        if ble_device is None:
            raise ScannerError(f"No matching device found within {timeout} s.")

        _LOGGER.info("Found %s (%s)", ble_device.name, ble_device.address)
        return self.device_type.from_ble_device(ble_device, context=self.context)

    async def start_scanning(self) -> None:
        """Emit ``advertisement`` for every advertisement received.

        Raises:
            ScannerError: If already scanning or the scan cannot start
        """
        if self._scanner is not None:
            raise ScannerError("Already scanning.")

        scanner = BleakScanner(detection_callback=self._on_detection)
        try:
            await scanner.start()
        except Exception as e:
            raise ScannerError("Could not start scanning.", e) from e
        self._scanner = scanner

    async def stop_scanning(self) -> None:
        """Stop a scan started with ``start_scanning``.

        Raises:
            ScannerError: If not scanning
        """
        if self._scanner is None:
            raise ScannerError("Cannot stop a scanner that is not scanning.")
        scanner, self._scanner = self._scanner, None
        await scanner.stop()

    def _on_detection(self, ble_device: BLEDevice, advertisement_data: AdvertisementData) -> None:
        self.emit(
            self.EVENT_ADVERTISEMENT,
            DeviceAdvertisement.from_bleak(ble_device, advertisement_data),
        )
