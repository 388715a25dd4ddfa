"""Configuration options."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .exceptions import ConfigurationError
from .models.enums import InterfaceMatching

if TYPE_CHECKING:
    from .device import Device

_AUTO_SUBSCRIBE_KEYWORDS = {"all": True, "none": False}


@dataclass(frozen=True)
class ScannerFilter:
    """One scanner filter. All set fields must match; empty filters match everything.

    Attributes:
        name: Exact advertised name
        name_prefix: Advertised name prefix
        service_uuids: Service UUIDs that must all be advertised
        manufacturer_ids: Company identifiers, any of which must be present
    """
    name: str | None = None
    name_prefix: str | None = None
    service_uuids: tuple[str, ...] = ()
    manufacturer_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class Configuration:
    """Validated, immutable set of options.

    Attributes:
        interface_matching: How strictly discovery must match the declared
            interface ("strict", "minimal" or "off")
        auto_subscribe: Notifiable characteristics to subscribe to on connect:
            True/"all", False/"none", or a sequence of identifiers
        connection_timeout: Seconds before a connection attempt is aborted
            (None disables the timeout)
        discovery_attempts: Interface discovery attempts before giving up
        discovery_retry_delay: Seconds between discovery attempts
        extensive_discovery: Also enumerate services, characteristics and
            descriptors that are not declared
        data_transfer_logging: Log every payload read, written or notified
        device_type: Device class the scanner instantiates
        scanner_filters: Filters used when scanning for a device
        scan_timeout: Seconds the scanner searches for a device
    """
    interface_matching: InterfaceMatching = InterfaceMatching.STRICT
    auto_subscribe: bool | tuple[str, ...] = True
    connection_timeout: float | None = None
    discovery_attempts: int = 3
    discovery_retry_delay: float = 1.0
    extensive_discovery: bool = True
    data_transfer_logging: bool = False
    device_type: type[Device] | None = None
    scanner_filters: tuple[ScannerFilter, ...] = field(default_factory=tuple)
    scan_timeout: float = 10.0

    def __post_init__(self) -> None:
        try:
            object.__setattr__(
                self, "interface_matching", InterfaceMatching(self.interface_matching)
            )
        except ValueError as e:
            raise ConfigurationError(
                f"interface_matching must be one of "
                f"{[m.value for m in InterfaceMatching]}, got {self.interface_matching!r}"
            ) from e

        object.__setattr__(self, "auto_subscribe", _parse_auto_subscribe(self.auto_subscribe))

        if self.connection_timeout is not None and not _positive_number(self.connection_timeout):
            raise ConfigurationError(
                f"connection_timeout must be a positive number or None, "
                f"got {self.connection_timeout!r}"
            )
        if (
            isinstance(self.discovery_attempts, bool)
            or not isinstance(self.discovery_attempts, int)
            or self.discovery_attempts < 1
        ):
            raise ConfigurationError(
                f"discovery_attempts must be an integer >= 1, got {self.discovery_attempts!r}"
            )
        if not _positive_number(self.discovery_retry_delay, allow_zero=True):
            raise ConfigurationError(
                f"discovery_retry_delay must be >= 0, got {self.discovery_retry_delay!r}"
            )
        if not _positive_number(self.scan_timeout):
            raise ConfigurationError(
                f"scan_timeout must be a positive number, got {self.scan_timeout!r}"
            )
        for name in ("extensive_discovery", "data_transfer_logging"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f"{name} must be a bool")

        if self.device_type is not None:
            from .device import Device

            if not (isinstance(self.device_type, type) and issubclass(self.device_type, Device)):
                raise ConfigurationError("device_type must be Device or a subclass of it")

        filters = tuple(self.scanner_filters)
        if any(not isinstance(f, ScannerFilter) for f in filters):
            raise ConfigurationError("scanner_filters must contain ScannerFilter instances")
        object.__setattr__(self, "scanner_filters", filters)

    def update(self, **options: Any) -> Configuration:
        """Return a copy with the given options replaced.

        Raises:
            ConfigurationError: If an option is unknown or invalid
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration options: {', '.join(unknown)}")
        return dataclasses.replace(self, **options)

    def auto_subscribes(self, identifier: str | None) -> bool:
        """Whether a notifiable characteristic with this identifier is auto-subscribed."""
        if isinstance(self.auto_subscribe, bool):
            return self.auto_subscribe
        return identifier is not None and identifier in self.auto_subscribe


def _positive_number(value: Any, allow_zero: bool = False) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value >= 0 if allow_zero else value > 0


def _parse_auto_subscribe(value: Any) -> bool | tuple[str, ...]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value in _AUTO_SUBSCRIBE_KEYWORDS:
            return _AUTO_SUBSCRIBE_KEYWORDS[value]
        raise ConfigurationError(
            f'auto_subscribe must be "all", "none", a bool or identifiers, got {value!r}'
        )
    if value is None:
        return False
    if isinstance(value, Sequence) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigurationError(
        f'auto_subscribe must be "all", "none", a bool or identifiers, got {value!r}'
    )
