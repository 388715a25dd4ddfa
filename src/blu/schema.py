"""Declarative description of a device's GATT interface.

A device class declares the services, characteristics and descriptors it
expects. During discovery each description is resolved against the physical
device and its ``type`` is used as the factory for the runtime node.

Usage:
    battery = ServiceDescription(
        uuid=0x180F,
        identifier="battery",
        name="Battery Service",
        characteristics=[
            CharacteristicDescription(
                uuid=0x2A19,
                identifier="level",
                name="Battery Level",
                expected_properties=ExpectedProperties(read=True),
            ),
        ],
    )
"""

from __future__ import annotations

import keyword
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from bleak.uuids import normalize_uuid_16, normalize_uuid_32, normalize_uuid_str

from .characteristic import Characteristic
from .descriptor import Descriptor
from .exceptions import ConstructionError
from .models.properties import ExpectedProperties
from .service import Service


def normalize_uuid(uuid: str | int) -> str:
    """Normalize a UUID to its lower-case 128-bit string form.

    Args:
        uuid: 16-bit or 32-bit assigned number, or a UUID string
            (short forms like ``"180f"`` are expanded)

    Returns:
        128-bit UUID string

    Raises:
        ConstructionError: If the value is not a valid UUID
    """
    try:
        if isinstance(uuid, bool):
            raise TypeError("bool is not a UUID")
        if isinstance(uuid, int):
            return normalize_uuid_16(uuid) if uuid <= 0xFFFF else normalize_uuid_32(uuid)
        if isinstance(uuid, str):
            return normalize_uuid_str(uuid)
        raise TypeError(f"unsupported UUID type {type(uuid).__name__}")
    except (TypeError, ValueError) as e:
        raise ConstructionError(f"Invalid UUID {uuid!r}", e) from e


def _check_children(
        owner: str,
        children: Sequence[Any],
        child_type: type,
) -> tuple[Any, ...]:
    if isinstance(children, (str, bytes)) or not isinstance(children, Sequence):
        raise ConstructionError(
            f"{owner}: children must be a sequence of {child_type.__name__}"
        )
    identifiers: set[str] = set()
    for child in children:
        if not isinstance(child, child_type):
            raise ConstructionError(
                f"{owner}: children must be instances of {child_type.__name__}, "
                f"got {type(child).__name__}"
            )
        if child.identifier is not None:
            if child.identifier in identifiers:
                raise ConstructionError(
                    f"{owner}: duplicate identifier {child.identifier!r}"
                )
            identifiers.add(child.identifier)
    return tuple(children)


@dataclass(frozen=True)
class InterfaceDescription:
    """Common fields of all interface descriptions."""

    uuid: str | int
    identifier: str | None = None
    name: str = "Generic Interface Component"
    optional: bool = False
    type: Callable[..., Any] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "uuid", normalize_uuid(self.uuid))

        if self.identifier is not None and (
            not isinstance(self.identifier, str)
            or not self.identifier.isidentifier()
            or keyword.iskeyword(self.identifier)
            or self.identifier.startswith("_")
        ):
            raise ConstructionError(
                f"Identifier {self.identifier!r} of {self.name!r} must be a public "
                "Python identifier"
            )

        if self.type is not None and not callable(self.type):
            raise ConstructionError(f"Type of {self.name!r} must be callable")

    def create(self, parent: Any, native: Any) -> Any:
        """Create the runtime node bound to a native GATT object."""
        factory = self.type or self._default_type()
        return factory(parent, native, self)

    def _default_type(self) -> Callable[..., Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class DescriptorDescription(InterfaceDescription):
    """Expected descriptor."""

    name: str = "Generic Descriptor"

    def _default_type(self) -> Callable[..., Any]:
        return Descriptor


@dataclass(frozen=True)
class CharacteristicDescription(InterfaceDescription):
    """Expected characteristic and its descriptors."""

    name: str = "Generic Characteristic"
    descriptors: Sequence[DescriptorDescription] = field(default_factory=tuple)
    expected_properties: ExpectedProperties | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(
            self,
            "descriptors",
            _check_children(self.name, self.descriptors, DescriptorDescription),
        )
        if self.expected_properties is not None and not isinstance(
            self.expected_properties, ExpectedProperties
        ):
            raise ConstructionError(
                f"{self.name}: expected_properties must be ExpectedProperties"
            )

    def _default_type(self) -> Callable[..., Any]:
        return Characteristic


@dataclass(frozen=True)
class ServiceDescription(InterfaceDescription):
    """Expected service and its characteristics.

    Attributes:
        advertised: Whether the service UUID appears in advertisements
            (used as scanner filter)
    """

    name: str = "Generic Service"
    characteristics: Sequence[CharacteristicDescription] = field(default_factory=tuple)
    advertised: bool = False

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(
            self,
            "characteristics",
            _check_children(self.name, self.characteristics, CharacteristicDescription),
        )

    def _default_type(self) -> Callable[..., Any]:
        return Service


def validate_interface(interface: Sequence[Any]) -> tuple[ServiceDescription, ...]:
    """Validate a device interface declaration.

    Raises:
        ConstructionError: If it is not a sequence of ServiceDescription
    """
    return _check_children("Device interface", interface, ServiceDescription)
