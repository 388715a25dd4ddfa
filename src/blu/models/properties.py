"""Characteristic capability records."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, fields

from .enums import PROPERTY_NAMES


@dataclass
class CharacteristicProperties:
    """Capabilities of a discovered characteristic.

    Attributes:
        is_listening: Whether notifications are currently enabled.
            ``None`` for characteristics without the notify capability.
    """

    read: bool = False
    write: bool = False
    write_without_response: bool = False
    notify: bool = False
    indicate: bool = False
    broadcast: bool = False
    authenticated_signed_writes: bool = False
    reliable_write: bool = False
    writable_auxiliaries: bool = False
    is_listening: bool | None = None

    def __post_init__(self) -> None:
        if self.notify and self.is_listening is None:
            self.is_listening = False

    @classmethod
    def from_names(cls, names: Iterable[str]) -> CharacteristicProperties:
        """Build from native property names.

        Args:
            names: Property names such as ``"read"`` or ``"write-without-response"``.
                Unknown names (e.g. ``"extended-properties"``) are ignored.

        Returns:
            CharacteristicProperties with the matching flags set
        """
        flags = {
            PROPERTY_NAMES[name]: True
            for name in names
            if name in PROPERTY_NAMES
        }
        return cls(**flags)


@dataclass(frozen=True)
class ExpectedProperties:
    """Capabilities a schema expects of a characteristic.

    Fields left as ``None`` are not compared.
    """

    read: bool | None = None
    write: bool | None = None
    write_without_response: bool | None = None
    notify: bool | None = None
    indicate: bool | None = None
    broadcast: bool | None = None
    authenticated_signed_writes: bool | None = None
    reliable_write: bool | None = None
    writable_auxiliaries: bool | None = None

    def mismatches(self, properties: CharacteristicProperties) -> list[str]:
        """Return the names of flags that differ from the expectation."""
        return [
            f.name
            for f in fields(self)
            if getattr(self, f.name) is not None
            and getattr(self, f.name) != getattr(properties, f.name)
        ]

    def matches(self, properties: CharacteristicProperties) -> bool:
        """Check whether all expected flags are present as expected."""
        return not self.mismatches(properties)
