"""Shared behaviour of devices and discovered GATT nodes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pyee.base import EventEmitter

if TYPE_CHECKING:
    from .schema import InterfaceDescription


class MemberLookup:
    """Attribute access to children by their schema identifier.

    ``device.battery.level`` resolves the service with identifier ``battery``
    and its characteristic with identifier ``level``.
    """

    _members: dict[str, Any]

    def get(self, identifier: str) -> Any | None:
        """Return the child with this identifier, or None."""
        return self.__dict__.get("_members", {}).get(identifier)

    def _register_member(self, node: GATTNode) -> None:
        identifier = node.description.identifier
        if identifier:
            self._members[identifier] = node

    def __getattr__(self, name: str) -> Any:
        members = self.__dict__.get("_members")
        if members is not None and name in members:
            return members[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")


class GATTNode(MemberLookup, EventEmitter):
    """Runtime node bound to one native GATT object and one description."""

    def __init__(self, native: Any, description: InterfaceDescription):
        EventEmitter.__init__(self)
        self._members = {}
        self._native = native
        self.description = description

    @property
    def uuid(self) -> str:
        """UUID reported by the device."""
        return str(self._native.uuid).lower()

    @property
    def name(self) -> str:
        """Human-readable name from the description."""
        return self.description.name

    @property
    def native(self) -> Any:
        """The underlying transport object."""
        return self._native

    @property
    def path(self) -> tuple[str, ...]:
        """Names from the device down to this node, used in error messages."""
        raise NotImplementedError

    async def before_ready(self) -> None:
        """Hook awaited before the device is reported as connected.

        Override to read or write initial values.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} {self.uuid}>"
