"""Connection state and interface matching enumerations."""

from __future__ import annotations

from enum import Enum
from typing import Final


class ConnectionState(str, Enum):
    """Device connection states.

    Disconnected -> Connecting -> DiscoveringInterface -> Initializing -> Connected,
    then Connected -> Disconnecting -> Disconnected (caller-initiated) or
    Connected -> ConnectionLost -> Disconnected (link dropped).
    """
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    DISCOVERING_INTERFACE = "discovering-interface"
    INITIALIZING = "initializing"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"
    CONNECTION_LOST = "connection-lost"


class InterfaceMatching(str, Enum):
    """How strictly a discovered device must match its declared interface."""
    STRICT = "strict"
    MINIMAL = "minimal"
    OFF = "off"


# Property names as reported by bleak's BleakGATTCharacteristic.properties
PROPERTY_NAMES: Final[dict[str, str]] = {
    "broadcast": "broadcast",
    "read": "read",
    "write-without-response": "write_without_response",
    "write": "write",
    "notify": "notify",
    "indicate": "indicate",
    "authenticated-signed-writes": "authenticated_signed_writes",
    "reliable-write": "reliable_write",
    "writable-auxiliaries": "writable_auxiliaries",
}
