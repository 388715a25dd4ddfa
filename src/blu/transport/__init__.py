"""GATT transports."""

from .base import GATTNotFoundError, GATTTransport
from .connection import BleakTransport

__all__ = ["BleakTransport", "GATTNotFoundError", "GATTTransport"]
