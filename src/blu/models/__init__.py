"""Data models for blu devices."""

from .advertisement import DeviceAdvertisement
from .enums import ConnectionState, InterfaceMatching
from .properties import CharacteristicProperties, ExpectedProperties

__all__ = [
    "CharacteristicProperties",
    "ConnectionState",
    "DeviceAdvertisement",
    "ExpectedProperties",
    "InterfaceMatching",
]
