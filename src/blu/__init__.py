"""blu: declarative Bluetooth Low Energy GATT clients.

  Describe a device's services and characteristics once, then connect and
  talk to it through named attributes, with every GATT operation
  serialized and request/response traffic correlated over notifications.
  """

from .characteristic import Characteristic
from .config import Configuration, ScannerFilter
from .context import BluContext
from .descriptor import Descriptor
from .device import Device
from .discovery import InterfaceDiscoveryEngine
from .exceptions import (
    BluError,
    ConfigurationError,
    ConnectionTimeoutError,
    ConstructionError,
    DeviceConnectionError,
    DeviceOperationError,
    ErrorKind,
    InterfaceDiscoveryError,
    InterfaceMatchingError,
    OperationError,
    OperationQueueError,
    RequestConstructionError,
    RequestTimeoutError,
    ResponseConstructionError,
    ScannerError,
    ThreadResolutionError,
)
from .models.advertisement import DeviceAdvertisement
from .models.enums import ConnectionState, InterfaceMatching
from .models.properties import CharacteristicProperties, ExpectedProperties
from .operation_queue import OperationQueue
from .protocol import (
    CompoundResponse,
    Request,
    RequestCorrelator,
    Response,
    ResponseThreadManager,
)
from .scanner import Scanner
from .schema import (
    CharacteristicDescription,
    DescriptorDescription,
    ServiceDescription,
    normalize_uuid,
)
from .service import Service
from .transport import BleakTransport, GATTNotFoundError, GATTTransport

__version__ = "0.1.0"

__all__ = [
    # Main API
    "Device",
    "BluContext",
    "Scanner",
    "Configuration",
    "ScannerFilter",
    # Interface description
    "ServiceDescription",
    "CharacteristicDescription",
    "DescriptorDescription",
    "ExpectedProperties",
    "normalize_uuid",
    # Runtime nodes
    "Service",
    "Characteristic",
    "Descriptor",
    "CharacteristicProperties",
    # Messaging
    "Request",
    "Response",
    "CompoundResponse",
    "RequestCorrelator",
    "ResponseThreadManager",
    # Core machinery
    "OperationQueue",
    "InterfaceDiscoveryEngine",
    # Transport
    "GATTTransport",
    "BleakTransport",
    "GATTNotFoundError",
    # Models
    "ConnectionState",
    "InterfaceMatching",
    "DeviceAdvertisement",
    # Exceptions
    "BluError",
    "ErrorKind",
    "ConfigurationError",
    "ConstructionError",
    "DeviceOperationError",
    "DeviceConnectionError",
    "ConnectionTimeoutError",
    "InterfaceDiscoveryError",
    "InterfaceMatchingError",
    "OperationQueueError",
    "OperationError",
    "RequestConstructionError",
    "RequestTimeoutError",
    "ResponseConstructionError",
    "ThreadResolutionError",
    "ScannerError",
]
