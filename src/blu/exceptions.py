"""Exception types for blu.

All errors share one base class carrying an ``ErrorKind`` tag plus the names
of the device, service, characteristic and descriptor involved. Subclasses
exist only to fix the kind, so callers may either ``except`` a class or switch
on ``error.kind``.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum


class ErrorKind(str, Enum):
    """Error classification."""
    GENERIC = "generic"
    CONFIGURATION = "configuration"
    CONSTRUCTION = "construction"
    DEVICE_OPERATION = "device-operation"
    CONNECTION = "connection"
    CONNECTION_TIMEOUT = "connection-timeout"
    INTERFACE_DISCOVERY = "interface-discovery"
    INTERFACE_MATCHING = "interface-matching"
    OPERATION_QUEUE = "operation-queue"
    OPERATION = "operation"
    REQUEST_CONSTRUCTION = "request-construction"
    REQUEST_TIMEOUT = "request-timeout"
    RESPONSE_CONSTRUCTION = "response-construction"
    THREAD_RESOLUTION = "thread-resolution"
    SCANNER = "scanner"


class BluError(Exception):
    """Base exception for all blu errors.

    Attributes:
        kind: Error classification
        cause: The underlying error, if any
        device: Name of the device involved, if any
        service: Name of the service involved, if any
        characteristic: Name of the characteristic involved, if any
        descriptor: Name of the descriptor involved, if any
    """

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(
            self,
            message: str,
            cause: BaseException | str | None = None,
            *,
            path: Sequence[str] = (),
    ):
        """Initialize error.

        Args:
            message: Human-readable error message
            cause: Underlying error (appended to the message)
            path: Names from device down to the failing node, e.g.
                ("Thermometer", "Battery Service", "Battery Level")
        """
        self.cause = cause
        self.device, self.service, self.characteristic, self.descriptor = (
            tuple(path) + (None, None, None, None)
        )[:4]

        if path:
            message = " → ".join(path) + f": {message}"
        if isinstance(cause, BaseException):
            message += f"\n  ⤷ {type(cause).__name__}: {cause}"
        elif isinstance(cause, str):
            message += f"\n  ⤷ {cause}"

        super().__init__(message)


class ConfigurationError(BluError):
    """Raised when configuration options are invalid."""
    kind = ErrorKind.CONFIGURATION


class ConstructionError(BluError):
    """Raised when a schema node, device, request or other object cannot be built."""
    kind = ErrorKind.CONSTRUCTION


class DeviceOperationError(BluError):
    """Raised when a device operation is not possible in the current state."""
    kind = ErrorKind.DEVICE_OPERATION


class DeviceConnectionError(BluError):
    """Raised when connecting or disconnecting a device fails."""
    kind = ErrorKind.CONNECTION


class ConnectionTimeoutError(DeviceConnectionError):
    """Raised when a connection attempt exceeds the configured timeout."""
    kind = ErrorKind.CONNECTION_TIMEOUT


class InterfaceDiscoveryError(BluError):
    """Raised when interface discovery fails after all attempts."""
    kind = ErrorKind.INTERFACE_DISCOVERY


class InterfaceMatchingError(BluError):
    """Raised when required schema nodes are missing under strict matching."""
    kind = ErrorKind.INTERFACE_MATCHING


class OperationQueueError(BluError):
    """Raised when the operation queue is misused."""
    kind = ErrorKind.OPERATION_QUEUE


class OperationError(BluError):
    """Raised when a GATT operation fails or times out."""
    kind = ErrorKind.OPERATION


class RequestConstructionError(BluError):
    """Raised when a request cannot be constructed."""
    kind = ErrorKind.REQUEST_CONSTRUCTION


class RequestTimeoutError(BluError):
    """Raised when no matching notification arrives in time."""
    kind = ErrorKind.REQUEST_TIMEOUT


class ResponseConstructionError(BluError):
    """Raised when a response cannot be constructed from reply data."""
    kind = ErrorKind.RESPONSE_CONSTRUCTION


class ThreadResolutionError(BluError):
    """Raised when resolving a response thread that does not exist."""
    kind = ErrorKind.THREAD_RESOLUTION


class ScannerError(BluError):
    """Raised when scanning for devices fails."""
    kind = ErrorKind.SCANNER
