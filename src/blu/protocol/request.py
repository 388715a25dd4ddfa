"""Requests sent to characteristics."""

from __future__ import annotations

from typing import ClassVar

from ..exceptions import RequestConstructionError
from .response import BYTES_LIKE, CompoundResponse, Response


class Request:
    """Request written to a characteristic and answered by a notification.

    Subclass and set ``response_type`` to the Response (or CompoundResponse)
    type expected back.
    """

    response_type: ClassVar[type[Response] | type[CompoundResponse]] = Response

    def __init__(self, data: bytes | bytearray | memoryview):
        """Initialize request.

        Args:
            data: Payload written to the characteristic

        Raises:
            RequestConstructionError: If data is not bytes-like
        """
        if not isinstance(data, BYTES_LIKE):
            raise RequestConstructionError(
                f"Request data must be bytes-like, got {type(data).__name__}"
            )
        self.data = bytes(data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(data={self.data.hex()})"
