"""Responses received from characteristics and descriptors."""

from __future__ import annotations

from ..exceptions import ResponseConstructionError

BYTES_LIKE = (bytes, bytearray, memoryview)


class Response:
    """Response received from a characteristic or descriptor.

    Subclass to add parsed properties and a ``validator`` that decides whether
    an incoming notification answers a given request.
    """

    @classmethod
    def validator(cls, response: Response) -> bool:
        """Check whether an incoming response matches this response type.

        Args:
            response: Incoming response (built with the characteristic's
                default response type)

        Returns:
            True if the response is a match, False to ignore it
        """
        return True

    def __init__(self, data: bytes | bytearray | memoryview | None = None):
        """Initialize response.

        Args:
            data: Raw response data, or None when there is no data

        Raises:
            ResponseConstructionError: If data is not bytes-like
        """
        if data is not None and not isinstance(data, BYTES_LIKE):
            raise ResponseConstructionError(
                f"Response data must be bytes-like or None, got {type(data).__name__}"
            )
        self.data: bytes | None = bytes(data) if data is not None else None

    def __repr__(self) -> str:
        data = self.data.hex() if self.data is not None else None
        return f"{type(self).__name__}(data={data})"


class CompoundResponse:
    """Response assembled from several partial responses.

    Subclass and override ``has_follow_up`` to tell when the last partial
    response has arrived.
    """

    @classmethod
    def validator(cls, response: Response) -> bool:
        """Check whether a partial response belongs to this compound response."""
        return True

    @classmethod
    def has_follow_up(cls, partial_response: Response) -> bool:
        """Check whether another partial response follows this one.

        Returns False by default, i.e. every partial response is the last one.
        """
        return False

    def __init__(self, *partial_responses: Response):
        """Initialize compound response.

        Raises:
            ResponseConstructionError: If any partial response is not a Response
        """
        if any(not isinstance(partial, Response) for partial in partial_responses):
            raise ResponseConstructionError(
                "Partial responses must be instances of Response"
            )
        self._partial_responses: list[Response] = list(partial_responses)

    @property
    def partial_responses(self) -> list[Response]:
        """Partial responses in arrival order."""
        return self._partial_responses

    @property
    def data(self) -> bytes:
        """Concatenated data of all partial responses."""
        return b"".join(p.data for p in self._partial_responses if p.data is not None)

    def sanitize(self, partial_response: Response) -> None:
        """Hook to clean up a partial response's data once the compound is complete."""

    def add_partial_response(self, partial_response: Response) -> None:
        """Append a partial response."""
        if not isinstance(partial_response, Response):
            raise ResponseConstructionError(
                "Partial responses must be instances of Response"
            )
        self._partial_responses.append(partial_response)

    def complete(self) -> None:
        """Run ``sanitize`` over all partial responses."""
        for partial in self._partial_responses:
            self.sanitize(partial)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(partials={len(self._partial_responses)})"


def is_compound(response_type: type) -> bool:
    """Check whether a response type is a CompoundResponse type."""
    return isinstance(response_type, type) and issubclass(response_type, CompoundResponse)
