"""Request/response correlation over a characteristic's notifications."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ..exceptions import BluError, OperationError, RequestTimeoutError
from .request import Request
from .response import CompoundResponse, Response, is_compound

if TYPE_CHECKING:
    from ..characteristic import Characteristic

_LOGGER = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 5.0


class RequestCorrelator:
    """Pairs writes to a characteristic with the notifications answering them.

    The notification listener is registered before the write is queued, so a
    reply arriving before the write completes is not lost. Notifications the
    expected response type does not accept are ignored.
    """

    def __init__(self, characteristic: Characteristic):
        self._characteristic = characteristic

    async def request(
            self,
            request: Request,
            timeout: float | None = DEFAULT_REQUEST_TIMEOUT,
    ) -> Response | CompoundResponse:
        """Write a request and wait for the matching notification.

        Args:
            request: Request to send
            timeout: Seconds to wait for a response (None or 0 waits forever)

        Returns:
            Instance of ``request.response_type``

        Raises:
            OperationError: If the request is invalid or the write fails
            RequestTimeoutError: If no matching notification arrives in time
            ResponseConstructionError: If the response cannot be built
        """
        characteristic = self._characteristic

        if not isinstance(request, Request):
            raise OperationError(
                f"Request must be an instance of Request, got {type(request).__name__}",
                path=characteristic.path,
            )

        characteristic.log_data_transfer("Request", request.data)

        loop = asyncio.get_running_loop()
        pending: asyncio.Future[Any] = loop.create_future()
        response_type = request.response_type
        compound = response_type() if is_compound(response_type) else None

        def on_notification(response: Response) -> None:
            # Settled futures (matched, failed or timed out) ignore late notifications
            if pending.done() or not response_type.validator(response):
                return

            if compound is not None:
                partial = Response(response.data)
                compound.add_partial_response(partial)
                characteristic.log_data_transfer("Partial response", partial.data)
                if response_type.has_follow_up(partial):
                    return
                compound.complete()
                pending.set_result(compound)
                return

            try:
                pending.set_result(response_type(response.data))
            except BluError as e:
                pending.set_exception(e)

        def on_write_done(write: asyncio.Future[None]) -> None:
            if write.cancelled():
                return
            error = write.exception()
            if error is not None and not pending.done():
                pending.set_exception(
                    OperationError(
                        "Could not request from characteristic.",
                        error,
                        path=characteristic.path,
                    )
                )

        characteristic.on(characteristic.EVENT_NOTIFICATION, on_notification)
        try:
            write = asyncio.ensure_future(characteristic.write(request.data))
            write.add_done_callback(on_write_done)

            if timeout:
                try:
                    result = await asyncio.wait_for(pending, timeout)
                except asyncio.TimeoutError:
                    raise RequestTimeoutError(
                        "Did not receive an expected notification from the device "
                        f"within {timeout} s.",
                        path=characteristic.path,
                    ) from None
            else:
                result = await pending
        finally:
            characteristic.remove_listener(
                characteristic.EVENT_NOTIFICATION, on_notification
            )

        characteristic.log_data_transfer("Response", result.data)
        return result

    async def request_all(
            self,
            requests: Sequence[Request],
            timeout: float | None = DEFAULT_REQUEST_TIMEOUT,
    ) -> list[Response | CompoundResponse]:
        """Send requests one after another.

        Each request is written only after the previous one has its response,
        so the i-th result always answers the i-th request.

        Raises:
            OperationError: If requests is not a sequence of Request
        """
        if isinstance(requests, (str, bytes)) or not isinstance(requests, Sequence) or any(
            not isinstance(request, Request) for request in requests
        ):
            raise OperationError(
                "Requests must be a sequence of Request",
                path=self._characteristic.path,
            )

        responses = []
        for request in requests:
            responses.append(await self.request(request, timeout))
        return responses
