"""Serialization of GATT operations."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pyee.base import EventEmitter

from .exceptions import OperationError, OperationQueueError

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

OPERATION_TIMEOUT = 5.0


class OperationQueue(EventEmitter):
    """Single-flight FIFO lane for one device's GATT operations.

    Operations run strictly one at a time in submission order. Each operation
    gets ``operation_timeout`` seconds; when it elapses the caller is rejected
    and the queue moves on. The native call itself is not aborted, its result
    is discarded.

    Usage:
        value = await queue.add(lambda: transport.read_characteristic(char))
    """

    EVENT_OPERATION_STARTED = "operation-started"
    EVENT_OPERATION_FINISHED = "operation-finished"

    def __init__(self, operation_timeout: float = OPERATION_TIMEOUT):
        super().__init__()
        self.operation_timeout = operation_timeout
        self._pending: deque[tuple[Callable[[], Awaitable[Any]], asyncio.Future[Any]]] = deque()
        self._worker: asyncio.Task[None] | None = None
        self._is_busy = False

    @property
    def is_busy(self) -> bool:
        """Whether an operation is currently running."""
        return self._is_busy

    def __len__(self) -> int:
        return len(self._pending)

    def add(self, operation: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Queue an operation.

        Args:
            operation: Zero-argument callable returning an awaitable

        Returns:
            Future resolving with the operation's result

        Raises:
            OperationQueueError: Immediately, if operation is not callable
        """
        if not callable(operation):
            raise OperationQueueError(
                f"Operation must be callable, got {type(operation).__name__}"
            )

        loop = asyncio.get_running_loop()
        result: asyncio.Future[T] = loop.create_future()
        self._pending.append((operation, result))

        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain())

        return result

    async def _drain(self) -> None:
        while self._pending:
            operation, result = self._pending.popleft()
            if result.done():
                # Caller gave up while waiting in line
                continue

            self._is_busy = True
            self.emit(self.EVENT_OPERATION_STARTED)
            try:
                await self._run(operation, result)
            finally:
                self._is_busy = False
                self.emit(self.EVENT_OPERATION_FINISHED)

    async def _run(
            self,
            operation: Callable[[], Awaitable[Any]],
            result: asyncio.Future[Any],
    ) -> None:
        try:
            task = asyncio.ensure_future(operation())
        except Exception as e:
            _settle_exception(result, OperationError("GATT operation failed.", e))
            return

        done, _ = await asyncio.wait({task}, timeout=self.operation_timeout)

        if not done:
            _LOGGER.debug(
                "GATT operation timed out after %.1fs, continuing with next",
                self.operation_timeout,
            )
            task.add_done_callback(_discard_abandoned)
            _settle_exception(
                result,
                OperationError(
                    f"GATT operation timed out after {self.operation_timeout} s."
                ),
            )
            return

        if task.cancelled():
            _settle_exception(result, OperationError("GATT operation was cancelled."))
        elif task.exception() is not None:
            _settle_exception(
                result, OperationError("GATT operation failed.", task.exception())
            )
        elif not result.done():
            result.set_result(task.result())


def _settle_exception(result: asyncio.Future[Any], error: BaseException) -> None:
    if not result.done():
        result.set_exception(error)


def _discard_abandoned(task: asyncio.Future[Any]) -> None:
    # Retrieve the outcome so a late failure is not reported as unhandled
    if not task.cancelled() and task.exception() is not None:
        _LOGGER.debug("Abandoned GATT operation failed: %s", task.exception())
