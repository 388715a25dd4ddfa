"""Grouping of partial responses into compound responses."""

from __future__ import annotations

from collections.abc import Hashable

from ..exceptions import ThreadResolutionError
from .response import Response


class ResponseThreadManager:
    """Collects unsolicited partial responses that form one compound response.

    A thread is keyed by an application-chosen id (e.g. an opcode the device
    uses to group related notifications). The owner decides when a thread is
    complete and calls ``resolve`` to take its partial responses.
    """

    def __init__(self) -> None:
        self._threads: dict[Hashable, list[Response]] = {}

    def add(self, thread_id: Hashable, partial_response: Response) -> None:
        """Append a partial response, creating the thread if needed."""
        self._threads.setdefault(thread_id, []).append(partial_response)

    def has(self, thread_id: Hashable) -> bool:
        """Check if a thread exists."""
        return thread_id in self._threads

    def resolve(self, thread_id: Hashable) -> list[Response]:
        """Remove a thread and return its partial responses in arrival order.

        Raises:
            ThreadResolutionError: If no thread with this id exists
        """
        try:
            return self._threads.pop(thread_id)
        except KeyError:
            raise ThreadResolutionError(
                f"Could not resolve thread {thread_id!r}: no partial responses found"
            ) from None

    def __len__(self) -> int:
        return len(self._threads)
