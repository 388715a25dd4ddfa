"""Test the bleak-backed transport's link bookkeeping."""

from __future__ import annotations

import pytest
from bleak.exc import BleakError

from blu import BleakTransport

ADDRESS = "11:22:33:44:55:66"


class _FakeClient:
    def __init__(self, disconnect_error: Exception | None = None):
        self.is_connected = True
        self.disconnect_error = disconnect_error

    async def disconnect(self) -> None:
        if self.disconnect_error is not None:
            raise self.disconnect_error
        self.is_connected = False


@pytest.mark.asyncio
async def test_disconnect_releases_client() -> None:
    transport = BleakTransport(ADDRESS)
    client = _FakeClient()
    transport._client = client

    await transport.disconnect()

    assert not client.is_connected
    assert not transport.is_connected
    assert transport._client is None


@pytest.mark.asyncio
async def test_failed_disconnect_keeps_link_reported_as_connected() -> None:
    transport = BleakTransport(ADDRESS)
    transport._client = _FakeClient(BleakError("busy"))

    with pytest.raises(BleakError, match="busy"):
        await transport.disconnect()

    assert transport.is_connected


@pytest.mark.asyncio
async def test_disconnect_without_client_is_a_no_op() -> None:
    transport = BleakTransport(ADDRESS)

    await transport.disconnect()

    assert not transport.is_connected
