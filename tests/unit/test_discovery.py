"""Test interface discovery against fake GATT servers."""

from __future__ import annotations

import logging

import pytest

from fakes import FakeCharacteristic, FakeDescriptor, FakeService, FakeTransport, make_device

from blu import (
    Characteristic,
    CharacteristicDescription,
    Descriptor,
    DescriptorDescription,
    Device,
    ExpectedProperties,
    Service,
    ServiceDescription,
    normalize_uuid,
)
from blu.exceptions import (
    DeviceConnectionError,
    InterfaceDiscoveryError,
    InterfaceMatchingError,
)
from blu.models.enums import ConnectionState

BATTERY = normalize_uuid(0x180F)
LEVEL = normalize_uuid(0x2A19)
DEVICE_INFO = normalize_uuid(0x180A)
MODEL = normalize_uuid(0x2A24)
GENERIC_ACCESS = normalize_uuid(0x1800)
DEVICE_NAME = normalize_uuid(0x2A00)


def _interface(**level_options):
    return [
        ServiceDescription(
            uuid=BATTERY,
            identifier="battery",
            name="Battery Service",
            characteristics=[
                CharacteristicDescription(
                    uuid=LEVEL,
                    identifier="level",
                    name="Battery Level",
                    **level_options,
                ),
            ],
        ),
        ServiceDescription(
            uuid=DEVICE_INFO,
            identifier="info",
            name="Device Information",
            optional=True,
            characteristics=[
                CharacteristicDescription(uuid=MODEL, identifier="model", name="Model Number"),
            ],
        ),
    ]


def _battery(*extra_characteristics: FakeCharacteristic) -> FakeService:
    return FakeService(BATTERY, [
        FakeCharacteristic(LEVEL, ["read", "notify"], b"\x64"),
        *extra_characteristics,
    ])


def _generic_access() -> FakeService:
    return FakeService(GENERIC_ACCESS, [FakeCharacteristic(DEVICE_NAME, ["read"])])


@pytest.mark.asyncio
async def test_strict_discovery_with_complete_interface() -> None:
    transport = FakeTransport([
        _battery(),
        FakeService(DEVICE_INFO, [FakeCharacteristic(MODEL, ["read"])]),
        _generic_access(),
    ])
    device = make_device(transport, _interface())

    await device.connect()

    assert device.state is ConnectionState.CONNECTED
    assert device.battery.name == "Battery Service"
    assert device.battery.level.name == "Battery Level"
    assert device.info.model.uuid == MODEL
    assert device.discovery_attempts == 1

    generic = device.find_service(GENERIC_ACCESS)
    assert generic is not None
    assert generic.name == "Generic Service"
    assert generic.characteristics[0].name == "Generic Characteristic"


@pytest.mark.asyncio
async def test_optional_service_may_be_absent() -> None:
    device = make_device(FakeTransport([_battery()]), _interface())

    await device.connect()

    assert device.get("info") is None
    assert [s.uuid for s in device.services] == [BATTERY]


@pytest.mark.asyncio
async def test_strict_matching_fails_on_missing_required_characteristic() -> None:
    transport = FakeTransport([FakeService(BATTERY, [])])
    device = make_device(transport, _interface())

    with pytest.raises(DeviceConnectionError) as exc_info:
        await device.connect()

    discovery_error = exc_info.value.cause
    assert isinstance(discovery_error, InterfaceDiscoveryError)
    assert isinstance(discovery_error.cause, InterfaceMatchingError)
    assert device.discovery_attempts == 3
    assert device.state is ConnectionState.DISCONNECTED
    assert device.services == []
    assert not transport.connected


@pytest.mark.asyncio
async def test_minimal_matching_tolerates_missing_required_nodes(caplog) -> None:
    device = make_device(
        FakeTransport([FakeService(BATTERY, [])]),
        _interface(),
        interface_matching="minimal",
    )

    with caplog.at_level(logging.WARNING, logger="blu"):
        await device.connect()

    assert device.state is ConnectionState.CONNECTED
    assert device.battery.get("level") is None
    assert "Could not discover required 'Battery Level'" in caplog.text


@pytest.mark.asyncio
async def test_unexpected_properties_are_reported_unless_matching_is_off(caplog) -> None:
    interface = _interface(expected_properties=ExpectedProperties(write=True))

    strict = make_device(FakeTransport([_battery()]), interface)
    with caplog.at_level(logging.WARNING, logger="blu"):
        await strict.connect()
    assert "unexpected properties: write" in caplog.text
    assert not strict.battery.level.has_expected_properties

    caplog.clear()
    relaxed = make_device(FakeTransport([_battery()]), interface, interface_matching="off")
    with caplog.at_level(logging.WARNING, logger="blu"):
        await relaxed.connect()
    assert "unexpected properties" not in caplog.text


@pytest.mark.asyncio
async def test_extensive_discovery_merges_into_declared_nodes() -> None:
    extra = FakeCharacteristic(
        normalize_uuid(0x2A1B),
        ["read"],
        descriptors=[FakeDescriptor(0x2901, b"state")],
    )
    transport = FakeTransport([_battery(extra), _generic_access()])
    device = make_device(transport, _interface())

    await device.connect()

    assert [s.uuid for s in device.services] == [BATTERY, GENERIC_ACCESS]
    battery = device.battery
    assert [c.uuid for c in battery.characteristics] == [LEVEL, extra.uuid]
    assert battery.characteristics[0] is battery.level
    assert battery.characteristics[1].descriptors[0].uuid == normalize_uuid(0x2901)


@pytest.mark.asyncio
async def test_extensive_discovery_can_be_disabled() -> None:
    transport = FakeTransport([_battery(), _generic_access()])
    device = make_device(transport, _interface(), extensive_discovery=False)

    await device.connect()

    assert [s.uuid for s in device.services] == [BATTERY]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("auto_subscribe", "expected"),
    [
        (True, [f"subscribe {LEVEL}", f"subscribe {DEVICE_NAME}"]),
        (["level"], [f"subscribe {LEVEL}"]),
        (False, []),
    ],
)
async def test_auto_subscribe(auto_subscribe, expected) -> None:
    transport = FakeTransport([
        _battery(),
        FakeService(GENERIC_ACCESS, [FakeCharacteristic(DEVICE_NAME, ["read", "notify"])]),
    ])
    device = make_device(transport, _interface(), auto_subscribe=auto_subscribe)

    await device.connect()

    assert [entry for entry in transport.log if entry.startswith("subscribe")] == expected


@pytest.mark.asyncio
async def test_readiness_hooks_run_bottom_up_after_auto_subscribe() -> None:
    calls: list[str] = []
    transport = FakeTransport([
        FakeService(BATTERY, [
            FakeCharacteristic(
                LEVEL, ["read", "notify"], descriptors=[FakeDescriptor(0x2904)]
            ),
        ]),
    ])

    class Format(Descriptor):
        async def before_ready(self) -> None:
            calls.append("descriptor")

    class Level(Characteristic):
        async def before_ready(self) -> None:
            calls.append(f"characteristic listening={self.is_listening}")

    class Battery(Service):
        async def before_ready(self) -> None:
            calls.append("service")

    class Sensor(Device):
        interface = [
            ServiceDescription(
                uuid=BATTERY,
                identifier="battery",
                type=Battery,
                characteristics=[
                    CharacteristicDescription(
                        uuid=LEVEL,
                        identifier="level",
                        type=Level,
                        descriptors=[
                            DescriptorDescription(uuid=0x2904, identifier="format", type=Format),
                        ],
                    ),
                ],
            ),
        ]

        async def before_ready(self) -> None:
            calls.append(f"device {self.state.value}")

    device = make_device(transport, None, device_type=Sensor)
    await device.connect()

    assert calls == [
        "descriptor",
        "characteristic listening=True",
        "service",
        "device initializing",
    ]
    assert isinstance(device.battery.level.format, Format)


@pytest.mark.asyncio
async def test_discovery_retries_until_an_attempt_succeeds() -> None:
    transport = FakeTransport([_battery()])
    # Each attempt looks up both declared services
    transport.service_lookup_failures = 4
    device = make_device(transport, _interface())

    await device.connect()

    assert device.state is ConnectionState.CONNECTED
    assert device.discovery_attempts == 3


@pytest.mark.asyncio
async def test_failed_attempt_stops_notifications_it_started() -> None:
    failures = [RuntimeError("not ready yet")]

    class Flaky(Characteristic):
        async def before_ready(self) -> None:
            if failures:
                raise failures.pop()

    transport = FakeTransport([_battery()])
    interface = [
        ServiceDescription(
            uuid=BATTERY,
            identifier="battery",
            characteristics=[
                CharacteristicDescription(uuid=LEVEL, identifier="level", type=Flaky),
            ],
        ),
    ]
    device = make_device(transport, interface)

    await device.connect()

    assert device.discovery_attempts == 2
    assert transport.log == [
        f"subscribe {LEVEL}",
        f"unsubscribe {LEVEL}",
        f"subscribe {LEVEL}",
    ]
    assert device.battery.level.is_listening


@pytest.mark.asyncio
async def test_link_reported_down_after_connect_is_reestablished() -> None:
    class SlowLink(FakeTransport):
        async def connect(self) -> None:
            await super().connect()
            # The first connect reports success but the link is not up yet
            if self.connect_calls == 1:
                self.connected = False

    transport = SlowLink([_battery()])
    device = make_device(transport, _interface())

    await device.connect()

    assert transport.connect_calls == 2
    assert device.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_optional_characteristic_may_be_absent_in_strict_mode() -> None:
    interface = [
        ServiceDescription(
            uuid=BATTERY,
            identifier="battery",
            characteristics=[
                CharacteristicDescription(uuid=LEVEL, identifier="level"),
                CharacteristicDescription(
                    uuid=0x2A1A, identifier="power_state", optional=True
                ),
            ],
        ),
    ]
    device = make_device(FakeTransport([_battery()]), interface)

    await device.connect()

    assert device.state is ConnectionState.CONNECTED
    assert device.battery.get("power_state") is None
    assert device.battery.level.uuid == LEVEL
    assert device.discovery_attempts == 1
