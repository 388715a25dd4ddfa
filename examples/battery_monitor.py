"""Connect to a device exposing the Battery Service and follow its level.

Usage:
    python examples/battery_monitor.py --duration 30
    python examples/battery_monitor.py --address AA:BB:CC:DD:EE:FF --log-data
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime

from blu import (
    BluContext,
    BluError,
    CharacteristicDescription,
    Device,
    DescriptorDescription,
    ExpectedProperties,
    Response,
    ServiceDescription,
)


class BatteryLevel(Response):
    """Battery level in percent."""

    @property
    def percent(self) -> int:
        return self.data[0]


class BatteryDevice(Device):
    """Any device with the standard Battery Service."""

    interface = [
        ServiceDescription(
            uuid=0x180F,
            identifier="battery",
            name="Battery Service",
            advertised=True,
            characteristics=[
                CharacteristicDescription(
                    uuid=0x2A19,
                    identifier="level",
                    name="Battery Level",
                    expected_properties=ExpectedProperties(read=True),
                    descriptors=[
                        DescriptorDescription(
                            uuid=0x2904,
                            identifier="presentation_format",
                            name="Presentation Format",
                            optional=True,
                        ),
                    ],
                ),
            ],
        ),
        ServiceDescription(
            uuid=0x180A,
            identifier="info",
            name="Device Information",
            optional=True,
            characteristics=[
                CharacteristicDescription(uuid=0x2A24, identifier="model", name="Model Number"),
            ],
        ),
    ]


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


async def monitor(address: str | None, duration: float, log_data: bool) -> None:
    """Connect, print the battery level and every notified change."""
    context = BluContext()
    context.configure(
        device_type=BatteryDevice,
        interface_matching="minimal",
        connection_timeout=20.0,
        data_transfer_logging=log_data,
    )

    if address:
        device = BatteryDevice.from_address(address, context=context)
    else:
        print("Scanning for a device advertising the Battery Service...")
        device = await context.scanner().get_device()

    def on_level(response: Response) -> None:
        print(f"[{_timestamp()}] level={BatteryLevel(response.data).percent}%")

    async with device:
        print(f"[{_timestamp()}] Connected to {device.name} ({device.id})")

        model = device.get("info") and device.info.get("model")
        if model is not None:
            print(f"  model={(await model.read_value()).decode(errors='replace')}")

        level = BatteryLevel(await device.battery.level.read_value())
        print(f"[{_timestamp()}] level={level.percent}%")

        device.battery.level.on(device.battery.level.EVENT_NOTIFICATION, on_level)
        await asyncio.sleep(duration)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Follow the battery level of a Bluetooth LE device."
    )
    parser.add_argument("--address", help="Device address (default: scan for one)")
    parser.add_argument(
        "--duration",
        type=float,
        default=30.0,
        help="Seconds to stay connected. Default: 30",
    )
    parser.add_argument(
        "--log-data",
        action="store_true",
        help="Log every payload read, written or notified.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.log_data else logging.INFO)
    try:
        asyncio.run(monitor(args.address, args.duration, args.log_data))
    except BluError as err:
        print(err)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
