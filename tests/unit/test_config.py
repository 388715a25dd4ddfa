"""Test configuration options and the shared context."""

from __future__ import annotations

import pytest

from blu import BluContext, Configuration, Device, ScannerFilter
from blu.exceptions import ConfigurationError
from blu.models.enums import InterfaceMatching


class TestConfiguration:
    """Test option defaults and validation."""

    def test_defaults(self):
        config = Configuration()

        assert config.interface_matching is InterfaceMatching.STRICT
        assert config.auto_subscribe is True
        assert config.connection_timeout is None
        assert config.discovery_attempts == 3
        assert config.discovery_retry_delay == 1.0
        assert config.extensive_discovery is True
        assert config.data_transfer_logging is False
        assert config.device_type is None
        assert config.scanner_filters == ()

    def test_update_returns_validated_copy(self):
        config = Configuration()
        updated = config.update(interface_matching="minimal", connection_timeout=15)

        assert updated.interface_matching is InterfaceMatching.MINIMAL
        assert updated.connection_timeout == 15
        assert config.interface_matching is InterfaceMatching.STRICT

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError, match="auto_connect"):
            Configuration().update(auto_connect=True)

    @pytest.mark.parametrize(
        "options",
        [
            {"interface_matching": "loose"},
            {"connection_timeout": 0},
            {"connection_timeout": "10"},
            {"discovery_attempts": 0},
            {"discovery_attempts": True},
            {"discovery_retry_delay": -1},
            {"extensive_discovery": "yes"},
            {"auto_subscribe": "some"},
            {"auto_subscribe": [1, 2]},
            {"device_type": object},
            {"scanner_filters": [{"name": "x"}]},
        ],
    )
    def test_invalid_values(self, options):
        with pytest.raises(ConfigurationError):
            Configuration(**options)

    def test_auto_subscribe_keywords(self):
        assert Configuration(auto_subscribe="all").auto_subscribe is True
        assert Configuration(auto_subscribe="none").auto_subscribe is False
        assert Configuration(auto_subscribe=None).auto_subscribe is False

    def test_auto_subscribe_identifiers(self):
        config = Configuration(auto_subscribe=["level", "status"])

        assert config.auto_subscribe == ("level", "status")
        assert config.auto_subscribes("level")
        assert not config.auto_subscribes("other")
        assert not config.auto_subscribes(None)

    def test_device_type_and_filters(self):
        class Thermometer(Device):
            pass

        config = Configuration(
            device_type=Thermometer,
            scanner_filters=[ScannerFilter(name_prefix="Thermo")],
        )

        assert config.device_type is Thermometer
        assert config.scanner_filters == (ScannerFilter(name_prefix="Thermo"),)


class TestContext:
    """Test the context's configuration and connected-device registry."""

    def test_configure_and_restore_defaults(self):
        context = BluContext()
        context.configure(discovery_attempts=5)
        assert context.configuration.discovery_attempts == 5

        context.restore_defaults()
        assert context.configuration == Configuration()

    def test_invalid_configure_keeps_previous_configuration(self):
        context = BluContext()
        context.configure(discovery_attempts=2)

        with pytest.raises(ConfigurationError):
            context.configure(discovery_attempts=-1)
        assert context.configuration.discovery_attempts == 2

    def test_registry_follows_lifecycle_events(self):
        context = BluContext()
        first, second = object(), object()

        for device in (first, second):
            context.emit(context.EVENT_CONNECTED, _Named(device))
        assert context.connected_device is not None
        assert len(context.connected_devices) == 2

        last = context.connected_device
        context.emit(context.EVENT_CONNECTION_LOST, last)
        assert len(context.connected_devices) == 1
        assert context.connected_device is not last

        context.emit(context.EVENT_DISCONNECTED, context.connected_device)
        assert context.connected_devices == []
        assert context.connected_device is None


class _Named:
    def __init__(self, token: object):
        self.token = token
        self.name = f"device-{id(token)}"
