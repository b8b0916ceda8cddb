"""
Shared fixtures for unit tests.

This module provides reusable fixtures for testing the heyu MQTT bridge core
and its collaborators without a broker or a heyu binary.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from heyu_mqtt.devices.registry import DeviceRegistry
from heyu_mqtt.mqtt.commands import CommandTranslator
from heyu_mqtt.protocol.address_queue import AddressQueue
from heyu_mqtt.protocol.monitor_parser import MonitorLineParser
from heyu_mqtt.router import EventRouter
from heyu_mqtt.structs import BridgeEnv

PREFIX = "home/x10"


@pytest.fixture
def bridge_env() -> BridgeEnv:
    """BridgeEnv with defaults and a fake heyu command."""
    return BridgeEnv(heyu_cmd="/usr/local/bin/heyu", heyu_x10conf="/tmp/does-not-matter/x10.conf")


@pytest.fixture
def registry() -> DeviceRegistry:
    return DeviceRegistry()


@pytest.fixture
def address_queue() -> AddressQueue:
    return AddressQueue()


@pytest.fixture
def parser(address_queue: AddressQueue) -> MonitorLineParser:
    return MonitorLineParser(address_queue)


@pytest.fixture
def router(registry: DeviceRegistry) -> EventRouter:
    """EventRouter for the default prefix, plain powerline on/off."""
    return EventRouter(PREFIX, CommandTranslator(use_cm17=False), registry)


@pytest.fixture
def cm17_router(registry: DeviceRegistry) -> EventRouter:
    """EventRouter translating on/off for the CM17A transmitter."""
    return EventRouter(PREFIX, CommandTranslator(use_cm17=True), registry)


@pytest.fixture
def mock_mqtt_client():
    """
    Mock MQTTClient for bridge tests.

    `publish` is an AsyncMock returning True, like a connected client.
    """
    client = MagicMock()
    client.publish = AsyncMock(return_value=True)
    client.start = AsyncMock()
    client.stop = AsyncMock()
    client.start_task = None
    return client


@pytest.fixture
def mock_runner():
    """Mock HeyuCommandRunner; `run` is synchronous like the real one."""
    runner = MagicMock()
    runner.run = MagicMock()
    runner.stop = AsyncMock()
    return runner


@pytest.fixture
def mock_monitor():
    monitor = MagicMock()
    monitor.start = AsyncMock()
    monitor.stop = AsyncMock()
    monitor.start_task = None
    return monitor


@pytest.fixture
def mock_mqtt_message():
    """Create a factory for mock aiomqtt messages."""

    def create_message(topic: str, payload: str | bytes | None):
        msg = MagicMock()
        msg.topic = MagicMock()
        msg.topic.value = topic
        msg.payload = payload.encode() if isinstance(payload, str) else payload
        return msg

    return create_message
