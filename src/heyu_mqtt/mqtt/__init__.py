"""MQTT side of the bridge.

- client.py: MQTTClient with connection lifecycle and publishing
- command_routing.py: set-topic parsing and hand-off to the bridge
- commands.py: on/off payload translation to heyu tokens
"""

from .client import MQTTClient
from .command_routing import CommandRouter
from .commands import CommandTranslator

__all__ = [
    "CommandRouter",
    "CommandTranslator",
    "MQTTClient",
]
