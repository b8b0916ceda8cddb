"""Exception hierarchy for the heyu MQTT bridge.

Only configuration and identifier construction raise. Everything on the
message path (unknown payloads, noise lines, broker or heyu failures) is
logged and dropped instead.
"""

from __future__ import annotations


class HeyuMqttError(Exception):
    """Base class for bridge errors."""


class InvalidDeviceIdError(HeyuMqttError, ValueError):
    """Text does not name an X10 device (house A-P, unit 1-16).

    Attributes:
        text: The rejected identifier as received

    """

    def __init__(self, text: str, reason: str = "not a house letter followed by a unit number") -> None:
        """Initialize with the rejected identifier and why it was rejected."""
        self.text: str = text
        self.reason: str = reason
        super().__init__(f"Invalid X10 device id {text!r}: {reason}")


class ConfigurationError(HeyuMqttError):
    """Environment variable holds a value the bridge cannot start with.

    Attributes:
        variable: Name of the offending environment variable
        reason: Specific validation failure

    """

    def __init__(self, variable: str, reason: str) -> None:
        """Initialize configuration error with variable name and reason."""
        self.variable: str = variable
        self.reason: str = reason
        super().__init__(f"Invalid configuration for {variable}: {reason}")
