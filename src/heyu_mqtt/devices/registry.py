"""Registry of X10 devices the bridge has seen or commanded.

X10 devices never report on their own, so a house-wide command (AllOff,
LightsOn...) can only be reflected to MQTT for devices the bridge already
knows about. The registry only grows; its size is bounded by the physical
installation (at most 16 houses x 16 units).
"""

from __future__ import annotations

from collections.abc import Iterator

from heyu_mqtt.structs import DeviceId


class DeviceRegistry:
    """Insertion-ordered set of DeviceId."""

    def __init__(self, devices: list[DeviceId] | None = None) -> None:
        self._devices: dict[DeviceId, None] = dict.fromkeys(devices or [])

    def add(self, device: DeviceId) -> bool:
        """Remember `device`. Returns True if it was not known before."""
        if device in self._devices:
            return False
        self._devices[device] = None
        return True

    def in_house(self, house: str) -> list[DeviceId]:
        """Known devices whose house letter is `house`."""
        house = house.upper()
        return [device for device in self._devices if device.house == house]

    def __contains__(self, device: object) -> bool:
        return device in self._devices

    def __iter__(self) -> Iterator[DeviceId]:
        return iter(self._devices)

    def __len__(self) -> int:
        return len(self._devices)

    def __repr__(self) -> str:
        return f"<DeviceRegistry: {', '.join(str(d) for d in self._devices)}>"
