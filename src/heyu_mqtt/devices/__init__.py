"""Known X10 devices."""

from .registry import DeviceRegistry

__all__ = ["DeviceRegistry"]
