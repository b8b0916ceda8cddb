"""MQTT bridge for X10 controllers driven through the heyu CLI."""

__version__ = "0.3.0"
