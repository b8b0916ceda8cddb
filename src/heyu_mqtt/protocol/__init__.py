"""Parsing of `heyu monitor` output."""

from .address_queue import AddressQueue
from .monitor_parser import HOUSE_WIDE_COMMANDS, MonitorLineParser

__all__ = ["HOUSE_WIDE_COMMANDS", "AddressQueue", "MonitorLineParser"]
