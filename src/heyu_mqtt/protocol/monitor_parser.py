"""Parser for `heyu monitor` output lines.

Lines of interest look like::

    05/24 13:14:15  Monitor started
    05/24 13:14:16  rcvi addr unit       2 : hu C2  (Porch)
    05/24 13:14:16  rcvi func           On : hc C
    05/24 13:14:20  sndc func      xPreset : hu O3  level 32
    05/24 13:14:25  rcvi func       AllOff : hc B

Each line is tried against an ordered table of matchers; the first matcher
that recognizes the line turns it into a typed parse result, which is then
applied against the AddressQueue to produce zero or more Events. Everything
else heyu prints (timers, powerline noise, RF dumps) matches nothing and is
dropped.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from heyu_mqtt.const import HOUSE_CODES, MAX_UNIT, MIN_UNIT, NO_LEVEL
from heyu_mqtt.protocol.address_queue import AddressQueue
from heyu_mqtt.structs import (
    DeviceId,
    Event,
    HouseCommand,
    HouseWideCommand,
    MonitorStarted,
    UnitAddressed,
    UnitCommand,
)

HOUSE_WIDE_COMMANDS: frozenset[str] = frozenset(command.value for command in HouseCommand)

MONITOR_STARTED_MARKER = "Monitor started"
ADDRESS_RE = re.compile(r"(?:^|\s)\S+ addr unit\s+\d+ : hu ([A-Z])(\d+)")
HOUSE_FUNCTION_RE = re.compile(r"(?:^|\s)\S+ func\s+(\w+) : hc ([A-Z])")
UNIT_LEVEL_FUNCTION_RE = re.compile(r"(?:^|\s)\S+ func\s+(\w+) : hu ([A-Z])(\d+)\s+level\s+(\d+)")


@dataclass(frozen=True, slots=True)
class HouseFunction:
    """A function frame addressed to a house (`func <name> : hc <H>`)."""

    house: str
    function: str


type ParseResult = MonitorStarted | UnitAddressed | HouseFunction | UnitCommand
type Matcher = Callable[[str], ParseResult | None]


def _valid_house(house: str) -> bool:
    return house in HOUSE_CODES


def _valid_unit(unit: int) -> bool:
    return MIN_UNIT <= unit <= MAX_UNIT


def match_monitor_started(line: str) -> ParseResult | None:
    return MonitorStarted() if MONITOR_STARTED_MARKER in line else None


def match_address(line: str) -> ParseResult | None:
    match = ADDRESS_RE.search(line)
    if match is None:
        return None
    house, unit = match.group(1), int(match.group(2))
    if not (_valid_house(house) and _valid_unit(unit)):
        return None
    return UnitAddressed(house, unit)


def match_house_function(line: str) -> ParseResult | None:
    match = HOUSE_FUNCTION_RE.search(line)
    if match is None or not _valid_house(match.group(2)):
        return None
    return HouseFunction(house=match.group(2), function=match.group(1).lower())


def match_unit_level_function(line: str) -> ParseResult | None:
    match = UNIT_LEVEL_FUNCTION_RE.search(line)
    if match is None:
        return None
    house, unit = match.group(2), int(match.group(3))
    if not (_valid_house(house) and _valid_unit(unit)):
        return None
    return UnitCommand(DeviceId(house, unit), match.group(1).lower(), int(match.group(4)))


# Order matters: the first matcher that recognizes a line wins.
MATCHERS: tuple[Matcher, ...] = (
    match_monitor_started,
    match_address,
    match_house_function,
    match_unit_level_function,
)


class MonitorLineParser:
    """Turns monitor lines into Events, pairing address and function frames.

    The only state is the injected AddressQueue; given a fresh queue the same
    line always yields the same Events.
    """

    def __init__(self, address_queue: AddressQueue | None = None) -> None:
        self.address_queue: AddressQueue = address_queue if address_queue is not None else AddressQueue()

    @staticmethod
    def match(line: str) -> ParseResult | None:
        """Classify a line without touching the address queue."""
        for matcher in MATCHERS:
            result = matcher(line)
            if result is not None:
                return result
        return None

    def parse(self, line: str) -> list[Event]:
        """Consume one monitor line and return the Events it completes."""
        result = self.match(line)
        if result is None:
            return []
        if isinstance(result, UnitAddressed):
            self.address_queue.add(result.house, result.unit)
            return []
        if isinstance(result, HouseFunction):
            return self._apply_house_function(result)
        return [result]

    def _apply_house_function(self, result: HouseFunction) -> list[Event]:
        if result.function in HOUSE_WIDE_COMMANDS:
            # a house-wide function supersedes any addresses still waiting
            self.address_queue.clear(result.house)
            return [HouseWideCommand(result.house, HouseCommand(result.function))]
        return [
            UnitCommand(DeviceId(result.house, unit), result.function, NO_LEVEL)
            for unit in self.address_queue.pop(result.house)
        ]
