"""
Unit tests for the heyu monitor line parser.

Tests cover:
- Each recognized line type and the ordering of matchers
- Pairing of address lines with the following function line
- House-wide commands superseding queued addresses
- Noise lines and out-of-range addresses being dropped
"""

import pytest

from heyu_mqtt.protocol.address_queue import AddressQueue
from heyu_mqtt.protocol.monitor_parser import HouseFunction, MonitorLineParser
from heyu_mqtt.structs import (
    DeviceId,
    HouseCommand,
    HouseWideCommand,
    MonitorStarted,
    UnitAddressed,
    UnitCommand,
)

MONITOR_STARTED = "05/24 13:14:15  Monitor started"
ADDR_C1 = "05/24 13:14:16  rcvi addr unit       1 : hu C1  (Kitchen)"
ADDR_C2 = "05/24 13:14:16  rcvi addr unit       2 : hu C2  (Porch)"
FUNC_ON_C = "05/24 13:14:16  rcvi func           On : hc C"
FUNC_OFF_C = "05/24 13:14:17  rcvi func          Off : hc C"
ALLOFF_B = "05/24 13:14:25  rcvi func       AllOff : hc B"
XPRESET_O3 = "05/24 13:14:20  sndc func      xPreset : hu O3  level 32"


class TestMatch:
    """Tests for line classification without queue side effects"""

    def test_monitor_started(self):
        assert MonitorLineParser.match(MONITOR_STARTED) == MonitorStarted()

    def test_address_line(self):
        assert MonitorLineParser.match(ADDR_C2) == UnitAddressed("C", 2)

    def test_house_function_line_lowercases_function(self):
        assert MonitorLineParser.match(ALLOFF_B) == HouseFunction(house="B", function="alloff")

    def test_level_line(self):
        assert MonitorLineParser.match(XPRESET_O3) == UnitCommand(DeviceId("O", 3), "xpreset", 32)

    def test_elided_prefix_lines_are_recognized(self):
        assert MonitorLineParser.match("... addr unit  1 : hu C1") == UnitAddressed("C", 1)
        assert MonitorLineParser.match("... func  on : hc C") == HouseFunction(house="C", function="on")

    def test_monitor_started_wins_over_other_patterns(self):
        line = "Monitor started  rcvi func  On : hc C"
        assert MonitorLineParser.match(line) == MonitorStarted()

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "05/24 13:14:15  sndc addr unit",
            "05/24 13:14:18  Powerfail signal received",
            "05/24 13:14:19  rcvi func  On : hu C1",
            "05/24 13:14:19  RFXSensor data 0x12",
            "something completely different",
        ],
    )
    def test_noise_lines_do_not_match(self, line):
        assert MonitorLineParser.match(line) is None

    @pytest.mark.parametrize(
        "line",
        [
            "05/24 13:14:16  rcvi addr unit       1 : hu Q1",
            "05/24 13:14:16  rcvi addr unit      17 : hu C17",
            "05/24 13:14:16  rcvi addr unit       0 : hu C0",
            "05/24 13:14:16  rcvi func       AllOff : hc Z",
            "05/24 13:14:20  sndc func      xPreset : hu O17  level 32",
        ],
    )
    def test_out_of_range_addresses_are_dropped(self, line):
        assert MonitorLineParser.match(line) is None


class TestParse:
    """Tests for MonitorLineParser.parse and its address queue handling"""

    def test_monitor_started_event(self, parser):
        assert parser.parse(MONITOR_STARTED) == [MonitorStarted()]

    def test_address_line_queues_without_event(self, parser, address_queue):
        assert parser.parse(ADDR_C1) == []
        assert address_queue.pending("C") == frozenset({1})

    def test_function_line_applies_to_queued_units(self, parser, address_queue):
        # Arrange
        parser.parse(ADDR_C1)
        parser.parse(ADDR_C2)

        # Act
        events = parser.parse(FUNC_ON_C)

        # Assert
        assert events == [
            UnitCommand(DeviceId("C", 1), "on", -1),
            UnitCommand(DeviceId("C", 2), "on", -1),
        ]
        assert address_queue.pending("C") == frozenset()

    def test_two_units_with_elided_prefix(self, parser, address_queue):
        parser.parse("... addr unit  1 : hu C1")
        parser.parse("... addr unit  2 : hu C2")

        events = parser.parse("... func  on : hc C")

        assert {(str(e.device), e.command) for e in events} == {("C1", "on"), ("C2", "on")}
        assert len(address_queue) == 0

    def test_function_line_without_queue_emits_nothing(self, parser):
        assert parser.parse(FUNC_OFF_C) == []

    def test_function_line_only_consumes_its_house(self, parser, address_queue):
        parser.parse(ADDR_C1)
        parser.parse("05/24 13:14:16  rcvi addr unit       4 : hu D4")

        events = parser.parse(FUNC_OFF_C)

        assert events == [UnitCommand(DeviceId("C", 1), "off", -1)]
        assert address_queue.pending("D") == frozenset({4})

    def test_repeated_address_is_emitted_once(self, parser):
        parser.parse(ADDR_C1)
        parser.parse(ADDR_C1)

        assert parser.parse(FUNC_ON_C) == [UnitCommand(DeviceId("C", 1), "on", -1)]

    def test_non_status_function_still_emitted(self, parser):
        parser.parse(ADDR_C1)

        events = parser.parse("05/24 13:14:16  rcvi func          Dim : hc C")

        assert events == [UnitCommand(DeviceId("C", 1), "dim", -1)]

    @pytest.mark.parametrize(
        ("function", "command"),
        [
            ("AllOff", HouseCommand.ALL_OFF),
            ("AllOn", HouseCommand.ALL_ON),
            ("LightsOn", HouseCommand.LIGHTS_ON),
            ("LightsOff", HouseCommand.LIGHTS_OFF),
        ],
    )
    def test_house_wide_command(self, parser, function, command):
        events = parser.parse(f"05/24 13:14:25  rcvi func {function:>12} : hc B")
        assert events == [HouseWideCommand("B", command)]

    def test_house_wide_command_clears_queue(self, parser, address_queue):
        parser.parse("05/24 13:14:16  rcvi addr unit       1 : hu B1")
        parser.parse("05/24 13:14:16  rcvi addr unit       3 : hu B3")

        events = parser.parse(ALLOFF_B)

        assert events == [HouseWideCommand("B", HouseCommand.ALL_OFF)]
        assert not any(isinstance(e, UnitCommand) for e in events)
        assert address_queue.pending("B") == frozenset()
        # the superseded addresses do not leak into the next function line
        assert parser.parse("05/24 13:14:26  rcvi func           On : hc B") == []

    def test_level_line_bypasses_queue(self, parser, address_queue):
        parser.parse("05/24 13:14:16  rcvi addr unit       1 : hu O1")

        events = parser.parse(XPRESET_O3)

        assert events == [UnitCommand(DeviceId("O", 3), "xpreset", 32)]
        assert address_queue.pending("O") == frozenset({1})

    def test_noise_line_leaves_queue_alone(self, parser, address_queue):
        parser.parse(ADDR_C1)

        assert parser.parse("05/24 13:14:18  Powerfail signal received") == []
        assert address_queue.pending("C") == frozenset({1})

    @pytest.mark.parametrize("line", [MONITOR_STARTED, ADDR_C1, FUNC_ON_C, ALLOFF_B, XPRESET_O3, "noise"])
    def test_same_line_same_events_with_fresh_queue(self, line):
        first = MonitorLineParser(AddressQueue()).parse(line)
        second = MonitorLineParser(AddressQueue()).parse(line)
        assert first == second

    def test_default_queue_is_created(self):
        parser = MonitorLineParser()
        parser.parse(ADDR_C1)
        assert parser.address_queue.pending("C") == frozenset({1})
