"""Routing of parsed monitor events and MQTT set requests to outbound actions.

The router is the only place that mutates the DeviceRegistry. It performs no
I/O itself: every decision is returned as a list of OutboundAction for the
bridge to carry out, which keeps it synchronous and directly testable.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

from heyu_mqtt.devices.registry import DeviceRegistry
from heyu_mqtt.logging_abstraction import get_logger
from heyu_mqtt.mqtt.commands import CommandTranslator
from heyu_mqtt.structs import (
    DeviceId,
    Event,
    HouseWideCommand,
    InboundSetRequest,
    OutboundAction,
    PublishMqtt,
    RunControllerCommand,
    UnitCommand,
)

logger = get_logger(__name__)

# unit functions that leave the device switched on; xpreset's dim level is not published
ON_COMMANDS: frozenset[str] = frozenset({"on", "xpreset"})
OFF_COMMANDS: frozenset[str] = frozenset({"off"})


def status_payload(status: bool) -> str:
    """JSON-quoted device status, exactly `"on"` or `"off"`."""
    return json.dumps("on" if status else "off")


class EventRouter:
    """Decides what to execute and what to publish for each input."""

    lp: str = "router:"

    def __init__(
        self,
        prefix: str,
        translator: CommandTranslator | None = None,
        registry: DeviceRegistry | None = None,
    ) -> None:
        self.prefix: str = prefix
        self.translator: CommandTranslator = translator if translator is not None else CommandTranslator()
        self.registry: DeviceRegistry = registry if registry is not None else DeviceRegistry()

    def device_topic(self, device: DeviceId) -> str:
        return f"{self.prefix}/{device}"

    def house_event_topic(self, house: str) -> str:
        return f"{self.prefix}/house/{house}/event"

    # ===== MQTT -> heyu =====

    def handle_set_request(self, request: InboundSetRequest) -> list[OutboundAction]:
        lp = f"{self.lp}set:"
        if request.is_raw:
            tokens = tuple(request.payload.split())
            logger.info("%s X10 sending heyu command: %s", lp, " ".join(tokens))
            return [RunControllerCommand(tokens)]

        device = request.device
        if not isinstance(device, DeviceId):
            logger.warning("%s Not a device id: %r, skipping...", lp, device)
            return []
        token = self.translator.translate(request.payload)
        if token is None:
            logger.debug("%s Ignoring unsupported payload for %s: %r", lp, device, request.payload)
            return []

        _ = self.registry.add(device)
        logger.info(
            "%s X10 switching device %s %s (from %s)",
            lp,
            device,
            token,
            request.payload.strip().lower(),
        )
        return [RunControllerCommand((token, str(device)))]

    # ===== heyu -> MQTT =====

    def handle_event(self, event: Event) -> list[OutboundAction]:
        if isinstance(event, HouseWideCommand):
            return self._handle_house_command(event)
        if isinstance(event, UnitCommand):
            return self._handle_unit_command(event)
        # MonitorStarted / UnitAddressed carry no device state
        return []

    def handle_events(self, events: Iterable[Event]) -> list[OutboundAction]:
        """Route a batch of events (one monitor line can complete several)."""
        actions: list[OutboundAction] = []
        for event in events:
            actions.extend(self.handle_event(event))
        return actions

    def _handle_house_command(self, event: HouseWideCommand) -> list[OutboundAction]:
        lp = f"{self.lp}house:"
        status = event.command.status
        devices = self.registry.in_house(event.house)
        logger.info(
            "%s House-wide command for %s: %s (broadcasting)",
            lp,
            event.house,
            event.command.value,
            extra={"devices": len(devices)},
        )
        actions: list[OutboundAction] = [PublishMqtt(self.house_event_topic(event.house), event.command.value)]
        actions.extend(PublishMqtt(self.device_topic(device), status_payload(status)) for device in devices)
        return actions

    def _handle_unit_command(self, event: UnitCommand) -> list[OutboundAction]:
        lp = f"{self.lp}unit:"
        _ = self.registry.add(event.device)
        if event.command in ON_COMMANDS:
            status = True
        elif event.command in OFF_COMMANDS:
            status = False
        else:
            logger.debug("%s No status change for %s: %s", lp, event.device, event.command)
            return []

        logger.info(
            "%s Sending MQTT status for %s: %s",
            lp,
            event.device,
            event.command,
            extra={"level": event.level} if event.has_level else None,
        )
        return [PublishMqtt(self.device_topic(event.device), status_payload(status))]
