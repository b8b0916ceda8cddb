"""MQTT command routing for inbound set messages.

Turns `<prefix>/<device>/set` messages into InboundSetRequest objects and hands
them to the bridge. Topics without a device segment, or outside the prefix,
are dropped.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from heyu_mqtt.correlation import correlation_context
from heyu_mqtt.exceptions import InvalidDeviceIdError
from heyu_mqtt.logging_abstraction import get_logger
from heyu_mqtt.structs import InboundSetRequest

if TYPE_CHECKING:
    from heyu_mqtt.mqtt.client import MQTTClient

logger = get_logger(__name__)

type SetRequestHandler = Callable[[InboundSetRequest], Awaitable[None]]


def decode_payload(payload: object) -> str:
    """aiomqtt hands payloads over as bytes, str, numbers or None."""
    if payload is None:
        return ""
    if isinstance(payload, bytes | bytearray):
        return bytes(payload).decode("utf-8", errors="replace")
    return str(payload)


class CommandRouter:
    """Helper class for routing MQTT messages to the bridge."""

    def __init__(self, mqtt_client: MQTTClient, on_set_request: SetRequestHandler) -> None:
        """Initialize the command router.

        Args:
            mqtt_client: MQTTClient owning the broker connection and topic prefix
            on_set_request: Coroutine called with each well-formed set request

        """
        self.client: MQTTClient = mqtt_client
        self.on_set_request: SetRequestHandler = on_set_request
        self._set_topic_re: re.Pattern[str] = re.compile(rf"^{re.escape(mqtt_client.topic)}/([^/]+)/set$")

    def parse_set_topic(self, topic: str) -> str | None:
        """Return the device segment of a set topic, or None if the topic is not one."""
        match = self._set_topic_re.match(topic)
        return match.group(1) if match else None

    def build_request(self, topic: str, payload: str) -> InboundSetRequest | None:
        lp = f"{self.client.lp}route:"
        segment = self.parse_set_topic(topic)
        if segment is None:
            logger.warning("%s Not a set topic: %s => %r, skipping...", lp, topic, payload)
            return None
        try:
            return InboundSetRequest.from_topic_segment(segment, payload)
        except InvalidDeviceIdError as e:
            logger.warning("%s %s (topic %s), skipping...", lp, e, topic)
            return None

    async def handle_message(self, topic: str, payload: object) -> None:
        lp = f"{self.client.lp}rcv:"
        text = decode_payload(payload)
        with correlation_context(source="mqtt"):
            logger.info("%s >>> MQTT MESSAGE RECEIVED: topic=%s, payload=%r", lp, topic, text)
            request = self.build_request(topic, text)
            if request is None:
                return
            await self.on_set_request(request)

    async def start_receiver_task(self) -> None:
        """Start listening for MQTT messages on subscribed topics"""
        assert self.client.client is not None, "client must be initialized"
        async for message in self.client.client.messages:
            await self.handle_message(message.topic.value, message.payload)
