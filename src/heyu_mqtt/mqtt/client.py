"""MQTT client core for the heyu bridge.

Provides the MQTTClient class with connection lifecycle, publishing and
message routing delegation to the CommandRouter.
"""

from __future__ import annotations

import asyncio
import re
import uuid

import aiomqtt

from heyu_mqtt.logging_abstraction import get_logger
from heyu_mqtt.mqtt.command_routing import CommandRouter, SetRequestHandler
from heyu_mqtt.structs import BridgeEnv
from heyu_mqtt.utils import send_sigterm

logger = get_logger(__name__)

# CONNACK codes meaning the broker rejected our credentials (MQTT 3.1.1 and 5)
AUTH_FAILURE_CODES: tuple[int, ...] = (4, 5, 134, 135)


def is_auth_failure(err: aiomqtt.MqttError) -> bool:
    rc = getattr(err, "rc", None)
    if rc is not None and any(rc == code for code in AUTH_FAILURE_CODES):
        return True
    return "code:134" in str(err)


class MQTTClient:
    """Broker connection for the bridge: subscribes to set topics, publishes status."""

    lp: str = "mqtt:"
    start_task: asyncio.Task[None] | None = None

    def __init__(self, env: BridgeEnv, on_set_request: SetRequestHandler) -> None:
        self.env: BridgeEnv = env
        self._connected: bool = False
        self.topic: str = env.mqtt_prefix
        # house events are one-shot and must not be replayed to new subscribers
        self._house_event_re: re.Pattern[str] = re.compile(rf"^{re.escape(self.topic)}/house/[^/]+/event$")
        self.broker_client_id: str = f"heyu_mqtt_{uuid.uuid4().hex[:8]}"
        self.broker_host: str = env.mqtt_host
        self.broker_port: int = env.mqtt_port
        self.client: aiomqtt.Client | None = None
        self.command_router: CommandRouter = CommandRouter(self, on_set_request)

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _build_client(self) -> aiomqtt.Client:
        return aiomqtt.Client(
            hostname=self.broker_host,
            port=self.broker_port,
            username=self.env.mqtt_user,
            password=self.env.mqtt_password,
            identifier=self.broker_client_id,
        )

    def _get_connection_delay(self, lp: str) -> int:
        """Get connection retry delay, defaulting to 5 seconds."""
        delay = self.env.mqtt_conn_delay
        if delay <= 0:
            logger.debug(
                "%s MQTT connection delay is less than or equal to 0, which is probably a typo, setting to 5...",
                lp,
            )
            return 5
        return delay

    def should_retain(self, topic: str) -> bool:
        """House event topics are never retained; MQTT_RETAIN_RE filters the rest."""
        if self._house_event_re.match(topic):
            return False
        return self.env.retain_pattern.search(topic) is not None

    async def start(self) -> None:
        lp = f"{self.lp}start:"
        try:
            while True:
                if await self.connect():
                    try:
                        await self._start_receiver(lp)
                    except aiomqtt.MqttError as msg_err:
                        logger.warning("%s Lost connection to MQTT broker: %s", lp, msg_err)
                    self._connected = False
                    await self._close_client(lp)
                delay = self._get_connection_delay(lp)
                logger.info(
                    "%s no MQTT broker connection, sleeping for %s seconds before re-trying...",
                    lp,
                    delay,
                )
                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s MQTT start() EXCEPTION", lp)

    async def connect(self) -> bool:
        lp = f"{self.lp}connect:"
        self._connected = False
        logger.debug("%s Connecting to MQTT broker %s:%s...", lp, self.broker_host, self.broker_port)
        self.client = self._build_client()
        try:
            _ = await self.client.__aenter__()
        except aiomqtt.MqttError as mqtt_err_exc:
            logger.error("%s Connection failed [MqttError]: %s", lp, mqtt_err_exc)
            if is_auth_failure(mqtt_err_exc):
                logger.error(
                    "%s Bad username or password, check your MQTT credentials (username: %s)",
                    lp,
                    self.env.mqtt_user,
                )
                send_sigterm()
            return False

        self._connected = True
        logger.info(
            "%s Connected to MQTT broker: %s port: %s",
            lp,
            self.broker_host,
            self.broker_port,
        )
        return True

    async def _start_receiver(self, lp: str) -> None:
        assert self.client is not None, "client must be initialized"
        set_topic = self.env.set_topic
        await self.client.subscribe(set_topic, qos=0)
        logger.info("%s subscribed to MQTT topic %s", lp, set_topic)
        await self.command_router.start_receiver_task()

    async def _close_client(self, lp: str) -> None:
        if self.client is None:
            return
        try:
            await self.client.__aexit__(None, None, None)
        except aiomqtt.MqttError as ce:
            logger.debug("%s MQTT disconnect failed: %s", lp, ce)

    async def stop(self) -> None:
        lp = f"{self.lp}stop:"
        try:
            if self._connected and self.client is not None:
                logger.debug("%s Disconnecting from broker...", lp)
                await self.client.__aexit__(None, None, None)
        except aiomqtt.MqttError as ce:
            logger.warning("%s MQTT disconnect failed: %s", lp, ce)
        else:
            logger.info("%s Disconnected from MQTT broker", lp)
        finally:
            self._connected = False
            if self.start_task and not self.start_task.done():
                logger.debug("%s FINISHING: Cancelling start task", lp)
                _ = self.start_task.cancel()

    async def publish(self, topic: str, payload: str | bytes) -> bool:
        """Publish a message to the MQTT broker. Returns False if it could not be sent."""
        lp = f"{self.lp}publish:"
        if not self._connected or self.client is None:
            logger.debug("%s Not connected, dropping message for %s", lp, topic)
            return False
        retain = self.should_retain(topic)
        try:
            await self.client.publish(topic, payload, qos=0, retain=retain)
        except aiomqtt.MqttCodeError as mqtt_code_exc:
            logger.warning("%s [MqttCodeError] -> %s", lp, mqtt_code_exc)
            self._connected = False
        except aiomqtt.MqttError as mqtt_err:
            logger.warning("%s [MqttError] -> %s", lp, mqtt_err)
            self._connected = False
        else:
            logger.debug("%s %s <- %s (retain=%s)", lp, topic, payload, retain)
            return True
        return False
