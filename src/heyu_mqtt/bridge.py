"""Wiring of the heyu collaborators, the MQTT client and the routing core."""

from __future__ import annotations

import asyncio

from heyu_mqtt.const import HEYU_CHECK_RI_LINE_KEY, HEYU_MONITOR_START_TASK_NAME, MQTT_CLIENT_START_TASK_NAME
from heyu_mqtt.correlation import correlation_context
from heyu_mqtt.devices.registry import DeviceRegistry
from heyu_mqtt.heyu.monitor import HeyuMonitor
from heyu_mqtt.heyu.runner import HeyuCommandRunner
from heyu_mqtt.logging_abstraction import get_logger
from heyu_mqtt.mqtt.client import MQTTClient
from heyu_mqtt.mqtt.commands import CommandTranslator
from heyu_mqtt.protocol.address_queue import AddressQueue
from heyu_mqtt.protocol.monitor_parser import MonitorLineParser
from heyu_mqtt.router import EventRouter
from heyu_mqtt.structs import (
    BridgeEnv,
    InboundSetRequest,
    MonitorStarted,
    OutboundAction,
    PublishMqtt,
    RunControllerCommand,
)
from heyu_mqtt.utils import apply_x10conf_directive

logger = get_logger(__name__)


class HeyuBridge:
    """Owns the bridge state and carries out the router's decisions.

    Registry and address queue live here for the lifetime of the process and
    are only touched from the event loop thread, via the two handlers below.
    """

    lp: str = "bridge:"

    def __init__(
        self,
        env: BridgeEnv,
        mqtt_client: MQTTClient | None = None,
        runner: HeyuCommandRunner | None = None,
        monitor: HeyuMonitor | None = None,
    ) -> None:
        self.env: BridgeEnv = env
        self.registry: DeviceRegistry = DeviceRegistry()
        self.address_queue: AddressQueue = AddressQueue()
        self.parser: MonitorLineParser = MonitorLineParser(self.address_queue)
        self.router: EventRouter = EventRouter(
            env.mqtt_prefix,
            CommandTranslator(use_cm17=env.use_cm17),
            self.registry,
        )
        self.mqtt_client: MQTTClient = mqtt_client or MQTTClient(env, self.handle_set_request)
        self.runner: HeyuCommandRunner = runner or HeyuCommandRunner(env.heyu_cmd)
        self.monitor: HeyuMonitor = monitor or HeyuMonitor(env.heyu_cmd, self.handle_monitor_line)

    async def handle_monitor_line(self, line: str) -> None:
        lp = f"{self.lp}monitor:"
        with correlation_context(source="mon"):
            events = self.parser.parse(line)
            if not events:
                return
            if any(isinstance(event, MonitorStarted) for event in events):
                logger.info("%s watching heyu monitor", lp)
            await self.dispatch(self.router.handle_events(events))

    async def handle_set_request(self, request: InboundSetRequest) -> None:
        await self.dispatch(self.router.handle_set_request(request))

    async def dispatch(self, actions: list[OutboundAction]) -> None:
        """Execute router actions in order. Neither kind is acknowledged or retried."""
        for action in actions:
            if isinstance(action, RunControllerCommand):
                _ = self.runner.run(action.tokens)
            elif isinstance(action, PublishMqtt):
                _ = await self.mqtt_client.publish(action.topic, action.payload)

    def apply_x10conf(self) -> bool:
        """Write CHECK_RI_LINE into the heyu config before heyu is first started."""
        return apply_x10conf_directive(self.env.heyu_x10conf, HEYU_CHECK_RI_LINE_KEY, self.env.heyu_check_ri_line)

    async def start(self) -> None:
        """Start the MQTT client and the heyu monitor, and run until both finish."""
        lp = f"{self.lp}start:"
        _ = self.apply_x10conf()
        self.mqtt_client.start_task = m_start = asyncio.create_task(
            self.mqtt_client.start(),
            name=MQTT_CLIENT_START_TASK_NAME,
        )
        self.monitor.start_task = h_start = asyncio.create_task(
            self.monitor.start(),
            name=HEYU_MONITOR_START_TASK_NAME,
        )
        logger.info(
            "%s Bridging heyu and MQTT",
            lp,
            extra={
                "broker": f"{self.env.mqtt_host}:{self.env.mqtt_port}",
                "prefix": self.env.mqtt_prefix,
                "heyu_cmd": self.env.heyu_cmd,
                "use_cm17": self.env.use_cm17,
            },
        )
        results = await asyncio.gather(m_start, h_start, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
                logger.error("%s Service stopped with an error: %r", lp, result)

    async def stop(self) -> None:
        lp = f"{self.lp}stop:"
        logger.info("%s Shutting down heyu bridge...", lp)
        await self.monitor.stop()
        await self.runner.stop()
        await self.mqtt_client.stop()
        if self.monitor.start_task and not self.monitor.start_task.done():
            _ = self.monitor.start_task.cancel()
