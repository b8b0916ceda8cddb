from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

import dotenv
import uvloop

from heyu_mqtt.bridge import HeyuBridge
from heyu_mqtt.const import HEYU_MQTT_DEBUG, HEYU_MQTT_VERSION
from heyu_mqtt.correlation import correlation_context
from heyu_mqtt.exceptions import ConfigurationError
from heyu_mqtt.logging_abstraction import configure_third_party_loggers, get_logger, set_package_level
from heyu_mqtt.structs import BridgeEnv

logger = get_logger(__name__)
configure_third_party_loggers()


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bridge between heyu (X10) and an MQTT broker")
    parser.add_argument(
        "-D",
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)
    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {HEYU_MQTT_VERSION}")
    args = parser.parse_args(argv)

    if args.debug or HEYU_MQTT_DEBUG:
        set_package_level(logging.DEBUG)
        logger.info("Debug logging enabled")

    if args.env:
        _ = load_env_file(args.env)
    return args


def load_env_file(env_file: Path) -> bool:
    """Load a dotenv file over the process environment. Returns True if anything was loaded."""
    env_path = env_file.expanduser().resolve()
    if not env_path.exists():
        logger.error("Environment file not found", extra={"path": str(env_path)})
        return False
    loaded_any = dotenv.load_dotenv(env_path, override=True)
    if loaded_any:
        logger.info(" Environment variables loaded", extra={"source": str(env_path)})
    else:
        logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})
    return loaded_any


async def run_bridge(bridge: HeyuBridge) -> None:
    """Run the bridge until it finishes or SIGINT/SIGTERM stops it."""
    loop = asyncio.get_running_loop()

    def _on_signal(signum: int) -> None:
        logger.info("Intercepted signal: %s (%s)", signal.Signals(signum).name, signum)
        _ = loop.create_task(bridge.stop())

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, _on_signal, signum)
    logger.debug("Signal handlers configured for SIGINT & SIGTERM")
    try:
        await bridge.start()
    finally:
        for signum in (signal.SIGINT, signal.SIGTERM):
            _ = loop.remove_signal_handler(signum)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the heyu MQTT bridge."""
    with correlation_context(source="app"):
        logger.info("Starting heyu MQTT bridge", extra={"version": HEYU_MQTT_VERSION})
        _ = parse_cli(argv)

        try:
            env = BridgeEnv.from_environ()
        except ConfigurationError as e:
            logger.error("Cannot start: %s", e, extra={"variable": e.variable})
            return 2

        bridge = HeyuBridge(env)
        try:
            uvloop.run(run_bridge(bridge))
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
        except Exception as e:
            logger.exception(" Fatal error in main loop", extra={"error": str(e)})
            return 1
        logger.info("heyu MQTT bridge shutdown complete")
        return 0


if __name__ == "__main__":
    sys.exit(main())
