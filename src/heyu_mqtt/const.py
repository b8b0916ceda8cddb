import logging
import os

from heyu_mqtt import __version__

__all__ = [
    "DEFAULT_HEYU_CMD",
    "DEFAULT_HEYU_X10CONF",
    "DEFAULT_MQTT_CONN_DELAY",
    "DEFAULT_MQTT_HOST",
    "DEFAULT_MQTT_PORT",
    "DEFAULT_MQTT_PREFIX",
    "FOREIGN_LOG_FORMATTER",
    "HEYU_CHECK_RI_LINE_KEY",
    "HEYU_MONITOR_START_TASK_NAME",
    "HEYU_MQTT_DEBUG",
    "HEYU_MQTT_LOG_FORMAT",
    "HEYU_MQTT_LOG_HUMAN_OUTPUT",
    "HEYU_MQTT_LOG_JSON_FILE",
    "HEYU_MQTT_VERSION",
    "HOUSE_CODES",
    "MAX_UNIT",
    "MIN_UNIT",
    "MQTT_CLIENT_START_TASK_NAME",
    "NO_LEVEL",
    "RAW_DEVICE",
    "YES_ANSWER",
]

YES_ANSWER = ("1", "true", "yes", "on")
HEYU_MQTT_VERSION: str = __version__

# X10 addressing
HOUSE_CODES: str = "ABCDEFGHIJKLMNOP"
MIN_UNIT: int = 1
MAX_UNIT: int = 16
# level reported for unit commands that carry no dim level
NO_LEVEL: int = -1
RAW_DEVICE: str = "raw"

# Bridge defaults, overridden through the environment (see structs.BridgeEnv)
DEFAULT_MQTT_HOST: str = "localhost"
DEFAULT_MQTT_PORT: int = 1883
DEFAULT_MQTT_PREFIX: str = "home/x10"
DEFAULT_MQTT_CONN_DELAY: int = 10
DEFAULT_HEYU_CMD: str = "heyu"
DEFAULT_HEYU_X10CONF: str = "/etc/heyu/x10.conf"
HEYU_CHECK_RI_LINE_KEY: str = "CHECK_RI_LINE"

MQTT_CLIENT_START_TASK_NAME = "MQTTClient_START"
HEYU_MONITOR_START_TASK_NAME = "HeyuMonitor_START"

# adds logger name
FOREIGN_LOG_FORMATTER = logging.Formatter(
    "%(asctime)s.%(msecs)d %(levelname)s <%(name)s> [%(module)s:%(lineno)d] > %(message)s",
    "%m/%d/%y %H:%M:%S",
)

# Logging Configuration
HEYU_MQTT_DEBUG: bool = os.environ.get("HEYU_MQTT_DEBUG", "0").casefold() in YES_ANSWER
HEYU_MQTT_LOG_FORMAT: str = os.environ.get("HEYU_MQTT_LOG_FORMAT", "human")  # "json", "human", or "both"
_json_file = os.environ.get("HEYU_MQTT_LOG_JSON_FILE")
HEYU_MQTT_LOG_JSON_FILE: str | None = _json_file if _json_file else None
HEYU_MQTT_LOG_HUMAN_OUTPUT: str = os.environ.get("HEYU_MQTT_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path
