"""Core data structures for the heyu MQTT bridge."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Literal, Self, override

from pydantic import BaseModel, ValidationError, field_validator

from heyu_mqtt.const import (
    DEFAULT_HEYU_CMD,
    DEFAULT_HEYU_X10CONF,
    DEFAULT_MQTT_CONN_DELAY,
    DEFAULT_MQTT_HOST,
    DEFAULT_MQTT_PORT,
    DEFAULT_MQTT_PREFIX,
    HOUSE_CODES,
    MAX_UNIT,
    MIN_UNIT,
    NO_LEVEL,
    RAW_DEVICE,
    YES_ANSWER,
)
from heyu_mqtt.exceptions import ConfigurationError, InvalidDeviceIdError

_DEVICE_ID_RE = re.compile(r"^([A-Za-z])(\d+)$")


@dataclass(frozen=True, slots=True)
class DeviceId:
    """An X10 device: house letter A-P plus unit 1-16, rendered as e.g. `C2`.

    Construction canonicalizes the house to upper case, so `DeviceId("c", 2)`
    and `DeviceId.parse("C02")` compare equal.
    """

    house: str
    unit: int

    def __post_init__(self) -> None:
        house = self.house.upper() if isinstance(self.house, str) else ""
        text = f"{self.house}{self.unit}"
        if len(house) != 1 or house not in HOUSE_CODES:
            raise InvalidDeviceIdError(text, f"house must be one of {HOUSE_CODES[0]}-{HOUSE_CODES[-1]}")
        if not isinstance(self.unit, int) or isinstance(self.unit, bool):
            raise InvalidDeviceIdError(text, "unit must be an integer")
        if not MIN_UNIT <= self.unit <= MAX_UNIT:
            raise InvalidDeviceIdError(text, f"unit must be between {MIN_UNIT} and {MAX_UNIT}")
        object.__setattr__(self, "house", house)

    @classmethod
    def parse(cls, text: str) -> Self:
        """Build a DeviceId from `<house><unit>` text, ignoring case and surrounding whitespace."""
        match = _DEVICE_ID_RE.match(text.strip())
        if match is None:
            raise InvalidDeviceIdError(text)
        try:
            return cls(match.group(1), int(match.group(2)))
        except InvalidDeviceIdError as e:
            raise InvalidDeviceIdError(text, e.reason) from None

    @override
    def __str__(self) -> str:
        return f"{self.house}{self.unit}"


class HouseCommand(StrEnum):
    """Functions that address every unit of a house at once."""

    ALL_ON = "allon"
    ALL_OFF = "alloff"
    LIGHTS_ON = "lightson"
    LIGHTS_OFF = "lightsoff"

    @property
    def status(self) -> bool:
        """Device status implied by the command: True for on."""
        return self in (HouseCommand.ALL_ON, HouseCommand.LIGHTS_ON)


# ===== Events produced by the monitor parser =====


@dataclass(frozen=True, slots=True)
class MonitorStarted:
    """`heyu monitor` reported that it is running."""


@dataclass(frozen=True, slots=True)
class UnitAddressed:
    """An address line: the unit waits in the AddressQueue for a function line."""

    house: str
    unit: int


@dataclass(frozen=True, slots=True)
class HouseWideCommand:
    house: str
    command: HouseCommand


@dataclass(frozen=True, slots=True)
class UnitCommand:
    """A function applied to one device.

    `command` is the lower-cased heyu function name (on, off, xpreset, dim...);
    `level` is NO_LEVEL unless the monitor line carried one.
    """

    device: DeviceId
    command: str
    level: int = NO_LEVEL

    @property
    def has_level(self) -> bool:
        return self.level != NO_LEVEL


type Event = MonitorStarted | UnitAddressed | HouseWideCommand | UnitCommand


# ===== Inbound requests and outbound actions =====


@dataclass(frozen=True, slots=True)
class InboundSetRequest:
    """A message received on `<prefix>/<device>/set`.

    `device` is either a DeviceId or the literal "raw", in which case `payload`
    is a heyu command line passed through verbatim.
    """

    device: DeviceId | Literal["raw"]
    payload: str

    def __post_init__(self) -> None:
        if not isinstance(self.device, DeviceId) and self.device != RAW_DEVICE:
            raise InvalidDeviceIdError(str(self.device), f'expected a DeviceId or "{RAW_DEVICE}"')

    @property
    def is_raw(self) -> bool:
        return self.device == RAW_DEVICE

    @classmethod
    def from_topic_segment(cls, segment: str, payload: str) -> Self:
        """Build a request from the device segment of a set topic.

        Raises:
            InvalidDeviceIdError: The segment is neither "raw" nor a device id

        """
        if segment.casefold() == RAW_DEVICE:
            return cls(RAW_DEVICE, payload)
        return cls(DeviceId.parse(segment), payload)


@dataclass(frozen=True, slots=True)
class RunControllerCommand:
    """Run `<heyu_cmd> *tokens`."""

    tokens: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class PublishMqtt:
    topic: str
    payload: str


type OutboundAction = RunControllerCommand | PublishMqtt


# ===== Configuration =====


def _env_flag(value: str | None) -> bool:
    return value is not None and value.strip().casefold() in YES_ANSWER


def _env_str(name: str) -> str | None:
    value = os.environ.get(name)
    return value if value else None


class BridgeEnv(BaseModel):
    """Bridge settings, read from environment variables by `from_environ()`."""

    mqtt_host: str = DEFAULT_MQTT_HOST
    mqtt_port: int = DEFAULT_MQTT_PORT
    mqtt_user: str | None = None
    mqtt_password: str | None = None
    mqtt_prefix: str = DEFAULT_MQTT_PREFIX
    # matched case-insensitively against published topics; empty retains everything
    mqtt_retain_re: str = ""
    mqtt_conn_delay: int = DEFAULT_MQTT_CONN_DELAY
    heyu_cmd: str = DEFAULT_HEYU_CMD
    # translate on/off to fon/foff for the CM17A "Firecracker" transmitter
    use_cm17: bool = False
    heyu_x10conf: str = DEFAULT_HEYU_X10CONF
    heyu_check_ri_line: str | None = None

    @field_validator("mqtt_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        return value or DEFAULT_MQTT_PREFIX

    @field_validator("mqtt_retain_re")
    @classmethod
    def _check_retain_re(cls, value: str) -> str:
        try:
            _ = re.compile(value, re.IGNORECASE)
        except re.error as e:
            msg = f"not a valid regular expression: {e}"
            raise ValueError(msg) from e
        return value

    @property
    def retain_pattern(self) -> re.Pattern[str]:
        return re.compile(self.mqtt_retain_re, re.IGNORECASE)

    @property
    def set_topic(self) -> str:
        """Subscription filter for inbound device commands."""
        return f"{self.mqtt_prefix}/+/set"

    @classmethod
    def from_environ(cls) -> BridgeEnv:
        """Read settings from the current environment.

        Raises:
            ConfigurationError: A variable holds a value that fails validation

        """
        values: dict[str, object] = {
            "mqtt_host": _env_str("MQTT_HOST"),
            "mqtt_port": _env_str("MQTT_PORT"),
            "mqtt_user": _env_str("MQTT_USER"),
            "mqtt_password": _env_str("MQTT_PASSWORD"),
            "mqtt_prefix": _env_str("MQTT_PREFIX"),
            "mqtt_retain_re": _env_str("MQTT_RETAIN_RE"),
            "mqtt_conn_delay": _env_str("MQTT_CONN_DELAY"),
            "heyu_cmd": _env_str("HEYU_CMD"),
            "use_cm17": _env_flag(os.environ.get("USE_CM17")),
            "heyu_x10conf": _env_str("HEYU_X10CONF"),
            "heyu_check_ri_line": _env_str("HEYU_CHECK_RI_LINE"),
        }
        try:
            return cls(**{k: v for k, v in values.items() if v is not None})
        except ValidationError as e:
            error = e.errors()[0]
            variable = str(error["loc"][0]).upper() if error["loc"] else "environment"
            raise ConfigurationError(variable, error["msg"]) from e
