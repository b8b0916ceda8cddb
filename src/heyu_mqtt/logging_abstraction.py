"""Logging for the heyu MQTT bridge.

Wraps stdlib logging with two output formats (human-readable console lines and
JSON records for a file), structured `extra` context and the correlation id of
the monitor line or MQTT message being handled.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO, cast, override

from heyu_mqtt.const import (
    FOREIGN_LOG_FORMATTER,
    HEYU_MQTT_DEBUG,
    HEYU_MQTT_LOG_FORMAT,
    HEYU_MQTT_LOG_HUMAN_OUTPUT,
    HEYU_MQTT_LOG_JSON_FILE,
)
from heyu_mqtt.correlation import get_correlation_id

__all__ = [
    "BridgeLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "configure_third_party_loggers",
    "get_logger",
    "set_package_level",
]

_NO_CORRELATION = "[--]"


def _context_of(record: logging.LogRecord) -> Mapping[str, object] | None:
    extra_data = getattr(record, "extra_data", None)
    if isinstance(extra_data, Mapping) and extra_data:
        return cast("Mapping[str, object]", extra_data)
    return None


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        context = _context_of(record)
        if context:
            log_data["context"] = dict(context)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """`timestamp level [module:line] [corr-id] > message | key=value ...`"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        record.correlation_id = f"[{correlation_id}]" if correlation_id else _NO_CORRELATION
        formatted = super().format(record)
        context = _context_of(record)
        if context:
            formatted = f"{formatted} | " + " | ".join(f"{k}={v}" for k, v in context.items())
        return formatted


def _human_handler(human_output: str) -> logging.Handler:
    streams: dict[str, TextIO] = {"stdout": sys.stdout, "stderr": sys.stderr}
    if human_output in streams:
        return logging.StreamHandler(streams[human_output])
    try:
        human_path = Path(human_output)
        human_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(human_path, mode="a")
    except OSError as e:
        print(f"Warning: Failed to create human log file {human_output}: {e}", file=sys.stderr)
        return logging.StreamHandler(sys.stdout)


class BridgeLogger:
    """Thin wrapper over `logging.Logger` that accepts structured context.

    `extra` mappings are attached to the record as `extra_data` and rendered by
    both formatters, so call sites never build key=value strings themselves.
    """

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stdout",
        debug: bool = False,
    ) -> None:
        """Initialize BridgeLogger.

        Args:
            name: Logger name (typically module name)
            log_format: "json", "human", or "both"
            json_file: Path for JSON output (None disables JSON output)
            human_output: "stdout", "stderr", or a file path
            debug: Start at DEBUG instead of INFO

        """
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)
        self.log_format: str = log_format
        self.logger.setLevel(logging.DEBUG if debug else logging.INFO)

        if not self.logger.handlers:
            self._configure_handlers(json_file, human_output)

    def _configure_handlers(self, json_file: str | Path | None, human_output: str | None) -> None:
        handler_level = self.logger.level

        if self.log_format in ("json", "both") and json_file:
            try:
                json_path = Path(json_file)
                json_path.parent.mkdir(parents=True, exist_ok=True)
                json_handler = logging.FileHandler(json_path, mode="a")
            except OSError as e:
                print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)
            else:
                json_handler.setFormatter(JSONFormatter())
                json_handler.setLevel(handler_level)
                self.logger.addHandler(json_handler)

        if self.log_format in ("human", "both"):
            human_handler = _human_handler(human_output or "stdout")
            human_handler.setFormatter(HumanReadableFormatter())
            human_handler.setLevel(handler_level)
            self.logger.addHandler(human_handler)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        extra_payload = {"extra_data": dict(extra)} if extra else None
        self.logger.log(level, msg, *args, extra=extra_payload, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log at ERROR with the active exception's traceback."""
        log_extra = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, extra=log_extra, stacklevel=2)

    def set_level(self, level: int) -> None:
        """Set the level on the logger and every handler it owns."""
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> BridgeLogger:
    """Get a BridgeLogger configured from the HEYU_MQTT_LOG_* environment.

    Args:
        name: Logger name
        log_format: Override HEYU_MQTT_LOG_FORMAT
        json_file: Override HEYU_MQTT_LOG_JSON_FILE
        human_output: Override HEYU_MQTT_LOG_HUMAN_OUTPUT

    """
    return BridgeLogger(
        name=name,
        log_format=log_format or HEYU_MQTT_LOG_FORMAT,
        json_file=json_file or HEYU_MQTT_LOG_JSON_FILE,
        human_output=human_output or HEYU_MQTT_LOG_HUMAN_OUTPUT,
        debug=HEYU_MQTT_DEBUG,
    )


def configure_third_party_loggers(level: int = logging.ERROR) -> None:
    """Quiet the MQTT library loggers, which warn on every broker hiccup."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(FOREIGN_LOG_FORMATTER)
    for name in ("mqtt", "aiomqtt"):
        foreign = logging.getLogger(name)
        foreign.setLevel(level)
        foreign.propagate = False
        if not foreign.handlers:
            foreign.addHandler(handler)


def set_package_level(level: int, prefix: str = "heyu_mqtt") -> None:
    """Change the level of every bridge logger created so far, handlers included."""
    for name, candidate in logging.root.manager.loggerDict.items():
        if name.startswith(prefix) and isinstance(candidate, logging.Logger):
            candidate.setLevel(level)
            for handler in candidate.handlers:
                handler.setLevel(level)
