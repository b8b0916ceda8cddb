"""
Correlation ids for tracing one monitor line or MQTT message through the bridge.

Every inbound unit of work (a line from `heyu monitor`, a message on a
`/set` topic) gets its own id, stored in a context variable so that log
records emitted by the parser, router and collaborators can be tied together.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "ensure_correlation_id",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]

CORRELATION_ID_LENGTH = 12

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "heyu_mqtt_correlation_id",
    default=None,
)


def generate_correlation_id(source: str | None = None) -> str:
    """
    Create a new correlation id.

    Args:
        source: Optional short tag for where the work came from ("mon", "mqtt")

    Returns:
        `<source>-<12 hex chars>`, or just the hex part when no source is given
    """
    token = uuid.uuid4().hex[:CORRELATION_ID_LENGTH]
    return f"{source}-{token}" if source else token


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _ = _correlation_id.set(correlation_id)


@contextmanager
def correlation_context(
    correlation_id: str | None = None,
    source: str | None = None,
) -> Generator[str]:
    """
    Scope a correlation id to a block, restoring the outer id afterwards.

    Args:
        correlation_id: Id to use; a fresh one is generated when None
        source: Tag passed to generate_correlation_id for generated ids

    Yields:
        The id active inside the block

    Example:
        with correlation_context(source="mon") as corr_id:
            logger.info("parsing monitor line")
    """
    active_id = correlation_id or generate_correlation_id(source)
    token = _correlation_id.set(active_id)
    try:
        yield active_id
    finally:
        _correlation_id.reset(token)


def ensure_correlation_id(source: str | None = None) -> str:
    """Return the current id, creating and storing one if none is set."""
    current_id = get_correlation_id()
    if current_id is None:
        current_id = generate_correlation_id(source)
        set_correlation_id(current_id)
    return current_id
