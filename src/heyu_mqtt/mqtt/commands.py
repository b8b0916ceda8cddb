"""Translation of MQTT set payloads into heyu command tokens."""

from __future__ import annotations

from typing import override

# payload -> heyu token, per transmitter
POWERLINE_TOKENS: dict[str, str] = {"on": "on", "off": "off"}
# the CM17A "Firecracker" RF transmitter has its own on/off commands
CM17A_TOKENS: dict[str, str] = {"on": "fon", "off": "foff"}


class CommandTranslator:
    """Maps an `on`/`off` payload to the heyu command for the configured transmitter."""

    def __init__(self, use_cm17: bool = False) -> None:
        self.use_cm17: bool = use_cm17
        self._tokens: dict[str, str] = CM17A_TOKENS if use_cm17 else POWERLINE_TOKENS

    @staticmethod
    def normalize(payload: str) -> str | None:
        """Return "on" or "off" for a recognized payload, None for anything else."""
        command = payload.strip().lower()
        return command if command in POWERLINE_TOKENS else None

    def translate(self, payload: str) -> str | None:
        """Return the heyu token for `payload`, or None if the payload is not on/off."""
        command = self.normalize(payload)
        if command is None:
            return None
        return self._tokens[command]

    @override
    def __repr__(self) -> str:
        return f"<CommandTranslator: use_cm17={self.use_cm17}>"
