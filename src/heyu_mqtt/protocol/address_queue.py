"""Pending unit addresses awaiting their function line.

X10 sends a command as two frames: one or more address frames (`hu C1`,
`hu C2`) followed by a single function frame for the house (`func On : hc C`).
The queue holds the addressed units of each house until that function frame
arrives.
"""

from __future__ import annotations


class AddressQueue:
    """House letter -> addressed units, in the order they were first seen."""

    def __init__(self) -> None:
        self._pending: dict[str, dict[int, None]] = {}

    def add(self, house: str, unit: int) -> None:
        self._pending.setdefault(house, {})[unit] = None

    def pop(self, house: str) -> list[int]:
        """Return the units queued for `house` and forget them."""
        return list(self._pending.pop(house, {}))

    def clear(self, house: str) -> None:
        _ = self._pending.pop(house, None)

    def pending(self, house: str) -> frozenset[int]:
        return frozenset(self._pending.get(house, {}))

    def __len__(self) -> int:
        return sum(len(units) for units in self._pending.values())

    def __repr__(self) -> str:
        queued = {house: list(units) for house, units in self._pending.items()}
        return f"<AddressQueue: {queued}>"
