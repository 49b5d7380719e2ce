"""Tri-state update intents.

A partial-update request cannot tell "field omitted" from "field null" on its
own, so every mutable field group is first turned into an ``UpdateIntent``:

* ``UNSPECIFIED`` - the plan has not resolved the value yet; leave the key out.
* ``CLEARED`` - the operator removed the value; send an explicit clear marker.
* ``ASSIGNED`` - send the value.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class _Unknown:
    """Marker for a plan value that is not known yet."""

    _instance: "_Unknown | None" = None

    def __new__(cls) -> "_Unknown":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Unknown":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "_Unknown":
        return self


UNKNOWN = _Unknown()


def is_unknown(value: Any) -> bool:
    return value is UNKNOWN


class IntentKind(str, Enum):
    UNSPECIFIED = "unspecified"
    CLEARED = "cleared"
    ASSIGNED = "assigned"


@dataclass(frozen=True)
class UpdateIntent:
    """What an update request should do with one field."""

    kind: IntentKind
    value: Any = None

    @classmethod
    def unspecified(cls) -> "UpdateIntent":
        return cls(IntentKind.UNSPECIFIED)

    @classmethod
    def cleared(cls) -> "UpdateIntent":
        return cls(IntentKind.CLEARED)

    @classmethod
    def assigned(cls, value: Any) -> "UpdateIntent":
        return cls(IntentKind.ASSIGNED, value)

    @classmethod
    def from_declared(cls, value: Any) -> "UpdateIntent":
        """Derive the intent from a declared plan value."""
        if value is UNKNOWN:
            return cls.unspecified()
        if value is None:
            return cls.cleared()
        return cls.assigned(value)

    @property
    def is_unspecified(self) -> bool:
        return self.kind is IntentKind.UNSPECIFIED

    @property
    def is_cleared(self) -> bool:
        return self.kind is IntentKind.CLEARED

    @property
    def is_assigned(self) -> bool:
        return self.kind is IntentKind.ASSIGNED

    def write(self, payload: Dict[str, Any], key: str, clear_marker: Any = None) -> None:
        """Write this intent into ``payload`` under ``key``.

        Args:
            payload: Request body being built.
            key: JSON field name.
            clear_marker: Value sent for CLEARED (``None`` or ``[]``).
        """
        if self.kind is IntentKind.UNSPECIFIED:
            return
        if self.kind is IntentKind.CLEARED:
            payload[key] = clear_marker
            return
        payload[key] = self.value
