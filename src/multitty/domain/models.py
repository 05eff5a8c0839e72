"""Core domain models for the multitty system.

These models represent the records that flow between execution contexts
(bus messages) and the per-context view of terminal slots (sessions).
"""

from __future__ import annotations

import enum
import time
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

MAX_UNITS = 8
PRIMARY_UNIT = 0
BROADCAST_UNIT = -1


def unit_label(unit: int) -> str:
    """Display name for a terminal unit."""
    return f"TTY{unit}"


def is_valid_unit(unit: int) -> bool:
    return 0 <= unit < MAX_UNITS


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class MessageKind(str, enum.Enum):
    """Kinds of message carried on the broadcast bus."""

    REGISTER = "register"
    UNREGISTER = "unregister"
    OUTPUT = "output"
    INPUT = "input"
    PING = "ping"
    PONG = "pong"


class Role(str, enum.Enum):
    """Role of an execution context, fixed when the context is built."""

    PRIMARY = "primary"  # Owns the device, unit 0
    SECONDARY = "secondary"  # Proxies one unit over the bus


# ---------------------------------------------------------------------------
# Bus Models
# ---------------------------------------------------------------------------


class Message(BaseModel):
    """A single record published on the bus.

    ``origin`` identifies the sending context; receivers drop their own
    echoes by comparing it with their identity. ``timestamp`` is for
    diagnostics only and carries no ordering guarantee across senders.
    """

    model_config = ConfigDict(frozen=True)

    kind: MessageKind = Field(description="What the message announces or carries")
    unit: int = Field(ge=BROADCAST_UNIT, description="Unit this message concerns, -1 for all")
    payload: str | None = Field(default=None, description="Character data for output/input")
    origin: str = Field(min_length=1, description="Identifier of the sending context")
    timestamp: int = Field(ge=0, description="Sender clock in milliseconds")

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible wire shape, omitting an absent payload."""
        return self.model_dump(mode="json", exclude_none=True)


class ContextIdentity:
    """Identity of one execution context.

    Generated once at startup. Also owns the sender clock so that
    timestamps never go backwards for this context even if the wall
    clock does.
    """

    def __init__(self, origin: str | None = None) -> None:
        self.origin = origin or f"ctx-{uuid.uuid4().hex[:12]}"
        self._last_timestamp = 0

    def next_timestamp(self) -> int:
        now = time.time_ns() // 1_000_000
        self._last_timestamp = max(self._last_timestamp, now)
        return self._last_timestamp

    def __repr__(self) -> str:
        return f"ContextIdentity({self.origin!r})"


# ---------------------------------------------------------------------------
# Session Models
# ---------------------------------------------------------------------------


class Session(BaseModel):
    """The local record of one terminal slot.

    ``handle`` is only set by the Spawner that launched the context bound
    to this unit; it is never serialized.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    unit: int = Field(ge=0, lt=MAX_UNITS)
    in_use: bool = False
    is_primary: bool = False
    handle: Any = Field(default=None, exclude=True)

    @property
    def label(self) -> str:
        return unit_label(self.unit)

    def summary(self) -> dict[str, Any]:
        return {
            "unit": self.unit,
            "label": self.label,
            "in_use": self.in_use,
            "is_primary": self.is_primary,
        }
