"""Domain models for multitty.

This package contains the bus message record, the session record, and
the unit constants shared by every component. Models use Pydantic v2
for validation and serialization.
"""

from multitty.domain.models import (
    BROADCAST_UNIT,
    MAX_UNITS,
    PRIMARY_UNIT,
    ContextIdentity,
    Message,
    MessageKind,
    Role,
    Session,
    is_valid_unit,
    unit_label,
)

__all__ = [
    "BROADCAST_UNIT",
    "MAX_UNITS",
    "PRIMARY_UNIT",
    "ContextIdentity",
    "Message",
    "MessageKind",
    "Role",
    "Session",
    "is_valid_unit",
    "unit_label",
]
