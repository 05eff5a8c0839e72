"""Session registry: this context's view of which units are bound.

There is no central source of truth. Each context keeps its own copy,
updates it from its own actions, and folds in the register/unregister
announcements of its peers. All updates are set-membership toggles, so
duplicated or reordered announcements are harmless.
"""

from __future__ import annotations

import logging
from typing import Any

from multitty.domain.models import (
    BROADCAST_UNIT,
    MAX_UNITS,
    PRIMARY_UNIT,
    Message,
    MessageKind,
    Session,
    is_valid_unit,
)
from multitty.session.channel import SessionChannel

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Local, advisory table of Session records for units 0..MAX_UNITS-1.

    Unit 0 is the primary and is in use for the lifetime of the registry.
    """

    def __init__(self, channel: SessionChannel) -> None:
        self._channel = channel
        self._sessions: dict[int, Session] = {
            unit: Session(
                unit=unit,
                in_use=unit == PRIMARY_UNIT,
                is_primary=unit == PRIMARY_UNIT,
            )
            for unit in range(MAX_UNITS)
        }
        # Units this context registered on its own behalf
        self._owned: set[int] = set()
        self._offs = [
            channel.on(MessageKind.REGISTER, self._on_peer_register),
            channel.on(MessageKind.UNREGISTER, self._on_peer_unregister),
            channel.on(MessageKind.PING, self._on_ping),
            channel.on(MessageKind.PONG, self._on_pong),
        ]

    @property
    def owned_units(self) -> list[int]:
        return sorted(self._owned)

    # -- local operations ---------------------------------------------------

    def register(self, unit: int) -> None:
        """Claim ``unit`` for this context and announce it."""
        self._check_unit(unit)
        if unit == PRIMARY_UNIT and not self._channel.is_primary:
            raise ValueError("Unit 0 is reserved for the primary context")
        if unit != PRIMARY_UNIT and self._channel.is_primary:
            raise ValueError("The primary context only registers unit 0")
        if unit in self._owned:
            logger.debug("Unit %d already registered by this context", unit)
            return
        logger.info("Registering unit %d", unit)
        self._sessions[unit].in_use = True
        self._owned.add(unit)
        self._channel.send(MessageKind.REGISTER, unit)

    def unregister(self, unit: int) -> bool:
        """Mark ``unit`` free and announce it.

        Returns False, without publishing anything, if the unit was
        already free or is the primary unit.
        """
        self._check_unit(unit)
        if unit == PRIMARY_UNIT:
            logger.warning("Cannot unregister the primary unit")
            return False
        session = self._sessions[unit]
        if not session.in_use:
            logger.debug("Unit %d already free", unit)
            return False
        logger.info("Unregistering unit %d", unit)
        session.in_use = False
        self._owned.discard(unit)
        self._channel.send(MessageKind.UNREGISTER, unit)
        return True

    def reserve(self, unit: int) -> bool:
        """Mark ``unit`` in use locally without announcing it.

        Returns False if the unit is already in use.
        """
        self._check_unit(unit)
        session = self._sessions[unit]
        if session.in_use:
            return False
        session.in_use = True
        return True

    def release(self, unit: int) -> None:
        """Undo a reservation locally without announcing it."""
        self._check_unit(unit)
        if unit == PRIMARY_UNIT:
            return
        session = self._sessions[unit]
        session.in_use = False
        session.handle = None

    def ping(self) -> None:
        """Ask every peer to re-announce the units it owns."""
        self._channel.send(MessageKind.PING, BROADCAST_UNIT)

    def close(self) -> None:
        for off in self._offs:
            off()
        self._offs = []

    # -- queries ------------------------------------------------------------

    def get(self, unit: int) -> Session | None:
        return self._sessions.get(unit)

    def set_handle(self, unit: int, handle: Any) -> None:
        self._check_unit(unit)
        self._sessions[unit].handle = handle

    def is_available(self, unit: int) -> bool:
        session = self._sessions.get(unit)
        return session is not None and not session.in_use

    def active_units(self) -> list[int]:
        return [unit for unit, s in sorted(self._sessions.items()) if s.in_use]

    def active_sessions(self) -> list[Session]:
        return [self._sessions[unit] for unit in self.active_units()]

    def active_count(self) -> int:
        return len(self.active_units())

    def primary_sessions(self) -> list[Session]:
        return [s for s in self._sessions.values() if s.is_primary]

    # -- peer messages ------------------------------------------------------

    def _on_peer_register(self, message: Message) -> None:
        unit = message.unit
        if not is_valid_unit(unit):
            logger.warning("Ignoring register for invalid unit %d from %s", unit, message.origin)
            return
        if unit == PRIMARY_UNIT and self._channel.is_primary:
            logger.warning("Duplicate primary claim from %s ignored", message.origin)
            return
        if unit in self._owned:
            logger.warning("Unit %d claimed by %s but owned here", unit, message.origin)
        else:
            logger.info("Unit %d registered by %s", unit, message.origin)
            self._sessions[unit].in_use = True
        if self._channel.is_primary:
            self._channel.send(MessageKind.PONG, unit)

    def _on_peer_unregister(self, message: Message) -> None:
        unit = message.unit
        if not is_valid_unit(unit) or unit == PRIMARY_UNIT:
            logger.warning("Ignoring unregister for unit %d from %s", unit, message.origin)
            return
        logger.info("Unit %d unregistered by %s", unit, message.origin)
        session = self._sessions[unit]
        session.in_use = False
        session.handle = None
        self._owned.discard(unit)

    def _on_ping(self, message: Message) -> None:
        self._channel.send(MessageKind.PONG, message.unit)
        for unit in sorted(self._owned):
            self._channel.send(MessageKind.REGISTER, unit)

    def _on_pong(self, message: Message) -> None:
        logger.debug("Pong from %s for unit %d", message.origin, message.unit)

    def _check_unit(self, unit: int) -> None:
        if not is_valid_unit(unit):
            raise ValueError(f"Invalid unit {unit}: must be in [0, {MAX_UNITS})")

    def __repr__(self) -> str:
        return f"SessionRegistry(role={self._channel.role.value}, active={self.active_units()})"
