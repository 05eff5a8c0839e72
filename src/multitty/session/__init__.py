"""Session coordination module for multitty.

Public API:
    SessionChannel -- Origin stamping, echo filtering, per-kind dispatch
    SessionRegistry -- Gossip-maintained view of bound units
    IORouter -- Primary-side device bridge
    SessionProxy -- Secondary-side surface bridge
"""

from multitty.session.channel import SessionChannel
from multitty.session.proxy import SessionProxy
from multitty.session.registry import SessionRegistry
from multitty.session.router import IORouter

__all__ = ["IORouter", "SessionChannel", "SessionProxy", "SessionRegistry"]
