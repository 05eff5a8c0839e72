"""Broadcast bus module for multitty.

The only channel between execution contexts. The abstract interface is
served by an in-process backend (for the primary and for tests) and an
HTTP backend (for secondary processes).

Public API:
    Bus -- Abstract base class
    BroadcastHub -- Shared fan-out medium
    LocalBus -- In-process endpoint on a hub
    HttpBus -- Endpoint relaying through the primary's HTTP server
"""

from multitty.bus.base import Bus, BusError, MessageHandler
from multitty.bus.hub import BroadcastHub
from multitty.bus.local import LocalBus

__all__ = ["Bus", "BusError", "MessageHandler", "BroadcastHub", "LocalBus", "HttpBus"]


def __getattr__(name: str) -> type:
    """Lazy import for backends that require external deps."""
    if name == "HttpBus":
        from multitty.bus.http_backend import HttpBus
        return HttpBus
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
