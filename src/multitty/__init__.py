"""multitty -- one teletype device, several terminal sessions.

This package lets a single device-owning process (the primary, unit 0)
serve several independent terminal sessions running in their own
processes (secondaries, units 1-7). The processes coordinate only
through a best-effort broadcast bus: there is no central registry and
no durable state, so every process keeps its own advisory view of which
units are bound.
"""

__version__ = "0.1.0"
