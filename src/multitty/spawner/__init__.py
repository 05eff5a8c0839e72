"""Spawner module for multitty.

Allocates free units, launches secondary contexts bound to them through
a pluggable launcher, and frees the unit again when the context goes
away (explicit close or a liveness watch).

Public API:
    Spawner -- Allocation and supervision
    ContextLauncher / ContextHandle -- Launch abstractions
    SubprocessLauncher -- Terminal-window child process backend
    LivenessWatch -- Poll or wait strategies
"""

from multitty.spawner.base import (
    CapacityError,
    ContextHandle,
    ContextLauncher,
    LaunchError,
    SpawnError,
    UnitInUseError,
)
from multitty.spawner.liveness import (
    LivenessWatch,
    PollingLivenessWatch,
    WaitLivenessWatch,
    WatchToken,
    create_watch,
)
from multitty.spawner.spawner import Spawner
from multitty.spawner.subprocess_launcher import SubprocessHandle, SubprocessLauncher

__all__ = [
    "CapacityError",
    "ContextHandle",
    "ContextLauncher",
    "LaunchError",
    "LivenessWatch",
    "PollingLivenessWatch",
    "SpawnError",
    "Spawner",
    "SubprocessHandle",
    "SubprocessLauncher",
    "UnitInUseError",
    "WaitLivenessWatch",
    "WatchToken",
    "create_watch",
]
