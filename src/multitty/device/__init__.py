"""Device module for multitty.

The device is an external collaborator consumed through two primitives:
an output handler receiving ``(unit, byte)`` and ``inject_input(unit,
byte)``. Concrete backends are selected by configuration.

Public API:
    Device -- Abstract base class
    EchoDevice -- Loopback backend
    PtyDevice -- Shell-per-unit backend (POSIX only)
"""

from multitty.device.base import Device, DeviceError, OutputHandler
from multitty.device.echo import EchoDevice

__all__ = ["Device", "DeviceError", "OutputHandler", "EchoDevice", "PtyDevice"]


def __getattr__(name: str) -> type:
    """Lazy import for the POSIX-only backend."""
    if name == "PtyDevice":
        from multitty.device.pty_device import PtyDevice
        return PtyDevice
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
