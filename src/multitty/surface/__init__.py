"""Rendering surface module for multitty.

Public API:
    Surface -- Abstract base class
    MemorySurface -- Headless scrollback buffer
    ConsoleSurface -- Raw-mode controlling terminal (POSIX only)
"""

from multitty.surface.base import KeystrokeHandler, Surface, SurfaceError
from multitty.surface.memory import MemorySurface

__all__ = ["KeystrokeHandler", "Surface", "SurfaceError", "MemorySurface", "ConsoleSurface"]


def __getattr__(name: str) -> type:
    """Lazy import for the POSIX-only backend."""
    if name == "ConsoleSurface":
        from multitty.surface.console import ConsoleSurface
        return ConsoleSurface
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
