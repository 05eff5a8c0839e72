"""Primary HTTP endpoint module for multitty.

The primary process serves the bus relay that secondary processes
attach to, plus a small control API used by the CLI to list, spawn and
close sessions.
"""
