"""Command-line interface for multitty.

Runs the primary context (device + console + bus relay), a secondary
console bound to one unit, or talks to a running primary to list, open
and close sessions.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from multitty.domain.models import MAX_UNITS, unit_label

logger = logging.getLogger(__name__)


def _secondary_unit(value: str) -> int:
    unit = int(value)
    if not 0 < unit < MAX_UNITS:
        raise argparse.ArgumentTypeError(f"unit must be in 1..{MAX_UNITS - 1} (0 is the primary)")
    return unit


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="multitty",
        description="Share one teletype device across several terminal sessions",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/multitty.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    primary_parser = subparsers.add_parser("primary", help="Run the device-owning primary on unit 0")
    primary_parser.add_argument(
        "--headless", action="store_true",
        help="Do not attach unit 0 to this terminal",
    )

    secondary_parser = subparsers.add_parser("secondary", help="Run a console bound to one unit")
    secondary_parser.add_argument(
        "--unit", type=_secondary_unit, required=True,
        help="Unit to bind (1-7)",
    )
    secondary_parser.add_argument(
        "--bus-url", type=str, default=None,
        help="Bus relay URL of the primary (default from config)",
    )

    spawn_parser = subparsers.add_parser("spawn", help="Open a new session window")
    spawn_parser.add_argument(
        "--unit", type=_secondary_unit, default=None,
        help="Unit to bind (default: next free unit)",
    )

    close_parser = subparsers.add_parser("close", help="Close a session")
    close_parser.add_argument("unit", type=_secondary_unit, help="Unit to close")

    subparsers.add_parser("sessions", help="List active sessions")

    return parser.parse_args(argv)


async def _run_primary(settings, config_path: Path | None, headless: bool) -> None:
    """Build the primary context and serve until detached or interrupted."""
    from multitty.bus.hub import BroadcastHub
    from multitty.bus.local import LocalBus
    from multitty.context import PrimaryContext
    from multitty.endpoint.server import create_app, serve
    from multitty.spawner.liveness import create_watch
    from multitty.spawner.subprocess_launcher import SubprocessLauncher
    from multitty.surface.console import ConsoleSurface
    from multitty.surface.memory import MemorySurface

    hub = BroadcastHub()
    device = _build_device(settings.device)
    if headless:
        surface = MemorySurface()
    else:
        surface = ConsoleSurface(
            detach_key=settings.sessions.detach_key,
            banner=f"[{unit_label(0)}] primary on {settings.bus.relay_url}",
        )
    launcher = SubprocessLauncher(
        bus_url=settings.bus.relay_url,
        terminal_command=settings.sessions.terminal_command,
        config_path=config_path,
    )
    context = PrimaryContext(
        bus=LocalBus(hub),
        device=device,
        surface=surface,
        launcher=launcher,
        watch=create_watch(settings.sessions.liveness, settings.sessions.poll_interval),
    )
    app = create_app(
        context, hub, device=device, surface=surface,
        stream_queue_size=settings.bus.stream_queue_size,
    )
    until = None if headless else surface.wait_closed()
    await serve(app, settings.bus.host, settings.bus.port, until=until)


def _build_device(config):
    if config.backend == "echo":
        from multitty.device.echo import EchoDevice
        return EchoDevice()
    from multitty.device.pty_device import PtyDevice
    return PtyDevice(
        shell_command=config.shell_command,
        rows=config.rows,
        cols=config.cols,
        term=config.term,
    )


async def _run_secondary(settings, unit: int, bus_url: str | None) -> int:
    """Attach this terminal to ``unit`` until the detach key is pressed."""
    from multitty.bus.base import BusError
    from multitty.bus.http_backend import HttpBus
    from multitty.context import SecondaryContext
    from multitty.surface.console import ConsoleSurface

    url = bus_url or settings.bus.relay_url
    bus = HttpBus(url=url, timeout=settings.bus.timeout, retry_delay=settings.bus.retry_delay)
    try:
        await bus.start()
    except BusError as e:
        print(f"Cannot attach {unit_label(unit)}: {e}", file=sys.stderr)
        return 1

    surface = ConsoleSurface(
        detach_key=settings.sessions.detach_key,
        banner=f"[{unit_label(unit)}] attached to {url}",
    )
    try:
        context = SecondaryContext(bus, surface, unit)
        async with surface:
            context.start()
            try:
                await surface.wait_closed()
            finally:
                context.destroy()
    finally:
        await bus.close()
    return 0


async def _control(settings, args) -> int:
    """Run one control command against a running primary."""
    from multitty.endpoint.client import ControlClient, ControlClientError

    try:
        async with ControlClient(settings.bus.relay_url, timeout=settings.bus.timeout) as client:
            if args.command == "spawn":
                session = await client.spawn(args.unit)
                print(f"Opened {session['label']}")
            elif args.command == "close":
                result = await client.close(args.unit)
                if result.get("status") == "ok":
                    print(f"Closed {unit_label(args.unit)}")
                else:
                    print(result.get("reason", "Nothing to close"))
            else:
                sessions = await client.sessions()
                print(f"Active TTYs: {len(sessions)}")
                for s in sessions:
                    role = "primary" if s["is_primary"] else "secondary"
                    print(f"  {s['label']:<6} unit {s['unit']}  {role}")
    except ControlClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the multitty CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from multitty.config.settings import load_settings
    from multitty.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    # Raw-mode consoles must not get log lines written into them
    interactive = args.command == "secondary" or (args.command == "primary" and not args.headless)
    setup_logging(settings.logging, console=not interactive)

    if args.command == "primary":
        logger.info("Starting primary on %s", settings.bus.relay_url)
        asyncio.run(_run_primary(settings, args.config, args.headless))

    elif args.command == "secondary":
        logger.info("Starting secondary for unit %d", args.unit)
        sys.exit(asyncio.run(_run_secondary(settings, args.unit, args.bus_url)))

    else:
        sys.exit(asyncio.run(_control(settings, args)))


if __name__ == "__main__":
    main()
