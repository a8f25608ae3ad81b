#!/usr/bin/env python3

"""
Main entry point for XPlane-Arduino-Bridge
Parses command line arguments, loads the aircraft mappings
and runs the bridge until interrupted.

Part of the XPlane-Arduino-Bridge project.
"""

import sys
import argparse
import logging
import asyncio
import signal
from typing import Optional

from xplane_arduino_bridge.aircraft import SUPPORTED_AIRCRAFT
from xplane_arduino_bridge.core.bridge import Bridge
from xplane_arduino_bridge.core.settings import Settings

logger = logging.getLogger('main')


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="XPlane-Arduino-Bridge - Connects an Arduino cockpit panel to X-Plane"
    )

    parser.add_argument(
        "--aircraft",
        "-a",
        choices=sorted(SUPPORTED_AIRCRAFT),
        help="Aircraft mappings to load (default: from settings/ACTIVE_PLANE)"
    )

    parser.add_argument(
        "--list-aircraft",
        action="store_true",
        help="List supported aircraft and exit"
    )

    # Settings file
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Path to configuration file"
    )

    parser.add_argument(
        "--env-file",
        type=str,
        help="Path to a .env file with overrides (default: .env in the current directory)"
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level"
    )

    parser.add_argument(
        "--log-file",
        type=str,
        help="Log to specified file"
    )

    return parser.parse_args(argv)


async def run_bridge(bridge: Bridge, stop_event: Optional[asyncio.Event] = None) -> None:
    """
    Run the bridge until a shutdown signal is received.

    Args:
        bridge: Bridge instance
        stop_event: Event ending the run (SIGINT/SIGTERM set it too)
    """
    loop = asyncio.get_running_loop()
    stop_event = stop_event or asyncio.Event()
    handled_signals = []

    def signal_handler():
        logger.info("Shutdown signal received")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
            handled_signals.append(sig)
        except NotImplementedError:
            # Windows: KeyboardInterrupt cancels asyncio.run instead
            pass

    try:
        await bridge.start()
        logger.info("Bridge running, press Ctrl+C to stop")
        await stop_event.wait()

    finally:
        for sig in handled_signals:
            loop.remove_signal_handler(sig)
        if bridge.running:
            await bridge.stop()


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)

    if args.list_aircraft:
        for aircraft_id, profile in sorted(SUPPORTED_AIRCRAFT.items()):
            print(f"{aircraft_id:12} {profile.label}")
        return 0

    # Load settings
    settings = Settings(args.config)
    settings.apply_env_overrides(args.env_file)

    # Apply logging settings from command line
    if args.log_level:
        settings.set('logging', 'level', args.log_level)

    if args.log_file:
        settings.set('logging', 'log_to_file', True)
        settings.set('logging', 'log_file_path', args.log_file)

    settings.apply_logging_settings()

    if args.aircraft:
        settings.settings.aircraft = args.aircraft

    errors = settings.validate()
    if errors:
        for section, section_errors in errors.items():
            for error in section_errors:
                logger.error(f"Invalid settings [{section}]: {error}")
        return 1

    bridge = Bridge(settings)
    try:
        asyncio.run(run_bridge(bridge))
    except KeyboardInterrupt:
        logger.info("Bridge interrupted")

    logger.info("Bridge stopped, exiting")
    return 0


if __name__ == "__main__":
    sys.exit(main())
