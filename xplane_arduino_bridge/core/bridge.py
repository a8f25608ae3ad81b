#!/usr/bin/env python3

"""
Bridge for XPlane-Arduino-Bridge
Main orchestrator that coordinates data flow between components.

Part of the XPlane-Arduino-Bridge project.
"""

import asyncio
import logging
import time
from typing import Dict, Any, Optional, Set

from xplane_arduino_bridge import constants
from xplane_arduino_bridge.aircraft import load_aircraft
from xplane_arduino_bridge.io.serial_link import SerialLink
from xplane_arduino_bridge.core.mappings import MappingRegistry, InputKind
from xplane_arduino_bridge.core.pipeline import ChangeDetector
from xplane_arduino_bridge.core.resolver import IdentifierResolver
from xplane_arduino_bridge.core.session import XPlaneSession
from xplane_arduino_bridge.core.settings import Settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger('bridge')


class Bridge:
    """
    Main orchestrator for XPlane-Arduino-Bridge.

    Coordinates the flow of data between different components:
    - SerialLink: Line-delimited JSON link with the Arduino panel
    - MappingRegistry: Dataref and input mappings of the active aircraft
    - IdentifierResolver: Dataref/command name to id lookups
    - XPlaneSession: WebSocket session with X-Plane
    """
    def __init__(self,
                 settings: Optional[Settings] = None,
                 aircraft: Optional[str] = None,
                 registry: Optional[MappingRegistry] = None,
                 resolver: Optional[IdentifierResolver] = None,
                 serial_link: Optional[SerialLink] = None):
        """
        Initialize the bridge.

        Args:
            settings: Settings manager (defaults are loaded if omitted)
            aircraft: Aircraft profile to load (overrides settings)
            registry: Pre-filled mapping registry (skips loading the aircraft profile)
            resolver: Identifier resolver (built from settings if omitted)
            serial_link: Device link (built from settings if omitted)
        """
        self.settings = settings or Settings()
        self.aircraft = aircraft or self.settings.settings.aircraft

        # Mapping tables, filled once before the session starts
        if registry is None:
            registry = MappingRegistry()
            logger.info(f"Initializing mappings for {self.aircraft}")
            load_aircraft(self.aircraft, registry)
        self.registry = registry

        xplane_settings = self.settings.get('xplane')
        self.resolver = resolver or IdentifierResolver(
            xplane_settings.rest_url,
            timeout=xplane_settings.request_timeout
        )
        self.detector = ChangeDetector()

        self.session = XPlaneSession(
            url=xplane_settings.websocket_url,
            registry=self.registry,
            resolver=self.resolver,
            detector=self.detector,
            on_value=self._send_to_device,
            reconnect_delay=xplane_settings.reconnect_delay
        )

        serial_settings = self.settings.get('serial')
        self.serial_link = serial_link or SerialLink(
            port=serial_settings.port,
            baudrate=serial_settings.baudrate,
            timeout=serial_settings.timeout,
            reconnect_delay=serial_settings.reconnect_delay,
            reset_delay=serial_settings.reset_delay
        )
        self.serial_link.message_callback = self._on_device_message

        # Flags and state
        self.running = False
        self.startup_time = 0
        self.error_count = 0
        self.unknown_inputs = 0
        self.main_task = None
        self.connect_task = None
        self.dispatch_tasks: Set[asyncio.Task] = set()

    def _send_to_device(self, cmd: str, value: Any) -> None:
        """Forward a simulator value to the panel."""
        self.serial_link.send_command(cmd, value)

    def _on_device_message(self, message: Dict[str, Any]) -> None:
        """
        Called on the event loop for every message read from the panel.
        Each message gets its own task, started in arrival order.
        """
        task = asyncio.create_task(self.handle_device_message(message))
        self.dispatch_tasks.add(task)
        task.add_done_callback(self.dispatch_tasks.discard)

    async def handle_device_message(self, message: Dict[str, Any]) -> bool:
        """
        Translate a panel input into X-Plane commands or dataref writes.

        Args:
            message: Decoded {"user_input": ...} message

        Returns:
            bool: True if a request was sent to X-Plane
        """
        input_key = message.get('user_input') if isinstance(message, dict) else None
        if not isinstance(input_key, str):
            logger.warning(f"Ignoring malformed message from Arduino: {message!r}")
            return False

        mapping = self.registry.inbound(input_key)
        if mapping is None:
            logger.warning(f"No mapping for Arduino input \"{input_key}\"")
            self.unknown_inputs += 1
            return False

        logger.debug(f"Arduino input \"{input_key}\" -> {mapping.kind.value} {mapping.actions}")
        try:
            if mapping.kind is InputKind.COMMAND:
                return await self.session.execute_commands(mapping.actions, mapping.duration)
            return await self.session.write_values(mapping.actions, mapping.value)
        except Exception as e:
            logger.error(f"Error handling Arduino input \"{input_key}\": {e!r}")
            self.error_count += 1
            return False

    async def start(self) -> None:
        """Start the bridge and all components."""
        if self.running:
            logger.warning("Bridge is already running")
            return

        logger.info(f"Starting XPlane-Arduino-Bridge ({self.aircraft})...")
        self.startup_time = time.time()
        self.running = True
        self.error_count = 0

        # Start serial link if enabled
        if self.settings.get('serial', 'enabled'):
            if not self.serial_link.start_reading(asyncio.get_running_loop()):
                logger.error("Failed to start serial link, will keep retrying")
                self.error_count += 1
        else:
            logger.info("Serial link disabled in settings")

        # Connect to X-Plane in the background (reconnects on its own)
        self.connect_task = asyncio.create_task(self.session.connect())

        # Start main monitoring loop
        self.main_task = asyncio.create_task(self._main_loop())

        logger.info("Bridge started successfully")

    async def stop(self) -> None:
        """Stop the bridge and all components."""
        if not self.running:
            logger.warning("Bridge is not running")
            return

        logger.info("Shutting down gracefully...")
        self.running = False

        # Cancel main task
        if self.main_task:
            self.main_task.cancel()
            try:
                await self.main_task
            except asyncio.CancelledError:
                pass

        # A first connection still resolving datarefs is abandoned
        if self.connect_task and not self.connect_task.done():
            self.connect_task.cancel()
            await asyncio.gather(self.connect_task, return_exceptions=True)

        # In-flight dispatches are abandoned
        for task in list(self.dispatch_tasks):
            task.cancel()

        await self.session.close()

        if self.settings.get('serial', 'enabled'):
            self.serial_link.close()
            logger.info("Serial link stopped")

        logger.info("Bridge closed")

    async def _main_loop(self) -> None:
        """Main monitoring loop that checks component status."""
        last_status_log = time.time()
        try:
            while self.running:
                await self._check_components()

                if time.time() - last_status_log >= constants.LOG_STATUS_INTERVAL:
                    self._log_status()
                    last_status_log = time.time()

                await asyncio.sleep(constants.COMPONENT_CHECK_INTERVAL)

        except asyncio.CancelledError:
            logger.info("Main loop cancelled")
            raise

    async def _check_components(self) -> None:
        """Check the status of all components and handle issues."""
        if self.settings.get('serial', 'enabled') and not self.serial_link.is_connected():
            await self.serial_link.auto_reconnect()

    def _log_status(self) -> None:
        """Log the status of all components."""
        status = self.get_status()
        serial_connected = bool(status['serial'] and status['serial']['connected'])

        logger.info(f"Bridge Status: up {status['uptime']:.0f}s, "
                    f"X-Plane {status['xplane']['state']}, "
                    f"Arduino {'connected' if serial_connected else 'disconnected'}, "
                    f"{status['xplane']['values_forwarded']} values forwarded")
        logger.debug(f"  Errors: {status['error_count']}")

        session_status = status['xplane']
        logger.debug("X-Plane Session:")
        logger.debug(f"  State: {session_status['state']}")
        logger.debug(f"  Frames: {session_status['frames_received']}, "
                     f"forwarded: {session_status['values_forwarded']}")

        if status['serial']:
            logger.debug("Serial Link:")
            logger.debug(f"  Connected: {status['serial']['connected']}")
            logger.debug(f"  Messages: {status['serial']['messages_received']} in, "
                         f"{status['serial']['messages_sent']} out")

    def get_status(self) -> Dict[str, Any]:
        """
        Get the status of the bridge and all components.

        Returns:
            dict: Status information
        """
        return {
            "running": self.running,
            "aircraft": self.aircraft,
            "uptime": time.time() - self.startup_time if self.startup_time > 0 else 0,
            "error_count": self.error_count,
            "unknown_inputs": self.unknown_inputs,
            "mappings": self.registry.get_status(),
            "xplane": self.session.get_status(),
            "serial": self.serial_link.get_status() if self.settings.get('serial', 'enabled') else None,
        }
