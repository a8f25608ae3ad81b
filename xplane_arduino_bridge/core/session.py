#!/usr/bin/env python3

"""
X-Plane Session for XPlane-Arduino-Bridge
WebSocket client for the X-Plane web API. Subscribes to every mapped
dataref, turns value updates into panel commands and sends command
activations and dataref writes requested by the panel.

Part of the XPlane-Arduino-Bridge project.
"""

import asyncio
import json
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import websockets
import websockets.exceptions

from xplane_arduino_bridge import constants
from xplane_arduino_bridge.core.mappings import MappingRegistry, TOGGLE_DATAREF
from xplane_arduino_bridge.core.pipeline import ChangeDetector, apply_transform
from xplane_arduino_bridge.core.resolver import (
    IdentifierCategory, IdentifierResolver, LookupFailed
)

logger = logging.getLogger('session')


class SessionState(str, Enum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    SUBSCRIBE_PENDING = 'subscribe_pending'
    STREAMING = 'streaming'
    CLOSED = 'closed'


class XPlaneMessageType(str, Enum):
    """Message types exchanged with X-Plane over the WebSocket"""
    RESULT = 'result'
    DATAREF_UPDATE_VALUES = 'dataref_update_values'
    COMMAND_SET_IS_ACTIVE = 'command_set_is_active'
    DATAREF_SET_VALUES = 'dataref_set_values'
    DATAREF_SUBSCRIBE_VALUES = 'dataref_subscribe_values'


def invert_value(value: Any) -> Any:
    """
    Logical inverse of a dataref value, used by toggle buttons.

    Raises:
        TypeError: If the value is neither a boolean nor an integer
    """
    if isinstance(value, bool):
        return not value
    if isinstance(value, int):
        return 1 if value == 0 else 0
    raise TypeError(f"Can't toggle non integer/boolean value {value!r}")


class XPlaneSession:
    """
    Stateful WebSocket session with X-Plane.

    DISCONNECTED -> CONNECTING -> SUBSCRIBE_PENDING -> STREAMING, and back
    to DISCONNECTED whenever the socket closes. Every disconnection
    schedules one reconnection after a fixed delay until close() is called.
    """
    def __init__(self,
                 url: str,
                 registry: MappingRegistry,
                 resolver: IdentifierResolver,
                 detector: Optional[ChangeDetector] = None,
                 on_value: Optional[Callable[[str, Any], Any]] = None,
                 reconnect_delay: float = constants.DEFAULT_RECONNECT_DELAY):
        """
        Initialize the session.

        Args:
            url: WebSocket URL (e.g. ws://localhost:8086/api/v2)
            registry: Mapping registry of the active aircraft
            resolver: Identifier resolver shared with the bridge
            detector: Change detector (a new one is created if omitted)
            on_value: Callback receiving (arduino_cmd, value) for forwarded values
            reconnect_delay: Seconds to wait before reconnecting
        """
        self.url = url
        self.registry = registry
        self.resolver = resolver
        self.detector = detector or ChangeDetector()
        self.on_value = on_value
        self.reconnect_delay = reconnect_delay

        self.state = SessionState.DISCONNECTED
        self.ws: Optional[Any] = None

        # Request correlation (logged only)
        self.request_id = 1
        self.pending_requests: Dict[int, str] = {}
        self.subscribe_request_id: Optional[int] = None

        # Tasks
        self.receive_task: Optional[asyncio.Task] = None
        self.reconnect_task: Optional[asyncio.Task] = None

        # Statistics
        self.connect_attempts = 0
        self.frames_received = 0
        self.values_forwarded = 0
        self.errors = 0
        self.connected_since = 0.0

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """
        Open the WebSocket and subscribe to every mapped dataref.

        Returns:
            bool: True if the socket was opened
        """
        if self.state is SessionState.CLOSED:
            return False

        self.state = SessionState.CONNECTING
        self.connect_attempts += 1
        logger.info(f"Connecting to X-Plane at {self.url}")

        try:
            ws = await websockets.connect(self.url, max_size=None)
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
            logger.error(f"X-Plane connection error: {e!r}")
            self.errors += 1
            if self.state is not SessionState.CLOSED:
                self.state = SessionState.DISCONNECTED
                self._schedule_reconnect()
            return False

        # close() may have run while the socket was opening
        if self.state is SessionState.CLOSED:
            await ws.close()
            return False

        logger.info("WebSocket connection with X-Plane established")
        self.ws = ws
        self.connected_since = time.time()
        self.state = SessionState.SUBSCRIBE_PENDING
        self.pending_requests.clear()
        # X-Plane may have restarted; refresh every panel value
        self.detector.reset()

        await self.subscribe_all()
        if self.state is SessionState.CLOSED:
            # close() already shut the socket down
            return False

        self.receive_task = asyncio.create_task(self._receive_loop(ws))
        return True

    async def close(self) -> None:
        """Close the session for good (no further reconnection)."""
        self.state = SessionState.CLOSED

        if self.reconnect_task:
            self.reconnect_task.cancel()
            await asyncio.gather(self.reconnect_task, return_exceptions=True)
            self.reconnect_task = None

        if self.ws is not None:
            try:
                await self.ws.close()
            except Exception as e:
                logger.error(f"Error closing X-Plane connection: {e}")
            self.ws = None

        if self.receive_task:
            self.receive_task.cancel()
            await asyncio.gather(self.receive_task, return_exceptions=True)
            self.receive_task = None

        logger.info("X-Plane session closed")

    async def _receive_loop(self, ws: Any) -> None:
        """Read frames until the socket closes, then schedule a reconnect."""
        try:
            async for message in ws:
                await self.handle_message(message)

        except asyncio.CancelledError:
            raise

        except websockets.exceptions.ConnectionClosed as e:
            logger.warning(f"X-Plane connection closed: {e}")

        except Exception as e:
            logger.error(f"Error in X-Plane receive loop: {e!r}")
            self.errors += 1

        finally:
            if self.ws is ws:
                self.ws = None
            if self.state is not SessionState.CLOSED:
                self.state = SessionState.DISCONNECTED

        if self.state is SessionState.CLOSED:
            return

        logger.warning(f"Connection with X-Plane lost. Reconnecting in {self.reconnect_delay}s...")
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        current = asyncio.current_task()
        if self.reconnect_task and not self.reconnect_task.done() \
                and self.reconnect_task is not current:
            return
        self.reconnect_task = asyncio.create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        # Stays referenced in reconnect_task until connect() returns so close() can cancel it
        await asyncio.sleep(self.reconnect_delay)
        await self.connect()

    # ------------------------------------------------------------------
    # Outbound requests
    # ------------------------------------------------------------------

    async def send_request(self, message_type: XPlaneMessageType,
                           params: Dict[str, Any]) -> Optional[int]:
        """
        Send a request to X-Plane.

        Returns:
            int or None: Request id, or None if nothing was sent
        """
        if self.ws is None or self.state in (SessionState.DISCONNECTED, SessionState.CLOSED):
            logger.warning(f"Cannot send {message_type.value}: not connected to X-Plane")
            return None

        req_id = self.request_id
        self.request_id += 1

        message = {"req_id": req_id, "type": message_type.value, "params": params}
        try:
            await self.ws.send(json.dumps(message))
        except Exception as e:
            logger.error(f"Error sending {message_type.value} to X-Plane: {e!r}")
            self.errors += 1
            return None

        self.pending_requests[req_id] = message_type.value
        logger.debug(f"Sent {message_type.value} (req_id={req_id}): {params}")
        return req_id

    async def subscribe_all(self) -> Optional[int]:
        """
        Subscribe to every dataref in the outbound mapping table.

        Names are resolved one at a time; those that can't be resolved
        are skipped.
        """
        ids = []
        for name in self.registry.outbound_names():
            identifier = await self.resolver.resolve(IdentifierCategory.DATAREFS, name)
            if identifier is None:
                logger.warning(f"Skipping subscription to unknown dataref \"{name}\"")
                continue
            ids.append({"id": identifier})

        if not ids:
            logger.warning("No datarefs could be resolved, nothing to subscribe to")
            return None

        self.subscribe_request_id = await self.send_request(
            XPlaneMessageType.DATAREF_SUBSCRIBE_VALUES, {"datarefs": ids}
        )
        if self.subscribe_request_id is not None:
            logger.info(f"Subscribed to {len(ids)} datarefs")
        return self.subscribe_request_id

    async def execute_commands(self, names: List[str],
                               duration: float = constants.DEFAULT_COMMAND_DURATION) -> bool:
        """
        Activate one or more X-Plane commands.

        Every name is resolved before anything is sent; a single unknown
        command aborts the whole batch.
        """
        ids = await self.resolver.resolve_all(IdentifierCategory.COMMANDS, names)
        if ids is None:
            logger.error(f"Aborting command batch, unresolved command in {names}")
            self.errors += 1
            return False

        commands = [{"id": cid, "is_active": True, "duration": duration} for cid in ids]
        return await self.send_request(XPlaneMessageType.COMMAND_SET_IS_ACTIVE,
                                       {"commands": commands}) is not None

    async def write_values(self, names: List[str], value: Any) -> bool:
        """
        Write a value to one or more datarefs.

        With TOGGLE_DATAREF the current value of the first dataref is read
        and its inverse is written to all of them.
        """
        ids = await self.resolver.resolve_all(IdentifierCategory.DATAREFS, names)
        if ids is None:
            logger.error(f"Aborting dataref write, unresolved dataref in {names}")
            self.errors += 1
            return False

        if value == TOGGLE_DATAREF:
            try:
                current = await self.resolver.read_value(ids[0])
                value = invert_value(current)
            except (LookupFailed, TypeError) as e:
                logger.error(f"Aborting toggle of {names[0]}: {e}")
                self.errors += 1
                return False
            logger.debug(f"Toggling {names[0]}: {current} -> {value}")

        datarefs = [{"id": did, "value": value} for did in ids]
        return await self.send_request(XPlaneMessageType.DATAREF_SET_VALUES,
                                       {"datarefs": datarefs}) is not None

    # ------------------------------------------------------------------
    # Inbound frames
    # ------------------------------------------------------------------

    async def handle_message(self, raw: Any) -> None:
        """Parse and dispatch one frame received from X-Plane."""
        self.frames_received += 1

        if isinstance(raw, bytes):
            raw = raw.decode('utf-8', errors='ignore')

        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error(f"Malformed frame from X-Plane: {e}")
            self.errors += 1
            return

        if not isinstance(message, dict):
            logger.error(f"Unexpected frame from X-Plane: {message!r}")
            self.errors += 1
            return

        message_type = message.get('type')
        if message_type == XPlaneMessageType.RESULT.value:
            self._handle_result(message)
        elif message_type == XPlaneMessageType.DATAREF_UPDATE_VALUES.value:
            await self._handle_update_values(message.get('data'))
        else:
            logger.debug(f"Ignoring X-Plane message of type {message_type!r}")

    def _handle_result(self, message: Dict[str, Any]) -> None:
        req_id = message.get('request_id')
        request_type = self.pending_requests.pop(req_id, 'unknown request')

        if not message.get('success'):
            logger.error(f"X-Plane rejected {request_type} (req_id={req_id}): "
                         f"{message.get('error_code')} {message.get('error_message')}")
            self.errors += 1
            return

        logger.debug(f"X-Plane acknowledged {request_type} (req_id={req_id})")
        if req_id is not None and req_id == self.subscribe_request_id:
            self.state = SessionState.STREAMING
            logger.info("Dataref subscription acknowledged, streaming values")

    async def _handle_update_values(self, data: Any) -> None:
        if not isinstance(data, dict):
            logger.error(f"Malformed dataref update payload: {data!r}")
            self.errors += 1
            return

        for key, raw_value in data.items():
            try:
                identifier = int(key)
            except (TypeError, ValueError):
                logger.warning(f"Unexpected dataref id {key!r} in update, dropping rest of batch")
                return

            name = self.resolver.name_for_id(IdentifierCategory.DATAREFS, identifier)
            mapping = self.registry.outbound(name) if name else None
            if mapping is None:
                # Remaining entries of the batch are dropped too
                logger.warning(f"No mapping for dataref id {identifier}, dropping rest of batch")
                return

            try:
                value = apply_transform(mapping.transform, raw_value, mapping.value_map)
            except Exception as e:
                logger.error(f"Error transforming {name}={raw_value!r}: {e}")
                self.errors += 1
                continue

            if self.detector.should_forward(mapping.target_command, value, mapping.threshold):
                self.values_forwarded += 1
                if self.on_value:
                    result = self.on_value(mapping.target_command, value)
                    if asyncio.iscoroutine(result):
                        await result

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self.state in (SessionState.SUBSCRIBE_PENDING, SessionState.STREAMING)

    def get_status(self) -> Dict[str, Any]:
        """
        Get the current status of the session.

        Returns:
            dict: Status information
        """
        now = time.time()
        return {
            "url": self.url,
            "state": self.state.value,
            "connected": self.connected,
            "connect_attempts": self.connect_attempts,
            "next_request_id": self.request_id,
            "pending_requests": len(self.pending_requests),
            "frames_received": self.frames_received,
            "values_forwarded": self.values_forwarded,
            "errors": self.errors,
            "connected_for": now - self.connected_since if self.connected else 0,
            "datarefs_cached": self.resolver.cached_count(IdentifierCategory.DATAREFS),
            "commands_cached": self.resolver.cached_count(IdentifierCategory.COMMANDS),
        }
