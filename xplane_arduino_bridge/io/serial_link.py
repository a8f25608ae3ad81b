#!/usr/bin/env python3

"""
Serial Link for XPlane-Arduino-Bridge
Duplex line-delimited JSON link with the Arduino panel.
Reads {"user_input": ...} messages from the serial port and
writes {"cmd": ..., "value": ...} messages back.

Part of the XPlane-Arduino-Bridge project.
"""

import asyncio
import json
import re
import threading
import time
import logging
from typing import Optional, Callable, Any, Dict

import serial
import serial.tools.list_ports

from xplane_arduino_bridge import constants

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger('serial_link')


def autodiscover_port(pattern: str = constants.SERIAL_PORT_PATTERN) -> Optional[str]:
    """
    Find the first serial port that looks like an Arduino.

    Args:
        pattern: Regex matched (case-insensitive) against manufacturer and hardware id

    Returns:
        str or None: Port device name (e.g. 'COM3', '/dev/ttyACM0')
    """
    regex = re.compile(pattern, re.IGNORECASE)
    try:
        ports = serial.tools.list_ports.comports()
    except Exception as e:
        logger.error(f"Error listing serial ports: {e}")
        return None

    for port in ports:
        if regex.search(port.manufacturer or '') or regex.search(port.hwid or ''):
            return port.device
    return None


def decode_message(line: str) -> Optional[Dict[str, Any]]:
    """
    Decode a line received from the Arduino.

    Returns:
        dict or None: The message, or None if the line isn't a JSON object
    """
    if not line or len(line) > constants.MAX_LINE_LENGTH:
        return None
    try:
        message = json.loads(line)
    except ValueError:
        return None
    return message if isinstance(message, dict) else None


class SerialLink:
    """
    Serial connection with the Arduino panel.

    Lines are read in a separate thread; decoded messages are handed
    to the asyncio loop through call_soon_threadsafe so the callback
    always runs on the event loop thread.
    """
    def __init__(self,
                 port: str = '',
                 baudrate: int = constants.DEFAULT_SERIAL_BAUDRATE,
                 timeout: float = constants.DEFAULT_SERIAL_TIMEOUT,
                 message_callback: Optional[Callable[[Dict[str, Any]], Any]] = None,
                 reconnect_delay: float = constants.DEFAULT_RECONNECT_DELAY,
                 reset_delay: float = constants.ARDUINO_RESET_DELAY):
        """
        Initialize the serial link.

        Args:
            port: Serial port to use ('' to autodiscover the Arduino)
            baudrate: The baudrate to use
            timeout: Read timeout in seconds
            message_callback: Called on the event loop with each decoded message
            reconnect_delay: Fixed delay between reconnection attempts in seconds
            reset_delay: Time the Arduino needs to reboot after the port is opened
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.message_callback = message_callback
        self.reconnect_delay = reconnect_delay
        self.reset_delay = reset_delay

        # Serial connection
        self.serial_conn: Optional[serial.Serial] = None
        self.active_port: Optional[str] = None
        self.write_lock = threading.Lock()

        # Thread for reading from serial port
        self.read_thread: Optional[threading.Thread] = None
        self.running = False
        self.loop: Optional[asyncio.AbstractEventLoop] = None

        # Statistics
        self.lines_received = 0
        self.messages_received = 0
        self.messages_sent = 0
        self.ignored_lines = 0
        self.error_count = 0
        self.start_time = 0
        self.last_received_time = 0
        self.ready_time = 0

    def open(self) -> bool:
        """
        Open the serial connection.

        Returns:
            bool: True if connection opened successfully, False otherwise
        """
        port = self.port or autodiscover_port()
        if not port:
            logger.error("Arduino not found on any serial port")
            return False

        try:
            self.serial_conn = serial.Serial(
                port=port,
                baudrate=self.baudrate,
                timeout=self.timeout
            )
        except serial.SerialException as e:
            logger.error(f"Error opening serial port {port}: {e}")
            self.error_count += 1
            return False

        if not self.serial_conn.is_open:
            logger.error(f"Failed to open serial port {port}")
            return False

        self.active_port = port
        self.start_time = time.time()
        # Opening the port resets the board
        self.ready_time = self.start_time + self.reset_delay
        logger.info(f"Connected to Arduino on port {port}")
        return True

    def start_reading(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> bool:
        """
        Start reading from the serial port in a separate thread.

        Args:
            loop: Event loop receiving the messages (defaults to the running loop)

        Returns:
            bool: True if reading started successfully, False otherwise
        """
        if loop is not None:
            self.loop = loop
        elif self.loop is None:
            self.loop = asyncio.get_running_loop()

        if not self.serial_conn or not self.serial_conn.is_open:
            if not self.open():
                return False

        self.running = True
        self.read_thread = threading.Thread(target=self._read_loop, daemon=True)
        self.read_thread.start()
        logger.info(f"Started reading from serial port {self.active_port}")
        return True

    async def auto_reconnect(self) -> bool:
        """
        Wait the fixed reconnection delay and try to reopen the link.

        Returns:
            bool: True if reconnection was successful, False otherwise
        """
        logger.warning(f"Serial connection lost. Reconnecting in {self.reconnect_delay:.1f}s...")
        await asyncio.sleep(self.reconnect_delay)

        self._close_port()
        if self.start_reading():
            logger.info(f"Serial port {self.active_port} reconnected successfully")
            return True
        return False

    def close(self) -> None:
        """Close the serial connection and stop the read thread."""
        self.running = False

        # Wait for read thread to finish
        if self.read_thread and self.read_thread.is_alive() \
                and self.read_thread is not threading.current_thread():
            self.read_thread.join(timeout=constants.READ_THREAD_JOIN_TIMEOUT)

        self._close_port()

    def _close_port(self) -> None:
        if self.serial_conn and self.serial_conn.is_open:
            try:
                self.serial_conn.close()
                logger.info(f"Serial port {self.active_port} closed")
            except serial.SerialException as e:
                logger.error(f"Error closing serial port {self.active_port}: {e}")

    def send_command(self, cmd: str, value: Any) -> bool:
        """
        Send a command to the Arduino.

        Args:
            cmd: Arduino command name
            value: Value to display

        Returns:
            bool: True if the message was written
        """
        if not self.is_connected():
            logger.debug(f"Serial link not connected, dropping {cmd}={value!r}")
            return False

        line = json.dumps({"cmd": cmd, "value": value}) + "\n"
        try:
            with self.write_lock:
                self.serial_conn.write(line.encode('utf-8'))
        except serial.SerialException as e:
            logger.error(f"Serial write error: {e}")
            self.error_count += 1
            return False

        self.messages_sent += 1
        logger.debug(f"Sent command to Arduino: {line.strip()}")
        return True

    def _read_loop(self) -> None:
        """
        Main loop for reading from the serial port.
        Runs in a separate thread.
        """
        if not self.serial_conn:
            logger.error("Serial connection not initialized")
            return

        while self.running and self.serial_conn.is_open:
            try:
                line = self.serial_conn.readline()
                if line:
                    self._handle_line(line.decode('utf-8', errors='ignore').strip())

            except serial.SerialException as e:
                logger.error(f"Serial read error: {e}")
                self.error_count += 1
                # Leave the port closed so the bridge reconnects it
                self._close_port()
                break

            except Exception as e:
                logger.error(f"Unexpected error in read loop: {e}")
                self.error_count += 1

    def _handle_line(self, line: str) -> None:
        self.lines_received += 1
        self.last_received_time = time.time()

        message = decode_message(line)
        if message is None:
            # Arduino debug prints
            self.ignored_lines += 1
            logger.debug(f"Ignoring non JSON line from Arduino: {line[:100]}")
            return

        self.messages_received += 1
        if self.message_callback and self.loop and not self.loop.is_closed():
            self.loop.call_soon_threadsafe(self.message_callback, message)

    def is_connected(self) -> bool:
        return bool(self.serial_conn and self.serial_conn.is_open)

    def is_ready(self) -> bool:
        """Connected and past the Arduino reset delay."""
        return self.is_connected() and time.time() >= self.ready_time

    def get_status(self) -> Dict[str, Any]:
        """
        Get the current status of the serial link.

        Returns:
            dict: Status information
        """
        now = time.time()
        uptime = now - self.start_time if self.start_time > 0 else 0

        return {
            "port": self.active_port or self.port or "auto",
            "baudrate": self.baudrate,
            "connected": self.is_connected(),
            "ready": self.is_ready(),
            "running": self.running and bool(self.read_thread and self.read_thread.is_alive()),
            "lines_received": self.lines_received,
            "messages_received": self.messages_received,
            "messages_sent": self.messages_sent,
            "ignored_lines": self.ignored_lines,
            "error_count": self.error_count,
            "uptime_seconds": uptime,
            "last_received_ago": now - self.last_received_time if self.last_received_time > 0 else None
        }
