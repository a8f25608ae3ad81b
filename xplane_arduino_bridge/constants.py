#!/usr/bin/env python3

"""
Constants for XPlane-Arduino-Bridge
Centralized configuration values and magic numbers.

Part of the XPlane-Arduino-Bridge project.
"""

# =============================================================================
# TIMING CONSTANTS (seconds)
# =============================================================================

COMPONENT_CHECK_INTERVAL = 1.0      # How often to check component status
LOG_STATUS_INTERVAL = 30.0          # How often to log status
ARDUINO_RESET_DELAY = 2.0           # Arduino reboots when the port is opened
READ_THREAD_JOIN_TIMEOUT = 2.0      # Wait for the serial read thread on close


# =============================================================================
# RECONNECTION CONSTANTS
# =============================================================================

DEFAULT_RECONNECT_DELAY = 5.0       # Fixed delay, no backoff, no retry cap


# =============================================================================
# X-PLANE WEB API
# =============================================================================

DEFAULT_XPLANE_HOST = "localhost"
DEFAULT_XPLANE_PORT = 8086          # X-Plane 12 web API port
DEFAULT_API_PATH = "/api/v2"
DEFAULT_REQUEST_TIMEOUT = 0.0       # 0 disables the HTTP timeout


# =============================================================================
# SERIAL CONSTANTS
# =============================================================================

DEFAULT_SERIAL_BAUDRATE = 9600
DEFAULT_SERIAL_TIMEOUT = 1.0
SERIAL_PORT_PATTERN = r"arduino|usb|serial"   # Used for port autodiscovery
MAX_LINE_LENGTH = 512               # Longer device lines are dropped


# =============================================================================
# MAPPING CONSTANTS
# =============================================================================

DEFAULT_COMMAND_DURATION = 0.0      # Immediate press-and-release
MOMENTARY_PRESS_DURATION = 0.1      # Hold time used by panel push buttons
BOOLEAN_THRESHOLD = 0.5             # Values above this light an LED


# =============================================================================
# AIRCRAFT
# =============================================================================

DEFAULT_AIRCRAFT = "zibo_737"
