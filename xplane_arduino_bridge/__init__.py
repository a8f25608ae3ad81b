#!/usr/bin/env python3

"""
XPlane-Arduino-Bridge
A bridge between X-Plane and an Arduino cockpit panel.

This package connects a home-built panel (switches, encoders, displays
and LEDs driven by an Arduino over a serial port) with X-Plane's web API.
Panel inputs trigger X-Plane commands or dataref writes, and dataref
changes are sent back to the panel.

Main components:
- IO: Serial link with the Arduino
- Core: Mappings, identifier resolution, value pipeline and the X-Plane session
- Aircraft: Mapping profiles for the supported aircraft
"""

from xplane_arduino_bridge.io import SerialLink
from xplane_arduino_bridge.core import (
    Settings, MappingRegistry, IdentifierResolver, XPlaneSession, Bridge
)

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    'SerialLink',
    'Settings', 'MappingRegistry', 'IdentifierResolver', 'XPlaneSession', 'Bridge'
]
