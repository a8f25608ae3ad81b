#!/usr/bin/env python3

"""
Package initialization for xplane_arduino_bridge.core
Core components for the XPlane-Arduino-Bridge application.

Part of the XPlane-Arduino-Bridge project.
"""

from xplane_arduino_bridge.core.settings import Settings
from xplane_arduino_bridge.core.pipeline import ChangeDetector, TransformKind
from xplane_arduino_bridge.core.mappings import MappingRegistry, TOGGLE_DATAREF
from xplane_arduino_bridge.core.resolver import IdentifierResolver, IdentifierCategory
from xplane_arduino_bridge.core.session import XPlaneSession
from xplane_arduino_bridge.core.bridge import Bridge

__all__ = [
    'Settings', 'ChangeDetector', 'TransformKind', 'MappingRegistry', 'TOGGLE_DATAREF',
    'IdentifierResolver', 'IdentifierCategory', 'XPlaneSession', 'Bridge'
]
