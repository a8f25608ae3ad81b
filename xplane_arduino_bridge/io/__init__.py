#!/usr/bin/env python3

"""
Package initialization for xplane_arduino_bridge.io
Module for input/output operations with the Arduino panel.

Part of the XPlane-Arduino-Bridge project.
"""

from xplane_arduino_bridge.io.serial_link import SerialLink

__all__ = ['SerialLink']
