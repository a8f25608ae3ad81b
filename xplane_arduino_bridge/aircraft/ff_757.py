#!/usr/bin/env python3

"""
FlightFactor 757 mappings.

Other known datarefs/commands of this aircraft:
- 1-sim/AP/dig3/hdgSetting
- 1-sim/comm/AP/hdgUP, 1-sim/comm/AP/hdgDN

Part of the XPlane-Arduino-Bridge project.
"""

from xplane_arduino_bridge.core.mappings import MappingRegistry
from xplane_arduino_bridge.core.pipeline import TransformKind


def initialize_mappings(registry: MappingRegistry) -> None:
    registry.add_dataref('1-sim/AP/altSetting', 'set_alt',
                         threshold=10, transform=TransformKind.ROUND)

    registry.add_rotary_encoder_commands(
        'altitude_encoder',
        '1-sim/comm/AP/altUP',
        '1-sim/comm/AP/altDN',
    )
