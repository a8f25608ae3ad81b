#!/usr/bin/env python3

"""
Package initialization for xplane_arduino_bridge.aircraft
Mapping profiles for the supported aircraft.

Part of the XPlane-Arduino-Bridge project.
"""

from typing import Callable, Dict, NamedTuple

from xplane_arduino_bridge.core.mappings import MappingRegistry
from xplane_arduino_bridge.aircraft import ff_757, zibo_737


class AircraftProfile(NamedTuple):
    label: str
    initialize: Callable[[MappingRegistry], None]


SUPPORTED_AIRCRAFT: Dict[str, AircraftProfile] = {
    'ff_757': AircraftProfile('FF 757', ff_757.initialize_mappings),
    'zibo_737': AircraftProfile('Zibo 737', zibo_737.initialize_mappings),
}


def load_aircraft(aircraft: str, registry: MappingRegistry) -> None:
    """
    Populate a registry with the mappings of an aircraft.

    Raises:
        KeyError: If the aircraft is not supported
    """
    if aircraft not in SUPPORTED_AIRCRAFT:
        raise KeyError(f"Unsupported aircraft: {aircraft}")
    SUPPORTED_AIRCRAFT[aircraft].initialize(registry)


__all__ = ['AircraftProfile', 'SUPPORTED_AIRCRAFT', 'load_aircraft']
