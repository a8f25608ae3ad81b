#!/usr/bin/env python3

"""
Mapping Registry for XPlane-Arduino-Bridge
Holds the two mapping tables of the bridge:
- dataref name -> Arduino command (simulator to panel)
- Arduino input key -> X-Plane commands/datarefs (panel to simulator)

Tables are filled once by an aircraft profile before the bridge starts
and are only read afterwards.

Part of the XPlane-Arduino-Bridge project.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from xplane_arduino_bridge import constants
from xplane_arduino_bridge.core.pipeline import TransformKind

logger = logging.getLogger('mappings')

# Marker value: read the dataref and write its logical inverse
TOGGLE_DATAREF = 'TOGGLE_DATAREF'


class InputKind(str, Enum):
    """What a panel input triggers in X-Plane"""
    COMMAND = 'command'
    DATAREF = 'dataref'


@dataclass
class OutboundMapping:
    """Arduino command sent when a dataref changes"""
    target_command: str
    threshold: float = 0
    transform: Optional[TransformKind] = None
    value_map: Optional[Dict[Any, Any]] = None


@dataclass
class InboundMapping:
    """X-Plane actions triggered by a panel input"""
    kind: InputKind
    actions: List[str] = field(default_factory=list)
    value: Any = None
    duration: float = constants.DEFAULT_COMMAND_DURATION


def ensure_list(value: Union[str, List[str]]) -> List[str]:
    return list(value) if isinstance(value, (list, tuple)) else [value]


class MappingRegistry:
    """
    Registry of dataref and input mappings for the active aircraft.
    """
    def __init__(self):
        self.outbound_mappings: Dict[str, OutboundMapping] = {}
        self.inbound_mappings: Dict[str, InboundMapping] = {}

    # ------------------------------------------------------------------
    # Core registration
    # ------------------------------------------------------------------

    def register_outbound(self, dataref: str, mapping: OutboundMapping) -> None:
        """
        Register (or replace) the Arduino command fed by a dataref.

        Args:
            dataref: X-Plane dataref name
            mapping: Outbound mapping configuration

        Raises:
            ValueError: If the dataref, target command or threshold is invalid
        """
        if not dataref:
            raise ValueError("Dataref name cannot be empty")
        if not mapping.target_command:
            raise ValueError(f"Target command cannot be empty for {dataref}")
        if mapping.threshold < 0:
            raise ValueError(f"Threshold must not be negative for {dataref}")
        if mapping.transform is not None:
            mapping.transform = TransformKind(mapping.transform)

        self.outbound_mappings[dataref] = mapping

        details = ""
        if mapping.threshold:
            details += f" (threshold: {mapping.threshold})"
        if mapping.transform:
            details += f" (transform: {mapping.transform.value})"
        if mapping.value_map:
            details += f" (value_map: {mapping.value_map})"
        logger.info(f"X-Plane to Arduino mapping added: {dataref} -> {mapping.target_command}{details}")

    def register_inbound(self, input_key: str, mapping: InboundMapping) -> None:
        """
        Register (or replace) the X-Plane actions triggered by a panel input.

        Args:
            input_key: Value of "user_input" sent by the Arduino
            mapping: Inbound mapping configuration

        Raises:
            ValueError: If the input key or action list is empty
        """
        if not input_key:
            raise ValueError("Input key cannot be empty")
        if not mapping.actions or not all(mapping.actions):
            raise ValueError(f"Actions cannot be empty for input {input_key}")
        mapping.kind = InputKind(mapping.kind)

        self.inbound_mappings[input_key] = mapping
        logger.info(f"Arduino to X-Plane {mapping.kind.value} mapping added: "
                    f"{input_key} -> {', '.join(mapping.actions)}")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def outbound(self, dataref: str) -> Optional[OutboundMapping]:
        return self.outbound_mappings.get(dataref)

    def inbound(self, input_key: str) -> Optional[InboundMapping]:
        return self.inbound_mappings.get(input_key)

    def outbound_names(self) -> List[str]:
        """Distinct dataref names, in registration order."""
        return list(self.outbound_mappings)

    def get_status(self) -> Dict[str, Any]:
        return {
            "outbound": len(self.outbound_mappings),
            "inbound": len(self.inbound_mappings),
        }

    # ------------------------------------------------------------------
    # Helpers used by aircraft profiles
    # ------------------------------------------------------------------

    def add_dataref(self, dataref: str, arduino_cmd: str, threshold: float = 0,
                    transform: Optional[TransformKind] = None,
                    value_map: Optional[Dict[Any, Any]] = None) -> None:
        self.register_outbound(dataref, OutboundMapping(
            target_command=arduino_cmd,
            threshold=threshold,
            transform=transform,
            value_map=value_map,
        ))

    def add_boolean_dataref(self, dataref: str, arduino_cmd: str) -> None:
        """X-Plane sends any value and the panel gets 1/0 (LEDs)."""
        self.add_dataref(dataref, arduino_cmd, transform=TransformKind.BOOLEAN)

    def add_value_map_dataref(self, dataref: str, arduino_cmd: str,
                              value_map: Dict[Any, Any]) -> None:
        """X-Plane values are translated through value_map (mode annunciators)."""
        self.add_dataref(dataref, arduino_cmd, transform=TransformKind.VALUE_MAP,
                         value_map=value_map)

    def add_toggle_switch_dataref(self, switch: str,
                                  dataref: Union[str, List[str]]) -> None:
        """
        Two-position switch writing a dataref.
        The Arduino sends <switch>_on / <switch>_off and X-Plane gets 1 / 0.
        """
        datarefs = ensure_list(dataref)
        self.register_inbound(f"{switch}_on", InboundMapping(InputKind.DATAREF, datarefs, 1))
        self.register_inbound(f"{switch}_off", InboundMapping(InputKind.DATAREF, datarefs, 0))
        logger.info(f"[toggle switch] Arduino to X-Plane dataref mapping added: "
                    f"{switch} -> {', '.join(datarefs)}")

    def add_toggle_switch_commands(self, switch: str, on_command: Union[str, List[str]],
                                   off_command: Union[str, List[str], None] = None) -> None:
        """
        Two-position switch triggering commands.
        If off_command is not given, on_command is used for both positions.
        """
        on_commands = ensure_list(on_command)
        off_commands = ensure_list(off_command) if off_command else on_commands
        self.register_inbound(f"{switch}_on", InboundMapping(InputKind.COMMAND, on_commands))
        self.register_inbound(f"{switch}_off", InboundMapping(InputKind.COMMAND, off_commands))
        logger.info(f"[toggle switch] Arduino to X-Plane command mapping added: "
                    f"{switch} -> {', '.join(on_commands)}/{', '.join(off_commands)}")

    def add_momentary_switch_command(self, switch: str, command: Union[str, List[str]],
                                     duration: float = constants.DEFAULT_COMMAND_DURATION) -> None:
        commands = ensure_list(command)
        self.register_inbound(switch, InboundMapping(InputKind.COMMAND, commands,
                                                     duration=duration))
        logger.info(f"[momentary switch] Arduino to X-Plane command mapping added: "
                    f"{switch} -> {', '.join(commands)}")

    def add_momentary_switch_dataref(self, switch: str, dataref: Union[str, List[str]],
                                     value: Any) -> None:
        """Push button writing a dataref. Pass TOGGLE_DATAREF to flip it."""
        datarefs = ensure_list(dataref)
        self.register_inbound(switch, InboundMapping(InputKind.DATAREF, datarefs, value))
        logger.info(f"[momentary switch] Arduino to X-Plane dataref mapping added: "
                    f"{switch} -> {', '.join(datarefs)} = {value}")

    def add_rotary_encoder_commands(self, encoder: str,
                                    increment_command: Union[str, List[str]],
                                    decrement_command: Union[str, List[str]]) -> None:
        increment = ensure_list(increment_command)
        decrement = ensure_list(decrement_command)
        self.register_inbound(f"{encoder}_increment", InboundMapping(InputKind.COMMAND, increment))
        self.register_inbound(f"{encoder}_decrement", InboundMapping(InputKind.COMMAND, decrement))
        logger.info(f"[rotary encoder] Arduino to X-Plane command mapping added: "
                    f"{encoder} -> {', '.join(increment)}/{', '.join(decrement)}")
