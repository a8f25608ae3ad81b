#!/usr/bin/env python3

"""
Value Pipeline for XPlane-Arduino-Bridge
Transforms raw dataref values into what the panel expects and
decides whether a changed value is worth sending to the device.

Part of the XPlane-Arduino-Bridge project.
"""

import math
import logging
from enum import Enum
from typing import Any, Dict, Optional

from xplane_arduino_bridge import constants

logger = logging.getLogger('pipeline')


class TransformKind(str, Enum):
    """Transform applied to a dataref value before it reaches the panel"""
    BOOLEAN = 'boolean'
    ROUND = 'round'
    TO_DEGREES = 'to_degrees'
    VALUE_MAP = 'value_map'


def round_half_away(value: float) -> int:
    """
    Round to the nearest integer, ties away from zero.

    Python's built-in round() rounds ties to even, which would make
    2.5 -> 2 while the panel expects 3.
    """
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def to_boolean(value: float) -> int:
    return 1 if value > constants.BOOLEAN_THRESHOLD else 0


def radians_to_degrees(value: float) -> int:
    return round_half_away(value * 180.0 / math.pi)


def map_value(value: Any, value_map: Optional[Dict[Any, Any]]) -> Any:
    """
    Substitute a value through a lookup table.

    The raw value is used as the key. Integral floats also try their int
    form, and string keys (maps loaded from JSON) are tried last.
    Values without an entry pass through unchanged.

    Args:
        value: Raw dataref value
        value_map: Lookup table

    Returns:
        The mapped value, or the raw value when no entry matches
    """
    if not value_map:
        return value

    candidates = [value]
    if isinstance(value, float) and value.is_integer():
        candidates.append(int(value))
    candidates.extend(str(c) for c in list(candidates))

    for key in candidates:
        try:
            if key in value_map:
                return value_map[key]
        except TypeError:
            # Unhashable raw values (dataref arrays) can't be keys
            continue

    return value


def apply_transform(kind: Optional[TransformKind], value: Any,
                    value_map: Optional[Dict[Any, Any]] = None) -> Any:
    """
    Apply a transform to a raw value.

    Args:
        kind: Transform to apply (None forwards the value unmodified)
        value: Raw value received from X-Plane
        value_map: Lookup table for TransformKind.VALUE_MAP

    Returns:
        Transformed value

    Raises:
        ValueError: If the transform kind is unknown
        TypeError: If the value can't be transformed
    """
    if kind is None:
        return value
    if kind is TransformKind.BOOLEAN:
        return to_boolean(value)
    if kind is TransformKind.ROUND:
        return round_half_away(value)
    if kind is TransformKind.TO_DEGREES:
        return radians_to_degrees(value)
    if kind is TransformKind.VALUE_MAP:
        return map_value(value, value_map)

    raise ValueError(f"Unknown transform kind: {kind!r}")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float))


class ChangeDetector:
    """
    Remembers the last value sent for every device command and
    suppresses updates that don't move past the mapping threshold.
    """
    def __init__(self):
        # device command -> last value forwarded
        self.previous_values: Dict[str, Any] = {}

        # Statistics
        self.forwarded = 0
        self.suppressed = 0

    def should_forward(self, command: str, value: Any, threshold: float) -> bool:
        """
        Decide whether a value must be sent to the device.

        Args:
            command: Device command the value is sent with
            value: Newly computed value
            threshold: Minimum absolute change for numeric values

        Returns:
            bool: True if the value should be forwarded (and was recorded)
        """
        if command in self.previous_values:
            previous = self.previous_values[command]

            if _is_number(previous) and _is_number(value):
                changed = abs(value - previous) >= threshold
            else:
                changed = previous != value

            if not changed:
                self.suppressed += 1
                return False

        self.previous_values[command] = value
        self.forwarded += 1
        return True

    def last_value(self, command: str) -> Any:
        return self.previous_values.get(command)

    def reset(self) -> None:
        """Forget every forwarded value so the next update always goes out."""
        self.previous_values.clear()
        logger.debug("Previous values cleared")
