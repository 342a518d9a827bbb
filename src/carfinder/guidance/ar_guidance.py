# ar_guidance.py
# Haptic cadence and AR arrow orientation derived from a NavigationState.

import math
from typing import Tuple

from carfinder.guidance.models import FloorDirection, HapticFeedback, HapticPattern, NavigationState
from carfinder.guidance.nav_config import METERS_PER_FLOOR

STRAIGHT_PULSE_DEG = 15.0

# (upper distance bound in metres, pulse interval in seconds)
_PULSE_INTERVALS = (
    (5.0, 0.3),
    (10.0, 0.5),
    (20.0, 0.8),
    (50.0, 1.2),
)
FAR_PULSE_INTERVAL_S = 1.5

_PATTERN_FEEDBACK = {
    HapticPattern.ARRIVED:  (HapticFeedback.SUCCESS, HapticFeedback.SUCCESS),
    HapticPattern.STRAIGHT: (HapticFeedback.MEDIUM,),
    HapticPattern.LEFT:     (HapticFeedback.LIGHT, HapticFeedback.LIGHT),
    HapticPattern.RIGHT:    (HapticFeedback.LIGHT, HapticFeedback.LIGHT, HapticFeedback.LIGHT),
}


def haptic_pattern(state: NavigationState) -> HapticPattern:
    if state.has_arrived:
        return HapticPattern.ARRIVED
    rel = state.relative_bearing_degrees
    if abs(rel) < STRAIGHT_PULSE_DEG:
        return HapticPattern.STRAIGHT
    return HapticPattern.RIGHT if rel > 0 else HapticPattern.LEFT


def haptic_pulse_interval(distance_m: float) -> float:
    """Seconds between guidance pulses; closer means faster."""
    for upper, interval in _PULSE_INTERVALS:
        if distance_m < upper:
            return interval
    return FAR_PULSE_INTERVAL_S


def pattern_feedback(pattern: HapticPattern) -> Tuple[HapticFeedback, ...]:
    """Pulse sequence for a pattern: one medium for straight, two light for left, three for right."""
    return _PATTERN_FEEDBACK[pattern]


def arrow_rotation(state: NavigationState) -> Tuple[float, float, float]:
    """
    (yaw, pitch, roll) in degrees for the AR arrow.

    Yaw is the relative bearing; pitch tilts the arrow towards the target's
    floor when there is a floor change.
    """
    yaw = state.relative_bearing_degrees
    pitch = 0.0
    if state.floor_difference > 0 and state.distance_meters > 0:
        rise = abs(state.elevation_meters) or state.floor_difference * METERS_PER_FLOOR
        pitch = math.degrees(math.atan2(rise, state.distance_meters))
        if state.floor_direction == FloorDirection.DOWN:
            pitch = -pitch
    return yaw, pitch, 0.0
