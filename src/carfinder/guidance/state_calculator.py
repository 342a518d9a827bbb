# state_calculator.py
# Folds a position fix, a heading and a target into one NavigationState.
# Pure: identical inputs always produce an identical state.

import math
import re
from typing import List, Optional, Tuple

from carfinder.guidance.direction import direction_label, direction_text, turn_instruction
from carfinder.guidance.errors import UndefinedBearingError
from carfinder.guidance.geo_utils import (
    bearing,
    distance,
    normalize_angle,
    relative_bearing,
    spoken_distance,
    validate_coordinate,
)
from carfinder.guidance.models import (
    AccuracyTier,
    Direction,
    FloorDirection,
    FloorLabel,
    GeoPoint,
    NavigationState,
    NavigationTarget,
    TurnDirection,
    TurnInstruction,
)
from carfinder.guidance.nav_config import (
    ACCURACY_HIGH_M,
    ACCURACY_MEDIUM_M,
    ARRIVAL_THRESHOLD_AR_M,
)

_BASEMENT = re.compile(r"^B(\d+)$", re.IGNORECASE)
_GROUND_LABELS = {"g", "gf", "ground"}


def parse_floor_label(label: Optional[FloorLabel]) -> Optional[int]:
    """
    Floor number for a floor label, or None when it cannot be read.

    "3" -> 3, "-1" -> -1, "G"/"Ground" -> 0, "B2" -> -2.
    """
    if label is None or isinstance(label, bool):
        return None
    if isinstance(label, int):
        return label
    text = str(label).strip()
    if not text:
        return None
    if text.lower() in _GROUND_LABELS:
        return 0
    match = _BASEMENT.match(text)
    if match:
        return -int(match.group(1))
    try:
        return int(text)
    except ValueError:
        return None


def floor_delta(current: Optional[FloorLabel], target: Optional[FloorLabel]) -> Tuple[int, FloorDirection]:
    """(|difference|, direction) between two floor labels; (0, SAME) if either is unknown."""
    current_n = parse_floor_label(current)
    target_n = parse_floor_label(target)
    if current_n is None or target_n is None:
        return 0, FloorDirection.SAME
    diff = target_n - current_n
    if diff > 0:
        return diff, FloorDirection.UP
    if diff < 0:
        return -diff, FloorDirection.DOWN
    return 0, FloorDirection.SAME


def accuracy_tier(accuracy_m: Optional[float], heading_known: bool = True) -> AccuracyTier:
    if not heading_known or accuracy_m is None or not math.isfinite(accuracy_m):
        return AccuracyTier.LOW
    if accuracy_m < ACCURACY_HIGH_M:
        return AccuracyTier.HIGH
    if accuracy_m < ACCURACY_MEDIUM_M:
        return AccuracyTier.MEDIUM
    return AccuracyTier.LOW


def build_instructions(
    distance_m: float,
    rel_bearing: float,
    floor_difference: int,
    floor_direction: FloorDirection,
    has_arrived: bool,
    target_name: str = "car",
    use_imperial: bool = False,
) -> List[str]:
    """Ordered, human-readable guidance: floor change first, then distance and direction."""
    instructions: List[str] = []

    if floor_difference > 0 and floor_direction != FloorDirection.SAME:
        noun = "floor" if floor_difference == 1 else "floors"
        instructions.append(f"Go {floor_direction.value} {floor_difference} {noun}")

    if has_arrived:
        instructions.append(f"You have arrived at your {target_name}")
    else:
        instructions.append(
            f"Your {target_name} is {spoken_distance(distance_m, use_imperial)} "
            f"{direction_text(rel_bearing)}"
        )
    return instructions


def calculate_navigation_state(
    position: GeoPoint,
    target: NavigationTarget,
    *,
    heading: Optional[float] = None,
    arrival_threshold_m: float = ARRIVAL_THRESHOLD_AR_M,
    use_imperial: bool = False,
) -> NavigationState:
    """
    Compute the navigation snapshot from the user's position to the target.

    Args:
        position:            Latest fix; its heading is used unless `heading` is given.
        target:              The parked car / hotel.
        heading:             Compass heading from a dedicated heading source.
        arrival_threshold_m: Distance under which the user has arrived.
        use_imperial:        Speak distances in feet/miles.

    Returns:
        NavigationState. An unknown heading is treated as 0 and reported
        with a LOW accuracy tier.

    Raises:
        InvalidCoordinateError: position or target is not a valid coordinate.
    """
    validate_coordinate(position.latitude, position.longitude)
    validate_coordinate(target.latitude, target.longitude)

    if heading is None:
        heading = position.heading
    heading_known = heading is not None and math.isfinite(heading)
    heading_deg = normalize_angle(heading) if heading_known else 0.0

    dist = distance(position, target)
    try:
        brg = bearing(position, target)
    except UndefinedBearingError:
        # Standing exactly on the target
        brg = None

    if brg is None or dist == 0.0:
        dist = 0.0
        brg_deg, rel = 0.0, 0.0
        direction = Direction.STRAIGHT
        turn = TurnInstruction(TurnDirection.STRAIGHT, 0.0)
    else:
        brg_deg = brg
        rel = relative_bearing(heading_deg, brg_deg)
        direction = direction_label(rel)
        turn = turn_instruction(heading_deg, brg_deg)

    floor_difference, floor_direction = floor_delta(position.floor, target.floor)

    elevation = 0.0
    if position.altitude is not None and target.altitude is not None:
        elevation = target.altitude - position.altitude

    has_arrived = dist < arrival_threshold_m

    instructions = build_instructions(
        dist, rel, floor_difference, floor_direction, has_arrived,
        target_name=target.name, use_imperial=use_imperial,
    )

    return NavigationState(
        distance_meters=dist,
        bearing_degrees=brg_deg,
        relative_bearing_degrees=rel,
        direction=direction,
        turn_instruction=turn,
        floor_difference=floor_difference,
        floor_direction=floor_direction,
        accuracy_tier=accuracy_tier(position.accuracy, heading_known),
        has_arrived=has_arrived,
        instructions=tuple(instructions),
        heading_degrees=heading_deg,
        heading_known=heading_known,
        elevation_meters=elevation,
        arrival_threshold_meters=arrival_threshold_m,
    )
