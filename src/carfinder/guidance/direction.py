# direction.py
# Translates a relative bearing into categorical directions and turn instructions.
# Stateless; every function is defined over the whole real line.

from carfinder.guidance.geo_utils import relative_bearing
from carfinder.guidance.models import Direction, TurnDirection, TurnInstruction
from carfinder.guidance.nav_config import (
    BEHIND_SIDE_BAND_DEG,
    SHARP_BAND_DEG,
    SIDE_BAND_DEG,
    SLIGHT_BAND_DEG,
    STRAIGHT_BAND_DEG,
    TURN_AROUND_DEG,
)


# (inclusive upper bound of |angle|, right-hand label, left-hand label)
_BANDS = (
    (STRAIGHT_BAND_DEG,    Direction.STRAIGHT,       Direction.STRAIGHT),
    (SLIGHT_BAND_DEG,      Direction.SLIGHTLY_RIGHT, Direction.SLIGHTLY_LEFT),
    (SIDE_BAND_DEG,        Direction.RIGHT,          Direction.LEFT),
    (SHARP_BAND_DEG,       Direction.SHARPLY_RIGHT,  Direction.SHARPLY_LEFT),
    (BEHIND_SIDE_BAND_DEG, Direction.BEHIND_RIGHT,   Direction.BEHIND_LEFT),
)

_PHRASES = {
    Direction.STRAIGHT:       "straight ahead",
    Direction.SLIGHTLY_RIGHT: "slightly to your right",
    Direction.SLIGHTLY_LEFT:  "slightly to your left",
    Direction.RIGHT:          "to your right",
    Direction.LEFT:           "to your left",
    Direction.SHARPLY_RIGHT:  "sharply to your right",
    Direction.SHARPLY_LEFT:   "sharply to your left",
    Direction.BEHIND_RIGHT:   "behind you to the right",
    Direction.BEHIND_LEFT:    "behind you to the left",
    Direction.BEHIND:         "behind you",
}


def direction_label(relative_bearing_deg: float) -> Direction:
    """
    Categorical direction for a relative bearing.

    Bands on |angle|: <=10 straight, <=30 slightly, <=60 plain side,
    <=120 sharply, <=150 behind-side, otherwise behind. Positive angles
    are to the right. Inputs outside (-180, 180] are wrapped first.

    Raises:
        ValueError: the angle is NaN or infinite.
    """
    angle = relative_bearing(0.0, relative_bearing_deg)
    magnitude = abs(angle)
    for upper, right, left in _BANDS:
        if magnitude <= upper:
            return right if angle > 0 else left
    return Direction.BEHIND


def direction_text(relative_bearing_deg: float) -> str:
    """Spoken phrase for a relative bearing, e.g. "slightly to your left"."""
    return _PHRASES[direction_label(relative_bearing_deg)]


def turn_instruction(current_heading: float, target_bearing: float) -> TurnInstruction:
    """
    Discrete turn needed to face the target.

    |relative| <= 10 -> straight/0, >= 170 -> around/180,
    otherwise left or right by |relative| degrees.
    """
    rel = relative_bearing(current_heading, target_bearing)
    magnitude = abs(rel)
    if magnitude <= STRAIGHT_BAND_DEG:
        return TurnInstruction(TurnDirection.STRAIGHT, 0.0)
    if magnitude >= TURN_AROUND_DEG:
        return TurnInstruction(TurnDirection.AROUND, 180.0)
    if rel > 0:
        return TurnInstruction(TurnDirection.RIGHT, magnitude)
    return TurnInstruction(TurnDirection.LEFT, magnitude)
