# models.py
# Shared data structures and enums used across all modules.

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional, Tuple, Union

FloorLabel = Union[str, int]


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeoPoint:
    """Immutable position fix delivered by a location source."""
    latitude: float
    longitude: float
    altitude: Optional[float] = None       # metres
    heading: Optional[float] = None        # degrees [0, 360)
    accuracy: Optional[float] = None       # horizontal accuracy, metres
    floor: Optional[FloorLabel] = None
    timestamp: Optional[float] = None      # monotonic ordering key

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "heading": self.heading,
            "accuracy": self.accuracy,
            "floor": self.floor,
            "timestamp": self.timestamp,
        }

    @staticmethod
    def from_dict(d: dict) -> "GeoPoint":
        return GeoPoint(
            latitude=d["latitude"],
            longitude=d["longitude"],
            altitude=d.get("altitude"),
            heading=d.get("heading"),
            accuracy=d.get("accuracy"),
            floor=d.get("floor"),
            timestamp=d.get("timestamp"),
        )


@dataclass(frozen=True)
class NavigationTarget:
    """Where the user is heading: the parked car, a hotel, ..."""
    latitude: float
    longitude: float
    floor: Optional[FloorLabel] = None
    altitude: Optional[float] = None
    name: str = "car"

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "floor": self.floor,
            "altitude": self.altitude,
            "name": self.name,
        }

    @staticmethod
    def from_dict(d: dict) -> "NavigationTarget":
        return NavigationTarget(
            latitude=d["latitude"],
            longitude=d["longitude"],
            floor=d.get("floor"),
            altitude=d.get("altitude"),
            name=d.get("name", "car"),
        )


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Direction(Enum):
    STRAIGHT      = "straight"
    SLIGHTLY_RIGHT = "slightly-right"
    RIGHT         = "right"
    SHARPLY_RIGHT = "sharply-right"
    BEHIND_RIGHT  = "behind-right"
    SLIGHTLY_LEFT = "slightly-left"
    LEFT          = "left"
    SHARPLY_LEFT  = "sharply-left"
    BEHIND_LEFT   = "behind-left"
    BEHIND        = "behind"


class TurnDirection(Enum):
    LEFT     = "left"
    RIGHT    = "right"
    STRAIGHT = "straight"
    AROUND   = "around"


class FloorDirection(Enum):
    UP   = "up"
    DOWN = "down"
    SAME = "same"


class AccuracyTier(Enum):
    HIGH   = "high"
    MEDIUM = "medium"
    LOW    = "low"


class HapticFeedback(Enum):
    LIGHT   = "light"
    MEDIUM  = "medium"
    HEAVY   = "heavy"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR   = "error"


class SpeechPriority(IntEnum):
    """Lower value is spoken first."""
    URGENT = 1
    HIGH   = 2
    NORMAL = 3
    LOW    = 4


class HapticPattern(Enum):
    LEFT     = "left"
    RIGHT    = "right"
    STRAIGHT = "straight"
    ARRIVED  = "arrived"


class GuidanceStatus(Enum):
    IDLE     = "idle"
    TRACKING = "tracking"
    ARRIVED  = "arrived"


class GuidanceEventType(Enum):
    ARRIVED      = "arrived"
    REARMED      = "rearmed"
    ANNOUNCEMENT = "announcement"
    HAPTIC_PULSE = "haptic_pulse"
    STOPPED      = "stopped"


# ---------------------------------------------------------------------------
# Derived navigation state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TurnInstruction:
    direction: TurnDirection
    angle_degrees: float                   # [0, 180]


@dataclass(frozen=True)
class NavigationState:
    """Snapshot recomputed on every position/heading update."""
    distance_meters: float
    bearing_degrees: float
    relative_bearing_degrees: float
    direction: Direction
    turn_instruction: TurnInstruction
    floor_difference: int
    floor_direction: FloorDirection
    accuracy_tier: AccuracyTier
    has_arrived: bool
    instructions: Tuple[str, ...]
    heading_degrees: float = 0.0
    heading_known: bool = False
    elevation_meters: float = 0.0
    arrival_threshold_meters: float = 3.0

    def to_dict(self) -> dict:
        return {
            "distance_meters": round(self.distance_meters, 2),
            "bearing_degrees": round(self.bearing_degrees, 1),
            "relative_bearing_degrees": round(self.relative_bearing_degrees, 1),
            "direction": self.direction.value,
            "turn": {
                "direction": self.turn_instruction.direction.value,
                "angle_degrees": round(self.turn_instruction.angle_degrees, 1),
            },
            "floor_difference": self.floor_difference,
            "floor_direction": self.floor_direction.value,
            "accuracy_tier": self.accuracy_tier.value,
            "has_arrived": self.has_arrived,
            "instructions": list(self.instructions),
        }


@dataclass
class GuidanceEvent:
    type: GuidanceEventType
    message: Optional[str] = None
    haptic: Optional[HapticFeedback] = None


@dataclass
class GuidanceResult:
    """Returned by GuidanceEngine for every processed update."""
    status: GuidanceStatus
    state: Optional[NavigationState]
    events: List[GuidanceEvent] = field(default_factory=list)
    announcement: Optional[str] = None

    @property
    def arrived_now(self) -> bool:
        return any(e.type == GuidanceEventType.ARRIVED for e in self.events)
