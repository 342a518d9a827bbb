# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects; depends only on models, config constants and errors.

import math
from enum import Enum
from typing import Optional

from carfinder.guidance.errors import InvalidCoordinateError, UndefinedBearingError
from carfinder.guidance.models import GeoPoint
from carfinder.guidance.nav_config import DRIVING_SPEED_KMH, WALKING_SPEED_KMH


EARTH_RADIUS_M = 6_371_000.0

METERS_PER_KILOMETER = 1000.0
METERS_PER_MILE = 1609.344
METERS_PER_NAUTICAL_MILE = 1852.0
METERS_PER_FOOT = 0.3048

COMPASS_POINTS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_coordinate(lat: float, lon: float) -> None:
    """
    Reject coordinates that would make the spherical formulas meaningless.

    Raises:
        InvalidCoordinateError: lat/lon is NaN, infinite or out of range.
    """
    try:
        lat_f, lon_f = float(lat), float(lon)
    except (TypeError, ValueError) as e:
        raise InvalidCoordinateError(f"Non-numeric coordinate ({lat!r}, {lon!r})") from e
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        raise InvalidCoordinateError(f"Non-finite coordinate ({lat}, {lon})")
    if not -90.0 <= lat_f <= 90.0:
        raise InvalidCoordinateError(f"Latitude {lat} outside [-90, 90]")
    if not -180.0 <= lon_f <= 180.0:
        raise InvalidCoordinateError(f"Longitude {lon} outside [-180, 180]")


def _require_finite(value: float, name: str) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value}")
    return value


# ---------------------------------------------------------------------------
# Distance
# ---------------------------------------------------------------------------

def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.

    Raises:
        InvalidCoordinateError: either point is invalid.
    """
    validate_coordinate(lat1, lon1)
    validate_coordinate(lat2, lon2)
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    # Clamp guards against a drifting a hair above 1.0 for antipodal points.
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance(a, b) -> float:
    """Haversine distance in metres between two points (anything with latitude/longitude)."""
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def is_within_radius(center, point, radius_m: float) -> bool:
    return distance(center, point) <= radius_m


# ---------------------------------------------------------------------------
# Bearings
# ---------------------------------------------------------------------------

def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Forward azimuth (bearing) from point 1 to point 2 in degrees [0, 360).

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Bearing in degrees.

    Raises:
        InvalidCoordinateError: either point is invalid.
        UndefinedBearingError: both points share the same lat/lon.
    """
    validate_coordinate(lat1, lon1)
    validate_coordinate(lat2, lon2)
    if lat1 == lat2 and lon1 == lon2:
        raise UndefinedBearingError(f"Bearing undefined between identical points ({lat1}, {lon1})")
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return normalize_angle(math.degrees(math.atan2(y, x)))


def bearing(a, b) -> float:
    """Initial bearing from a to b in degrees [0, 360)."""
    return calculate_bearing(a.latitude, a.longitude, b.latitude, b.longitude)


def final_bearing(a, b) -> float:
    """Bearing on arrival at b when following the great circle from a."""
    return normalize_angle(bearing(b, a) + 180.0)


def normalize_angle(angle: float) -> float:
    """Wrap any angle into [0, 360)."""
    normalized = _require_finite(angle, "angle") % 360.0
    # -1e-17 % 360 rounds to 360.0
    return 0.0 if normalized >= 360.0 else normalized


def relative_bearing(heading: float, target_bearing: float) -> float:
    """
    Signed angle from the current heading to the target bearing.

    0 means dead ahead, positive to the right, negative to the left.
    An exact half-turn is reported as +180, so the result lies in (-180, 180].
    """
    diff = normalize_angle(_require_finite(target_bearing, "target_bearing")
                           - _require_finite(heading, "heading"))
    if diff > 180.0:
        diff -= 360.0
    return diff


def compass_direction(bearing_deg: float) -> str:
    """16-point compass rose label for a bearing ("N", "NNE", ...)."""
    index = int(round(normalize_angle(bearing_deg) / 22.5)) % 16
    return COMPASS_POINTS[index]


def midpoint(a, b) -> GeoPoint:
    """Spherical midpoint along the great circle between a and b."""
    validate_coordinate(a.latitude, a.longitude)
    validate_coordinate(b.latitude, b.longitude)
    rlat1, rlat2 = math.radians(a.latitude), math.radians(b.latitude)
    rlon1 = math.radians(a.longitude)
    d_lon = math.radians(b.longitude - a.longitude)

    bx = math.cos(rlat2) * math.cos(d_lon)
    by = math.cos(rlat2) * math.sin(d_lon)
    rlat3 = math.atan2(
        math.sin(rlat1) + math.sin(rlat2),
        math.sqrt((math.cos(rlat1) + bx) ** 2 + by ** 2),
    )
    rlon3 = rlon1 + math.atan2(by, math.cos(rlat1) + bx)
    lon3 = (math.degrees(rlon3) + 540.0) % 360.0 - 180.0
    return GeoPoint(latitude=math.degrees(rlat3), longitude=lon3)


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

class DistanceUnit(Enum):
    METERS         = "meters"
    KILOMETERS     = "kilometers"
    FEET           = "feet"
    MILES          = "miles"
    NAUTICAL_MILES = "nautical_miles"


_METERS_PER_UNIT = {
    DistanceUnit.METERS: 1.0,
    DistanceUnit.KILOMETERS: METERS_PER_KILOMETER,
    DistanceUnit.FEET: METERS_PER_FOOT,
    DistanceUnit.MILES: METERS_PER_MILE,
    DistanceUnit.NAUTICAL_MILES: METERS_PER_NAUTICAL_MILE,
}


def convert_distance(value: float, from_unit: DistanceUnit, to_unit: DistanceUnit) -> float:
    """Linear conversion between distance units, going through metres."""
    if from_unit == to_unit:
        return value
    return value * _METERS_PER_UNIT[from_unit] / _METERS_PER_UNIT[to_unit]


def _require_distance(meters: float) -> float:
    meters = _require_finite(meters, "distance")
    if meters < 0:
        raise ValueError(f"distance must be >= 0, got {meters}")
    return meters


def format_distance(meters: float, use_imperial: bool = False, precision: Optional[int] = None) -> str:
    """
    Display string for a distance.

    Below 1000 of the small unit (m or ft) the small unit is used with 0
    decimals; otherwise the large unit (km or mi) with 2 decimals.
    `precision` overrides both defaults.

    Examples:
        format_distance(850)  -> "850 m"
        format_distance(1850) -> "1.85 km"
    """
    meters = _require_distance(meters)
    small_p = 0 if precision is None else precision
    large_p = 2 if precision is None else precision
    # The unit switch compares the printed (rounded) value
    if use_imperial:
        feet = convert_distance(meters, DistanceUnit.METERS, DistanceUnit.FEET)
        if round(feet, small_p) < 1000:
            return f"{feet:.{small_p}f} ft"
        miles = convert_distance(meters, DistanceUnit.METERS, DistanceUnit.MILES)
        return f"{miles:.{large_p}f} mi"

    if round(meters, small_p) < 1000:
        return f"{meters:.{small_p}f} m"
    return f"{meters / METERS_PER_KILOMETER:.{large_p}f} km"


def spoken_distance(meters: float, use_imperial: bool = False) -> str:
    """Distance phrased for speech: "42 meters", "1 foot", "1.2 miles"."""
    meters = _require_distance(meters)
    if use_imperial:
        feet = convert_distance(meters, DistanceUnit.METERS, DistanceUnit.FEET)
        if round(feet) < 1000:
            n = int(round(feet))
            return f"{n} foot" if n == 1 else f"{n} feet"
        miles = convert_distance(meters, DistanceUnit.METERS, DistanceUnit.MILES)
        return f"{miles:.1f} miles"

    if round(meters) < 1000:
        n = int(round(meters))
        return f"{n} meter" if n == 1 else f"{n} meters"
    return f"{meters / METERS_PER_KILOMETER:.1f} kilometers"


def distance_description(meters: float) -> str:
    """Coarse human description of how far away something is."""
    meters = _require_distance(meters)
    if meters < 5:
        return "You have arrived"
    if meters < 20:
        return "Very close"
    if meters < 50:
        return "Nearby"
    if meters < 200:
        return "A short walk away"
    if meters < 1000:
        return "Within walking distance"
    if meters < 5000:
        return "A few minutes away"
    if meters < 10000:
        return "Several minutes away"
    return f"About {round(meters / METERS_PER_KILOMETER)} km away"


# ---------------------------------------------------------------------------
# Travel time
# ---------------------------------------------------------------------------

def estimate_walking_time(meters: float, speed_kmh: float = WALKING_SPEED_KMH) -> int:
    """Whole minutes (rounded up) to walk the distance."""
    meters = _require_distance(meters)
    return math.ceil(meters / METERS_PER_KILOMETER * 60 / speed_kmh)


def estimate_driving_time(meters: float, speed_kmh: float = DRIVING_SPEED_KMH) -> int:
    meters = _require_distance(meters)
    return math.ceil(meters / METERS_PER_KILOMETER * 60 / speed_kmh)


def format_duration(minutes: int) -> str:
    if minutes < 1:
        return "Less than a minute"
    if minutes == 1:
        return "1 minute"
    if minutes < 60:
        return f"{minutes} minutes"
    hours, rest = divmod(minutes, 60)
    hour_text = "1 hour" if hours == 1 else f"{hours} hours"
    if rest == 0:
        return hour_text
    minute_text = "1 minute" if rest == 1 else f"{rest} minutes"
    return f"{hour_text} {minute_text}"
