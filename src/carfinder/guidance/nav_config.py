# nav_config.py
# All tuneable constants in one place.
# Pass a GuidanceConfig instance to every module that needs settings.

import os
from dataclasses import asdict, dataclass, fields


# ---------------------------------------------------------------------------
# Arrival thresholds
# ---------------------------------------------------------------------------

# AR / contextual guidance and the compass screen use different thresholds.
ARRIVAL_THRESHOLD_AR_M: float = 3.0
ARRIVAL_THRESHOLD_COMPASS_M: float = 6.096      # 20 ft

# ---------------------------------------------------------------------------
# Announcement debounce
# ---------------------------------------------------------------------------

ANNOUNCEMENT_INTERVAL_S: float = 10.0
ANNOUNCEMENT_MIN_DELTA_M: float = 5.0

# ---------------------------------------------------------------------------
# Accuracy tiers (horizontal accuracy in metres)
# ---------------------------------------------------------------------------

ACCURACY_HIGH_M: float = 10.0
ACCURACY_MEDIUM_M: float = 30.0

# ---------------------------------------------------------------------------
# Direction bands (inclusive upper bounds of |relative bearing|)
# ---------------------------------------------------------------------------

STRAIGHT_BAND_DEG: float = 10.0
SLIGHT_BAND_DEG: float = 30.0
SIDE_BAND_DEG: float = 60.0
SHARP_BAND_DEG: float = 120.0
BEHIND_SIDE_BAND_DEG: float = 150.0
TURN_AROUND_DEG: float = 170.0

# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------

METERS_PER_FLOOR: float = 3.0
WALKING_SPEED_KMH: float = 5.0
DRIVING_SPEED_KMH: float = 50.0


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class GuidanceConfig:
    # Arrival policy
    arrival_threshold_m: float = ARRIVAL_THRESHOLD_AR_M
    rearm_on_exit: bool = False            # leaving the zone re-arms arrival
    stop_on_arrival: bool = False          # end the session after arriving

    # Voice
    voice_enabled: bool = True
    announcement_interval_s: float = ANNOUNCEMENT_INTERVAL_S
    announcement_min_delta_m: float = ANNOUNCEMENT_MIN_DELTA_M
    use_imperial: bool = False

    # Haptics
    haptics_enabled: bool = True
    haptic_guidance: bool = False          # directional pulses while walking

    # Sensors
    location_interval_s: float = 1.0
    location_min_distance_m: float = 1.0
    heading_interval_s: float = 0.1
    heading_smoothing_window: int = 1      # 1 = no smoothing

    # Logging
    log_dir: str = "."
    target_filename: str = "saved_target.json"
    session_filename: str = "guidance_session.jsonl"

    @classmethod
    def for_ar(cls, **overrides) -> "GuidanceConfig":
        """Settings used by the AR / contextual guidance view."""
        return cls(arrival_threshold_m=ARRIVAL_THRESHOLD_AR_M, **overrides)

    @classmethod
    def for_compass(cls, **overrides) -> "GuidanceConfig":
        """Settings used by the compass guidance screen."""
        overrides.setdefault("rearm_on_exit", True)
        return cls(arrival_threshold_m=ARRIVAL_THRESHOLD_COMPASS_M, **overrides)

    @property
    def target_filepath(self) -> str:
        return os.path.join(self.log_dir, self.target_filename)

    @property
    def session_filepath(self) -> str:
        return os.path.join(self.log_dir, self.session_filename)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "GuidanceConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})
