# main.py
# Entry point: simulates a walk back to a parked car through the full guidance pipeline.
# In production, replace the replay sources with the device's GPS and compass.

import argparse
import logging
import time
from typing import Dict, List, Optional, Tuple, Union

from carfinder.guidance.ar_guidance import arrow_rotation
from carfinder.guidance.geo_utils import format_distance
from carfinder.guidance.models import (
    GeoPoint,
    GuidanceEventType,
    GuidanceResult,
    HapticFeedback,
    NavigationTarget,
    SpeechPriority,
)
from carfinder.guidance.nav_config import GuidanceConfig
from carfinder.guidance.nav_logger import NavLogger
from carfinder.guidance.navigator import GuidanceNavigator

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Replay sources standing in for the device sensors
# ------------------------------------------------------------------

class ReplayLocationSource:
    """Forwards fixes pushed by the simulation loop."""

    def __init__(self) -> None:
        self._on_fix = None

    def start(self, on_fix, on_error, min_interval_s: float, min_distance_m: float) -> None:
        self._on_fix = on_fix

    def stop(self) -> None:
        self._on_fix = None

    def push(self, fix: Union[GeoPoint, List[GeoPoint]]) -> None:
        if self._on_fix is not None:
            self._on_fix(fix)


class ReplayHeadingSource:
    def __init__(self) -> None:
        self._on_heading = None

    def start(self, on_heading, interval_s: float) -> None:
        self._on_heading = on_heading

    def stop(self) -> None:
        self._on_heading = None

    def push(self, heading_deg: float, timestamp: float) -> None:
        if self._on_heading is not None:
            self._on_heading(heading_deg, timestamp)


class LoggingHaptics:
    def trigger(self, feedback: HapticFeedback) -> None:
        logger.info(f"[haptic] {feedback.value}")


class PrintVoice:
    def speak(self, text: str, priority: SpeechPriority = SpeechPriority.NORMAL) -> None:
        print(f"[TTS:{priority.name.lower()}] {text}")

    def stop(self) -> None:
        pass


# ------------------------------------------------------------------
# Simulation data (garage exit to parked car on level B2)
# ------------------------------------------------------------------

CAR = NavigationTarget(latitude=37.77490, longitude=-122.41940, floor="B2", name="car")

# (lat, lon, heading, accuracy, floor)
WALK: List[Tuple[float, float, Optional[float], float, str]] = [
    (37.77560, -122.41860, 220.0, 25.0, "G"),
    (37.77545, -122.41880, 215.0, 18.0, "G"),
    (37.77530, -122.41895, 225.0, 12.0, "B1"),
    (37.77515, -122.41910, 230.0, 8.0,  "B2"),
    (37.77502, -122.41925, 228.0, 6.0,  "B2"),
    (37.77494, -122.41935, 225.0, 5.0,  "B2"),
    (37.77491, -122.41939, 225.0, 4.0,  "B2"),
]


# Wi-Fi estimates near the garage entrance where GPS is weak: step -> (lat, lon, accuracy)
WIFI: Dict[int, Tuple[float, float, float]] = {
    0: (37.77555, -122.41866, 10.0),
    1: (37.77541, -122.41884, 9.0),
}


def build_fixes() -> List[GeoPoint]:
    return [
        GeoPoint(latitude=lat, longitude=lon, heading=heading, accuracy=acc, floor=floor, timestamp=float(i))
        for i, (lat, lon, heading, acc, floor) in enumerate(WALK)
    ]


def with_wifi(step: int, fix: GeoPoint) -> Union[GeoPoint, List[GeoPoint]]:
    """GPS fix plus the Wi-Fi estimate for the same moment, when there is one."""
    if step not in WIFI:
        return fix
    lat, lon, acc = WIFI[step]
    wifi = GeoPoint(latitude=lat, longitude=lon, accuracy=acc, floor=fix.floor, timestamp=fix.timestamp)
    return [fix, wifi]


def print_result(result: GuidanceResult) -> None:
    state = result.state
    if state is None:
        print(f"  [{result.status.name}] no position yet")
        return
    yaw, pitch, _ = arrow_rotation(state)
    print(
        f"  [{result.status.name}] {format_distance(state.distance_meters)} "
        f"{state.direction.value} (arrow yaw {yaw:.0f}°, pitch {pitch:.0f}°, {state.accuracy_tier.value})"
    )
    for event in result.events:
        if event.type == GuidanceEventType.ARRIVED:
            print("  ✓  Arrived at the car.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay a walk back to a parked car.")
    parser.add_argument("--compass", action="store_true", help="use compass-screen thresholds (20 ft)")
    parser.add_argument("--speak", action="store_true", help="speak through pyttsx3 instead of printing")
    parser.add_argument("--log-dir", default="logs")
    parser.add_argument("--delay", type=float, default=0.05, help="seconds between replayed fixes")
    args = parser.parse_args()

    # ------------------------------------------------------------------
    # Logging setup, configured once here; all modules inherit
    # ------------------------------------------------------------------
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    # ------------------------------------------------------------------
    # Config: thresholds and paths are set here, not inside the modules
    # ------------------------------------------------------------------
    factory = GuidanceConfig.for_compass if args.compass else GuidanceConfig.for_ar
    config = factory(
        announcement_interval_s=0.0,
        haptic_guidance=True,
        heading_smoothing_window=3,
        log_dir=args.log_dir,
    )

    if args.speak:
        from carfinder.speech.tts import PyttsxVoiceOutput
        voice = PyttsxVoiceOutput()
    else:
        voice = PrintVoice()

    gps = ReplayLocationSource()
    compass = ReplayHeadingSource()
    nav = GuidanceNavigator(
        gps,
        heading_source=compass,
        voice=voice,
        haptics=LoggingHaptics(),
        config=config,
        nav_logger=NavLogger(config),
    )
    nav.subscribe(print_result)

    if not nav.start_navigation(CAR):
        print(f"[Main] Could not start navigation: {nav.last_error}")
        return

    print("\n--- GPS Loop Active ---")
    for step, fix in enumerate(build_fixes()):
        if not nav.is_navigating:
            break
        compass.push(fix.heading, fix.timestamp)
        gps.push(with_wifi(step, fix))
        time.sleep(args.delay)
    nav.stop_navigation()

    if args.speak:
        voice.wait_until_done()
        voice.close()

    print("\n--- Session complete ---")
    print(f"    Log files written to: {config.log_dir}/")


if __name__ == "__main__":
    main()
