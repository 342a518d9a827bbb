# guidance_engine.py
# State machine that turns per-update NavigationStates into guidance decisions.
# Call start() once, then update_position()/update_heading() on every sensor update.

import logging
import math
import time
from typing import Callable, Optional

from carfinder.guidance.ar_guidance import haptic_pattern, haptic_pulse_interval, pattern_feedback
from carfinder.guidance.collaborators import HapticOutput, VoiceOutput
from carfinder.guidance.errors import HapticUnavailableError, SpeechUnavailableError
from carfinder.guidance.geo_utils import normalize_angle, validate_coordinate
from carfinder.guidance.models import (
    GeoPoint,
    GuidanceEvent,
    GuidanceEventType,
    GuidanceResult,
    GuidanceStatus,
    HapticFeedback,
    NavigationState,
    NavigationTarget,
    SpeechPriority,
)
from carfinder.guidance.nav_config import GuidanceConfig
from carfinder.guidance.state_calculator import calculate_navigation_state

logger = logging.getLogger(__name__)


class GuidanceEngine:
    """
    Stateful guidance policy for a single navigation session.

    States: IDLE -> TRACKING -> ARRIVED -> (reset_arrival) -> TRACKING.

    Not safe for concurrent mutation; feed it from one serialized stream
    of updates (GuidanceNavigator does this with a lock).

    Usage:
        engine = GuidanceEngine(config, voice=tts, haptics=haptics)
        engine.start(target)

        # Inside the sensor loop:
        result = engine.update_position(fix)
    """

    def __init__(
        self,
        config: Optional[GuidanceConfig] = None,
        voice: Optional[VoiceOutput] = None,
        haptics: Optional[HapticOutput] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or GuidanceConfig()
        self._voice = voice
        self._haptics = haptics
        self._clock = clock

        self._status = GuidanceStatus.IDLE
        self._target: Optional[NavigationTarget] = None
        self._state: Optional[NavigationState] = None
        self._position: Optional[GeoPoint] = None
        self._heading: Optional[float] = None
        self._has_arrived = False

        self._last_fix_ts: Optional[float] = None
        self._last_heading_ts: Optional[float] = None
        self._clear_timers()

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    def start(self, target: NavigationTarget) -> None:
        """Begin (or restart) a session towards `target`."""
        validate_coordinate(target.latitude, target.longitude)
        if self._status != GuidanceStatus.IDLE:
            logger.info("Replacing active target; starting a new session.")

        self._target = target
        self._state = None
        self._position = None
        self._heading = None
        self._has_arrived = False
        self._last_fix_ts = None
        self._last_heading_ts = None
        self._clear_timers()
        self._status = GuidanceStatus.TRACKING
        logger.info(f"Guidance started towards {target.name} at ({target.latitude}, {target.longitude}).")

    def stop(self) -> None:
        """End the session. Idempotent; a no-op when already idle."""
        if self._status == GuidanceStatus.IDLE:
            return
        self._status = GuidanceStatus.IDLE
        self._clear_timers()
        self._cancel_speech()
        logger.info("Guidance stopped.")

    def reset_arrival(self) -> None:
        """Re-arm the one-time arrival event without ending the session."""
        self._has_arrived = False
        if self._status == GuidanceStatus.ARRIVED:
            self._status = GuidanceStatus.TRACKING
            logger.info("Arrival reset; tracking resumed.")

    def set_voice_enabled(self, enabled: bool) -> None:
        self.config.voice_enabled = enabled
        if enabled:
            self._speak("Voice guidance enabled", SpeechPriority.HIGH)
        else:
            self._cancel_speech()
        self._pulse(HapticFeedback.LIGHT)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def status(self) -> GuidanceStatus:
        return self._status

    @property
    def is_tracking(self) -> bool:
        return self._status != GuidanceStatus.IDLE

    @property
    def has_arrived(self) -> bool:
        return self._has_arrived

    @property
    def target(self) -> Optional[NavigationTarget]:
        return self._target

    @property
    def state(self) -> Optional[NavigationState]:
        """Latest state; stays available (possibly stale) when updates stop."""
        return self._state

    # ------------------------------------------------------------------
    # Sensor updates
    # ------------------------------------------------------------------

    def update_position(self, position: GeoPoint) -> Optional[GuidanceResult]:
        """
        Fold a new position fix into the session.

        Returns:
            GuidanceResult, or None when idle or the fix is older than one
            already applied.

        Raises:
            InvalidCoordinateError: the fix itself is invalid.
        """
        if self._status == GuidanceStatus.IDLE:
            return None
        if _is_stale(position.timestamp, self._last_fix_ts):
            logger.debug(f"Dropping stale fix (ts={position.timestamp} <= {self._last_fix_ts}).")
            return None
        validate_coordinate(position.latitude, position.longitude)

        if position.timestamp is not None:
            self._last_fix_ts = position.timestamp
        self._position = position
        return self._evaluate()

    def is_stale_heading(self, timestamp: Optional[float]) -> bool:
        """True when a heading stamped `timestamp` would be dropped as out of order."""
        return _is_stale(timestamp, self._last_heading_ts)

    def update_heading(self, heading_deg: float, timestamp: Optional[float] = None) -> Optional[GuidanceResult]:
        """Fold a compass heading into the session; recomputes if a fix is known."""
        if self._status == GuidanceStatus.IDLE:
            return None
        if not math.isfinite(heading_deg):
            raise ValueError(f"heading must be finite, got {heading_deg}")
        if _is_stale(timestamp, self._last_heading_ts):
            logger.debug(f"Dropping stale heading (ts={timestamp} <= {self._last_heading_ts}).")
            return None

        if timestamp is not None:
            self._last_heading_ts = timestamp
        self._heading = normalize_angle(heading_deg)
        if self._position is None:
            return None
        return self._evaluate()

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    def _evaluate(self) -> GuidanceResult:
        now = self._clock()
        state = calculate_navigation_state(
            self._position,
            self._target,
            heading=self._heading,
            arrival_threshold_m=self.config.arrival_threshold_m,
            use_imperial=self.config.use_imperial,
        )
        self._state = state
        result = GuidanceResult(status=self._status, state=state)

        if state.has_arrived and not self._has_arrived:
            self._on_arrival(state, now, result)
        elif not state.has_arrived and self._has_arrived and self.config.rearm_on_exit:
            self._has_arrived = False
            self._status = GuidanceStatus.TRACKING
            result.events.append(GuidanceEvent(GuidanceEventType.REARMED))
            logger.info(f"Left arrival zone ({state.distance_meters:.1f} m); arrival re-armed.")

        if self._status == GuidanceStatus.TRACKING:
            self._maybe_announce(state, now, result)
            self._maybe_pulse(state, now, result)

        result.status = self._status
        return result

    def _on_arrival(self, state: NavigationState, now: float, result: GuidanceResult) -> None:
        self._has_arrived = True
        self._status = GuidanceStatus.ARRIVED
        message = state.instructions[-1]
        logger.info(f"Arrived ({state.distance_meters:.1f} m from {self._target.name}).")

        self._pulse(HapticFeedback.SUCCESS)
        result.events.append(GuidanceEvent(GuidanceEventType.ARRIVED, message, HapticFeedback.SUCCESS))

        if self.config.voice_enabled and self._speak(message, SpeechPriority.URGENT):
            result.announcement = message
        self._last_announcement_time = now
        self._last_announced_distance = state.distance_meters

    def _should_announce(self, distance_m: float, now: float) -> bool:
        if not self.config.voice_enabled or self._voice is None:
            return False
        if self._last_announcement_time is None:
            return True
        if now - self._last_announcement_time < self.config.announcement_interval_s:
            return False
        return abs(distance_m - self._last_announced_distance) >= self.config.announcement_min_delta_m

    def _maybe_announce(self, state: NavigationState, now: float, result: GuidanceResult) -> None:
        if not self._should_announce(state.distance_meters, now):
            logger.debug("Announcement suppressed by debounce.")
            return
        message = ". ".join(state.instructions)
        self._last_announcement_time = now
        self._last_announced_distance = state.distance_meters
        if self._speak(message):
            result.announcement = message
            result.events.append(GuidanceEvent(GuidanceEventType.ANNOUNCEMENT, message))

    def _maybe_pulse(self, state: NavigationState, now: float, result: GuidanceResult) -> None:
        if not (self.config.haptic_guidance and self.config.haptics_enabled) or self._haptics is None:
            return
        interval = haptic_pulse_interval(state.distance_meters)
        if self._last_pulse_time is not None and now - self._last_pulse_time < interval:
            return
        self._last_pulse_time = now
        pattern = haptic_pattern(state)
        feedback = pattern_feedback(pattern)
        for token in feedback:
            self._pulse(token)
        result.events.append(GuidanceEvent(GuidanceEventType.HAPTIC_PULSE, pattern.value, feedback[0]))

    # ------------------------------------------------------------------
    # Output channels (fire-and-forget)
    # ------------------------------------------------------------------

    def _speak(self, text: str, priority: SpeechPriority = SpeechPriority.NORMAL) -> bool:
        if self._voice is None:
            return False
        try:
            self._voice.speak(text, priority)
            return True
        except SpeechUnavailableError as e:
            logger.warning(f"Voice output unavailable: {e}")
            return False

    def _cancel_speech(self) -> None:
        if self._voice is None:
            return
        try:
            self._voice.stop()
        except SpeechUnavailableError as e:
            logger.warning(f"Could not stop speech: {e}")

    def _pulse(self, feedback: HapticFeedback) -> None:
        if self._haptics is None or not self.config.haptics_enabled:
            return
        try:
            self._haptics.trigger(feedback)
        except HapticUnavailableError as e:
            logger.warning(f"Haptic output unavailable: {e}")

    def _clear_timers(self) -> None:
        self._last_announcement_time: Optional[float] = None
        self._last_announced_distance: Optional[float] = None
        self._last_pulse_time: Optional[float] = None


def _is_stale(timestamp: Optional[float], last: Optional[float]) -> bool:
    return timestamp is not None and last is not None and timestamp <= last
