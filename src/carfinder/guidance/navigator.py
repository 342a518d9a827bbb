# navigator.py
# Public entry point for the guidance system.
# Owns the sensor subscriptions and serializes them into the GuidanceEngine.

import logging
import threading
import time
from functools import partial
from typing import Callable, List, Optional, Sequence, Union

from carfinder.guidance.collaborators import HapticOutput, HeadingSource, LocationSource, VoiceOutput
from carfinder.guidance.errors import InvalidCoordinateError, LocationUnavailableError
from carfinder.guidance.geo_utils import validate_coordinate
from carfinder.guidance.guidance_engine import GuidanceEngine
from carfinder.guidance.heading_filter import HeadingSmoother, fuse_fixes
from carfinder.guidance.models import (
    GeoPoint,
    GuidanceEvent,
    GuidanceEventType,
    GuidanceResult,
    GuidanceStatus,
    NavigationState,
    NavigationTarget,
)
from carfinder.guidance.nav_config import GuidanceConfig
from carfinder.guidance.nav_logger import NavLogger

logger = logging.getLogger(__name__)

Listener = Callable[[GuidanceResult], None]


class GuidanceNavigator:
    """
    High-level guidance facade consumed by the presentation layer.

    Typical lifecycle:
        nav = GuidanceNavigator(gps, compass, voice=tts, haptics=taptic)
        nav.subscribe(render)
        nav.start_navigation(NavigationTarget(37.7750, -122.4194, floor="B2"))
        ...
        nav.stop_navigation()

    Location and heading callbacks may arrive on any thread; they are
    applied one at a time, in arrival order, under a single lock.

    Args:
        location_source: Delivers GeoPoint fixes.
        heading_source:  Optional compass; without it the fix's own heading is used.
        voice:           Optional speech channel.
        haptics:         Optional haptic channel.
        config:          Optional GuidanceConfig; defaults to GuidanceConfig().
        nav_logger:      Optional NavLogger for target persistence and session logs.
        clock:           Monotonic time source used for debouncing.
    """

    def __init__(
        self,
        location_source: LocationSource,
        heading_source: Optional[HeadingSource] = None,
        voice: Optional[VoiceOutput] = None,
        haptics: Optional[HapticOutput] = None,
        config: Optional[GuidanceConfig] = None,
        nav_logger: Optional[NavLogger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or GuidanceConfig()
        self._location = location_source
        self._heading_source = heading_source
        self._nav_logger = nav_logger

        self._engine = GuidanceEngine(self.config, voice=voice, haptics=haptics, clock=clock)
        self._smoother: Optional[HeadingSmoother] = None
        if self.config.heading_smoothing_window > 1:
            self._smoother = HeadingSmoother(self.config.heading_smoothing_window)

        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._session_id = 0
        self._location_running = False
        self._heading_running = False
        self._last_position: Optional[GeoPoint] = None
        self._last_error: Optional[Exception] = None

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def start_navigation(self, target: NavigationTarget) -> bool:
        """
        Subscribe to the sensors and begin guidance towards `target`.

        An active session is replaced. On failure the navigator is left idle
        and the cause is available as `last_error`.

        Returns:
            True when guidance is tracking, False otherwise.
        """
        with self._lock:
            if self.is_navigating or self._location_running:
                self._end_session("Replacing active session.")
            self._last_error = None

            try:
                validate_coordinate(target.latitude, target.longitude)
            except InvalidCoordinateError as e:
                logger.warning(f"Refusing to navigate to invalid target: {e}")
                self._last_error = e
                return False

            self._session_id += 1
            session = self._session_id
            try:
                self._location.start(
                    on_fix=partial(self._on_fix, session),
                    on_error=partial(self._on_location_error, session),
                    min_interval_s=self.config.location_interval_s,
                    min_distance_m=self.config.location_min_distance_m,
                )
            except LocationUnavailableError as e:
                logger.error(f"Location unavailable, navigation not started: {e}")
                self._last_error = e
                self._session_id += 1
                return False
            self._location_running = True

            if self._heading_source is not None:
                try:
                    self._heading_source.start(partial(self._on_heading, session), self.config.heading_interval_s)
                    self._heading_running = True
                except LocationUnavailableError as e:
                    logger.warning(f"Compass unavailable, continuing without heading: {e}")

            if self._smoother is not None:
                self._smoother.reset()
            self._last_position = None
            self._engine.start(target)

            if self._nav_logger is not None:
                self._nav_logger.save_target(target)
            return True

    def stop_navigation(self) -> None:
        """Stop guidance and release the sensors. Idempotent."""
        with self._lock:
            if not self.is_navigating and not self._location_running:
                return
            self._end_session("Navigation stopped.")
            self._publish(GuidanceResult(
                status=GuidanceStatus.IDLE,
                state=self._engine.state,
                events=[GuidanceEvent(GuidanceEventType.STOPPED)],
            ))

    def reset_arrival(self) -> None:
        with self._lock:
            self._engine.reset_arrival()

    def set_voice_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._engine.set_voice_enabled(enabled)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for every GuidanceResult; returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Sensor callbacks
    # ------------------------------------------------------------------

    def _on_fix(self, session: int, fix: Union[GeoPoint, Sequence[GeoPoint]]) -> None:
        with self._lock:
            if session != self._session_id:
                return
            if not isinstance(fix, GeoPoint):
                # Simultaneous fixes from several providers (GPS, Wi-Fi, cell)
                try:
                    fix = fuse_fixes(fix)
                except ValueError as e:
                    logger.warning(f"Ignoring unusable fix batch: {e}")
                    return
            try:
                result = self._engine.update_position(fix)
            except InvalidCoordinateError as e:
                logger.warning(f"Ignoring invalid fix from location source: {e}")
                return
            if result is not None:
                self._last_position = fix
                self._handle(result)

    def _on_heading(self, session: int, heading_deg: float, timestamp: Optional[float] = None) -> None:
        with self._lock:
            if session != self._session_id:
                return
            if self._engine.is_stale_heading(timestamp):
                logger.debug(f"Dropping stale heading before smoothing (ts={timestamp}).")
                return
            if self._smoother is not None:
                heading_deg = self._smoother.add(heading_deg)
            result = self._engine.update_heading(heading_deg, timestamp)
            if result is not None:
                self._handle(result)

    def _on_location_error(self, session: int, error: Exception) -> None:
        with self._lock:
            if session != self._session_id:
                return
            logger.error(f"Location source failed, ending session: {error}")
            self._last_error = error
            self.stop_navigation()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _handle(self, result: GuidanceResult) -> None:
        if self._nav_logger is not None:
            self._nav_logger.log_event(result, self._last_position)
        self._publish(result)
        if result.arrived_now and self.config.stop_on_arrival:
            self.stop_navigation()

    def _publish(self, result: GuidanceResult) -> None:
        for listener in list(self._listeners):
            listener(result)

    def _end_session(self, reason: str) -> None:
        # Late callbacks from the old subscriptions are ignored from here on.
        self._session_id += 1
        if self._heading_running:
            self._heading_source.stop()
            self._heading_running = False
        if self._location_running:
            self._location.stop()
            self._location_running = False
        self._engine.stop()
        logger.info(reason)

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> Optional[NavigationState]:
        return self._engine.state

    @property
    def status(self) -> GuidanceStatus:
        return self._engine.status

    @property
    def has_arrived(self) -> bool:
        return self._engine.has_arrived

    @property
    def is_navigating(self) -> bool:
        return self._engine.is_tracking

    @property
    def target(self) -> Optional[NavigationTarget]:
        return self._engine.target

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error
