"""Tests for the GuidanceNavigator session lifecycle."""

from __future__ import annotations

import json
import threading

import pytest

from carfinder.guidance.errors import LocationUnavailableError
from carfinder.guidance.models import (
    AccuracyTier,
    Direction,
    GuidanceEventType,
    GuidanceStatus,
    NavigationTarget,
)
from carfinder.guidance.nav_config import GuidanceConfig
from carfinder.guidance.nav_logger import NavLogger
from carfinder.guidance.navigator import GuidanceNavigator


class FakeLocationSource:
    def __init__(self, deny: bool = False) -> None:
        self.deny = deny
        self.start_calls = 0
        self.stop_calls = 0
        self.on_fix = None
        self.on_error = None
        self.min_interval_s = None

    def start(self, on_fix, on_error, min_interval_s, min_distance_m) -> None:
        self.start_calls += 1
        if self.deny:
            raise LocationUnavailableError("permission denied")
        self.on_fix = on_fix
        self.on_error = on_error
        self.min_interval_s = min_interval_s

    def stop(self) -> None:
        self.stop_calls += 1


class FakeHeadingSource:
    def __init__(self, unavailable: bool = False) -> None:
        self.unavailable = unavailable
        self.on_heading = None
        self.stop_calls = 0

    def start(self, on_heading, interval_s) -> None:
        if self.unavailable:
            raise LocationUnavailableError("no magnetometer")
        self.on_heading = on_heading

    def stop(self) -> None:
        self.stop_calls += 1


@pytest.fixture()
def gps() -> FakeLocationSource:
    return FakeLocationSource()


@pytest.fixture()
def compass() -> FakeHeadingSource:
    return FakeHeadingSource()


@pytest.fixture()
def received():
    return []


@pytest.fixture()
def nav(gps, compass, voice, haptics, clock, received) -> GuidanceNavigator:
    navigator = GuidanceNavigator(gps, compass, voice=voice, haptics=haptics, clock=clock)
    navigator.subscribe(received.append)
    return navigator


# ---------------------------------------------------------------------------
# Starting
# ---------------------------------------------------------------------------

def test_start_subscribes_and_tracks(nav, gps, target, fix_south_of, received) -> None:
    assert nav.start_navigation(target)
    assert nav.is_navigating
    assert nav.status == GuidanceStatus.TRACKING
    assert nav.target == target
    assert gps.min_interval_s == 1.0

    gps.on_fix(fix_south_of(40.0))
    assert len(received) == 1
    assert nav.state.distance_meters == pytest.approx(40.0, abs=0.01)


def test_permission_denied(voice, target) -> None:
    gps = FakeLocationSource(deny=True)
    nav = GuidanceNavigator(gps, voice=voice)

    assert nav.start_navigation(target) is False
    assert nav.is_navigating is False
    assert nav.status == GuidanceStatus.IDLE
    assert isinstance(nav.last_error, LocationUnavailableError)
    assert voice.spoken == []


def test_invalid_target_is_refused(nav, gps) -> None:
    assert nav.start_navigation(NavigationTarget(91.0, 0.0)) is False
    assert gps.start_calls == 0
    assert isinstance(nav.last_error, ValueError)


def test_missing_compass_falls_back_to_fix_heading(gps, target, fix_south_of) -> None:
    nav = GuidanceNavigator(gps, FakeHeadingSource(unavailable=True))

    assert nav.start_navigation(target)
    gps.on_fix(fix_south_of(40.0, heading=90.0))
    assert nav.state.direction == Direction.SHARPLY_LEFT


def test_restart_replaces_session(nav, gps, compass, target, fix_south_of) -> None:
    nav.start_navigation(target)
    old_on_fix = gps.on_fix

    hotel = NavigationTarget(target.latitude + 0.01, target.longitude, name="hotel")
    assert nav.start_navigation(hotel)
    assert gps.stop_calls == 1
    assert compass.stop_calls == 1
    assert nav.target == hotel

    old_on_fix(fix_south_of(1.0))
    assert nav.state is None


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------

def test_heading_callbacks_drive_direction(nav, gps, compass, target, fix_south_of) -> None:
    nav.start_navigation(target)
    gps.on_fix(fix_south_of(40.0, heading=None))
    assert nav.state.direction == Direction.STRAIGHT

    compass.on_heading(90.0, 1.0)
    assert nav.state.direction == Direction.SHARPLY_LEFT
    assert nav.state.heading_known


def test_heading_smoothing(gps, compass, target, fix_south_of) -> None:
    nav = GuidanceNavigator(gps, compass, config=GuidanceConfig(heading_smoothing_window=3))
    nav.start_navigation(target)
    gps.on_fix(fix_south_of(40.0))

    compass.on_heading(20.0, 1.0)
    compass.on_heading(40.0, 2.0)
    assert nav.state.heading_degrees == pytest.approx(30.0)


def test_stale_heading_never_reaches_the_smoother(gps, compass, target, fix_south_of) -> None:
    nav = GuidanceNavigator(gps, compass, config=GuidanceConfig(heading_smoothing_window=3))
    nav.start_navigation(target)
    gps.on_fix(fix_south_of(50.0, heading=None))

    compass.on_heading(0.0, 10.0)
    compass.on_heading(0.0, 11.0)
    compass.on_heading(90.0, 5.0)
    compass.on_heading(0.0, 12.0)

    assert nav.state.heading_degrees == pytest.approx(0.0, abs=1e-6)
    assert nav.state.relative_bearing_degrees == pytest.approx(0.0, abs=1e-6)
    assert nav.state.direction == Direction.STRAIGHT


def test_simultaneous_fixes_are_fused(nav, gps, target, fix_south_of, received) -> None:
    nav.start_navigation(target)
    gps.on_fix([
        fix_south_of(40.0, accuracy=5.0, timestamp=1.0),
        fix_south_of(44.0, accuracy=20.0, timestamp=1.0),
    ])

    assert len(received) == 1
    assert nav.state.distance_meters == pytest.approx(40.8, abs=0.01)
    assert nav.state.accuracy_tier == AccuracyTier.HIGH


def test_empty_fix_batch_is_dropped(nav, gps, target, received) -> None:
    nav.start_navigation(target)
    gps.on_fix([])

    assert received == []
    assert nav.is_navigating


def test_invalid_fix_is_dropped(nav, gps, target, fix_south_of, received) -> None:
    nav.start_navigation(target)
    gps.on_fix(fix_south_of(40.0))
    gps.on_fix(fix_south_of(1e9))

    assert len(received) == 1
    assert nav.is_navigating


def test_unsubscribe(nav, gps, target, fix_south_of, received) -> None:
    extra = []
    unsubscribe = nav.subscribe(extra.append)
    nav.start_navigation(target)

    gps.on_fix(fix_south_of(40.0, timestamp=1.0))
    unsubscribe()
    unsubscribe()
    gps.on_fix(fix_south_of(30.0, timestamp=2.0))

    assert len(extra) == 1
    assert len(received) == 2


def test_arrival_published_once(nav, gps, target, fix_south_of, received, clock) -> None:
    nav.start_navigation(target)
    for meters in (30.0, 2.0, 1.0, 0.5):
        clock.advance(1.0)
        gps.on_fix(fix_south_of(meters))

    arrivals = [r for r in received if r.arrived_now]
    assert len(arrivals) == 1
    assert nav.has_arrived
    assert nav.is_navigating

    nav.reset_arrival()
    assert nav.status == GuidanceStatus.TRACKING


def test_stop_on_arrival(gps, target, fix_south_of, received) -> None:
    nav = GuidanceNavigator(gps, config=GuidanceConfig(stop_on_arrival=True))
    nav.subscribe(received.append)
    nav.start_navigation(target)

    gps.on_fix(fix_south_of(1.0))
    assert nav.is_navigating is False
    assert gps.stop_calls == 1
    assert received[-1].events[0].type == GuidanceEventType.STOPPED


def test_voice_toggle(nav, voice, target) -> None:
    nav.start_navigation(target)
    nav.set_voice_enabled(True)
    assert voice.spoken == ["Voice guidance enabled"]


# ---------------------------------------------------------------------------
# Stopping
# ---------------------------------------------------------------------------

def test_stop_is_idempotent_and_ignores_late_callbacks(nav, gps, compass, target, fix_south_of, received) -> None:
    nav.start_navigation(target)
    gps.on_fix(fix_south_of(40.0, timestamp=1.0))
    last = nav.state

    nav.stop_navigation()
    nav.stop_navigation()

    assert gps.stop_calls == 1
    assert compass.stop_calls == 1
    assert nav.status == GuidanceStatus.IDLE
    assert nav.state is last
    stopped = [r for r in received if r.events and r.events[0].type == GuidanceEventType.STOPPED]
    assert len(stopped) == 1

    count = len(received)
    gps.on_fix(fix_south_of(10.0, timestamp=2.0))
    compass.on_heading(45.0, 3.0)
    assert len(received) == count
    assert nav.state is last


def test_location_failure_mid_session(nav, gps, target, fix_south_of, received) -> None:
    nav.start_navigation(target)
    gps.on_fix(fix_south_of(40.0))

    error = LocationUnavailableError("provider disabled")
    gps.on_error(error)

    assert nav.is_navigating is False
    assert nav.last_error is error
    assert received[-1].status == GuidanceStatus.IDLE
    assert received[-1].state is not None


# ---------------------------------------------------------------------------
# Persistence and threading
# ---------------------------------------------------------------------------

def test_session_is_persisted(tmp_path, gps, target, fix_south_of) -> None:
    config = GuidanceConfig(log_dir=str(tmp_path))
    nav = GuidanceNavigator(gps, config=config, nav_logger=NavLogger(config))

    nav.start_navigation(target)
    gps.on_fix(fix_south_of(40.0, timestamp=1.0))
    gps.on_fix(fix_south_of(2.0, timestamp=2.0))

    saved = json.loads((tmp_path / "saved_target.json").read_text(encoding="utf-8"))
    assert saved["target"]["latitude"] == target.latitude

    lines = (tmp_path / "guidance_session.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[1])["events"] == ["arrived"]


def test_concurrent_fixes_are_serialized(gps, target, fix_south_of, received) -> None:
    nav = GuidanceNavigator(gps)
    nav.subscribe(received.append)
    nav.start_navigation(target)

    def feed(offset: int) -> None:
        for i in range(50):
            gps.on_fix(fix_south_of(100.0 - i, timestamp=float(i * 4 + offset)))

    threads = [threading.Thread(target=feed, args=(k,)) for k in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert received
    assert all(r.state.distance_meters > 50.0 for r in received)
    assert len(received) <= 200
    assert nav.status == GuidanceStatus.TRACKING
