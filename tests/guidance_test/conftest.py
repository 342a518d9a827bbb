"""Shared fakes and fixtures for the guidance tests."""

from __future__ import annotations

import math
from typing import Callable, List, Optional

import pytest

from carfinder.guidance.errors import HapticUnavailableError, SpeechUnavailableError
from carfinder.guidance.models import GeoPoint, HapticFeedback, NavigationTarget, SpeechPriority

# Metres per degree of latitude on the 6,371 km sphere.
METERS_PER_DEG_LAT = 6_371_000.0 * math.pi / 180.0


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, delta: float) -> None:
        self.value += delta


class FakeVoice:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.spoken: List[str] = []
        self.priorities: List[SpeechPriority] = []
        self.stop_calls = 0

    def speak(self, text: str, priority: SpeechPriority = SpeechPriority.NORMAL) -> None:
        if self.fail:
            raise SpeechUnavailableError("no speech engine")
        self.spoken.append(text)
        self.priorities.append(priority)

    def stop(self) -> None:
        self.stop_calls += 1


class FakeHaptics:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.pulses: List[HapticFeedback] = []

    def trigger(self, feedback: HapticFeedback) -> None:
        if self.fail:
            raise HapticUnavailableError("no taptic engine")
        self.pulses.append(feedback)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def voice() -> FakeVoice:
    return FakeVoice()


@pytest.fixture()
def haptics() -> FakeHaptics:
    return FakeHaptics()


@pytest.fixture()
def target() -> NavigationTarget:
    return NavigationTarget(latitude=37.7749, longitude=-122.4194)


@pytest.fixture()
def fix_south_of(target: NavigationTarget) -> Callable[..., GeoPoint]:
    """Build a fix `meters` due south of the target, so the target lies dead north."""

    def make(meters: float, timestamp: Optional[float] = None, heading: Optional[float] = 0.0,
             accuracy: Optional[float] = 5.0, floor=None) -> GeoPoint:
        return GeoPoint(
            latitude=target.latitude - meters / METERS_PER_DEG_LAT,
            longitude=target.longitude,
            heading=heading,
            accuracy=accuracy,
            floor=floor,
            timestamp=timestamp,
        )

    return make
