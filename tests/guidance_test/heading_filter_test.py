"""Tests for heading smoothing and fix fusion."""

from __future__ import annotations

import pytest

from carfinder.guidance.errors import InvalidCoordinateError
from carfinder.guidance.heading_filter import HeadingSmoother, fuse_fixes
from carfinder.guidance.models import GeoPoint


def circular_gap(a: float, b: float) -> float:
    return abs((a - b + 180.0) % 360.0 - 180.0)


def test_smoother_averages_across_north() -> None:
    smoother = HeadingSmoother(window=4)
    for heading in (350.0, 10.0, 355.0, 5.0):
        value = smoother.add(heading)
    assert circular_gap(value, 0.0) < 1e-6
    assert 0.0 <= value < 360.0


def test_smoother_window_drops_old_samples() -> None:
    smoother = HeadingSmoother(window=2)
    smoother.add(0.0)
    smoother.add(90.0)
    assert smoother.add(90.0) == pytest.approx(90.0)


def test_smoother_reset_and_empty_value() -> None:
    smoother = HeadingSmoother()
    assert smoother.value is None
    smoother.add(45.0)
    smoother.reset()
    assert smoother.value is None


def test_smoother_rejects_bad_window() -> None:
    with pytest.raises(ValueError):
        HeadingSmoother(window=0)


def test_fuse_weights_by_accuracy() -> None:
    fused = fuse_fixes([
        GeoPoint(10.0, 20.0, accuracy=5.0, timestamp=1.0),
        GeoPoint(10.0003, 20.0003, accuracy=20.0, heading=90.0, floor="2", timestamp=2.0),
    ])
    assert fused.latitude == pytest.approx(10.00006)
    assert fused.longitude == pytest.approx(20.00006)
    assert fused.accuracy == pytest.approx(3.5)
    assert fused.heading == 90.0
    assert fused.floor == "2"
    assert fused.timestamp == 2.0


def test_fuse_unknown_accuracy_uses_default() -> None:
    fused = fuse_fixes([GeoPoint(1.0, 1.0), GeoPoint(3.0, 3.0)])
    assert fused.latitude == pytest.approx(2.0)
    assert fused.accuracy == pytest.approx(21.0)


def test_fuse_rejects_empty_and_invalid() -> None:
    with pytest.raises(ValueError):
        fuse_fixes([])
    with pytest.raises(InvalidCoordinateError):
        fuse_fixes([GeoPoint(0.0, 0.0), GeoPoint(0.0, 190.0)])
