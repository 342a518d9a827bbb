# heading_filter.py
# Noise reduction for raw compass headings and simultaneous position fixes.

from collections import deque
from typing import Optional, Sequence

import numpy as np

from carfinder.guidance.geo_utils import normalize_angle, validate_coordinate
from carfinder.guidance.models import GeoPoint

DEFAULT_ACCURACY_M = 30.0
FUSION_ACCURACY_GAIN = 0.7


class HeadingSmoother:
    """
    Circular moving average over the last `window` compass samples.

    A plain arithmetic mean breaks across north (359 and 1 average to 180),
    so samples are averaged as unit vectors.
    """

    def __init__(self, window: int = 5) -> None:
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        self._samples: deque = deque(maxlen=window)

    def add(self, heading_deg: float) -> float:
        self._samples.append(normalize_angle(heading_deg))
        return self.value

    def reset(self) -> None:
        self._samples.clear()

    @property
    def value(self) -> Optional[float]:
        if not self._samples:
            return None
        rad = np.radians(np.asarray(self._samples, dtype=float))
        mean = np.degrees(np.arctan2(np.sin(rad).mean(), np.cos(rad).mean()))
        return normalize_angle(float(mean))


def fuse_fixes(fixes: Sequence[GeoPoint]) -> GeoPoint:
    """
    Accuracy-weighted average of fixes taken at about the same moment.

    Each fix is weighted by 1/accuracy (DEFAULT_ACCURACY_M when unknown).
    The fused accuracy is the best input accuracy scaled by FUSION_ACCURACY_GAIN.
    The newest fix's heading, floor, altitude and timestamp are carried over;
    on a timestamp tie the earlier entry in `fixes` wins.
    """
    if not fixes:
        raise ValueError("fuse_fixes needs at least one fix")
    for fix in fixes:
        validate_coordinate(fix.latitude, fix.longitude)

    accuracies = np.array(
        [f.accuracy if f.accuracy and f.accuracy > 0 else DEFAULT_ACCURACY_M for f in fixes],
        dtype=float,
    )
    weights = 1.0 / accuracies
    lats = np.array([f.latitude for f in fixes], dtype=float)
    lons = np.array([f.longitude for f in fixes], dtype=float)

    newest = max(fixes, key=lambda f: f.timestamp if f.timestamp is not None else float("-inf"))
    return GeoPoint(
        latitude=float(np.average(lats, weights=weights)),
        longitude=float(np.average(lons, weights=weights)),
        altitude=newest.altitude,
        heading=newest.heading,
        accuracy=float(accuracies.min() * FUSION_ACCURACY_GAIN),
        floor=newest.floor,
        timestamp=newest.timestamp,
    )
