"""Tests for target persistence and the session log."""

from __future__ import annotations

import json

from carfinder.guidance.models import (
    GuidanceEvent,
    GuidanceEventType,
    GuidanceResult,
    GuidanceStatus,
    NavigationTarget,
)
from carfinder.guidance.nav_config import GuidanceConfig
from carfinder.guidance.nav_logger import NavLogger
from carfinder.guidance.state_calculator import calculate_navigation_state


def make_logger(tmp_path) -> NavLogger:
    return NavLogger(GuidanceConfig(log_dir=str(tmp_path / "logs")))


def test_log_dir_is_created(tmp_path) -> None:
    make_logger(tmp_path)
    assert (tmp_path / "logs").is_dir()


def test_save_and_load_target(tmp_path) -> None:
    nav_logger = make_logger(tmp_path)
    car = NavigationTarget(37.7749, -122.4194, floor="B2", altitude=4.5, name="car")

    assert nav_logger.save_target(car)
    assert nav_logger.load_target() == car

    data = json.loads((tmp_path / "logs" / "saved_target.json").read_text(encoding="utf-8"))
    assert "saved_at" in data
    assert data["target"]["floor"] == "B2"


def test_load_missing_target_returns_none(tmp_path) -> None:
    assert make_logger(tmp_path).load_target(str(tmp_path / "nope.json")) is None


def test_load_corrupt_target_returns_none(tmp_path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert make_logger(tmp_path).load_target(str(bad)) is None

    bad.write_text('{"saved_at": "x"}', encoding="utf-8")
    assert make_logger(tmp_path).load_target(str(bad)) is None


def test_log_event_appends_json_lines(tmp_path, target, fix_south_of) -> None:
    nav_logger = make_logger(tmp_path)
    fix = fix_south_of(11.0)
    state = calculate_navigation_state(fix, target)

    nav_logger.log_event(GuidanceResult(GuidanceStatus.TRACKING, state, announcement="hello"), fix)
    nav_logger.log_event(GuidanceResult(
        GuidanceStatus.IDLE, None, events=[GuidanceEvent(GuidanceEventType.STOPPED)],
    ))

    lines = (tmp_path / "logs" / "guidance_session.jsonl").read_text(encoding="utf-8").splitlines()
    first, second = (json.loads(line) for line in lines)

    assert first["status"] == "tracking"
    assert first["announcement"] == "hello"
    assert first["lat"] == fix.latitude
    assert first["state"]["direction"] == "straight"

    assert second["events"] == ["stopped"]
    assert second["lat"] is None
    assert second["state"] is None
