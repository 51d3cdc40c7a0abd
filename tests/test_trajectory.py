from __future__ import annotations

import math

import pytest

from robodash.schemas import TelemetryRecord
from robodash.services.trajectory import (
    build_trajectory,
    flatten_points,
    samples_from_telemetry,
    to_screen,
)
from robodash.state import PoseSample, TrajectoryPoint


@pytest.mark.unit
def test_single_sample_marker_and_heading():
    traj = build_trajectory([PoseSample(x=1, y=1, theta=0)], scale=30, viewport_height=300)
    assert traj.current_pose is not None
    assert traj.current_pose.point == TrajectoryPoint(30, 270)
    assert traj.current_pose.heading_end.px == pytest.approx(50)
    assert traj.current_pose.heading_end.py == pytest.approx(270)
    assert traj.path == [TrajectoryPoint(30, 270)]


@pytest.mark.unit
def test_empty_input_has_no_marker():
    traj = build_trajectory([])
    assert traj.current_pose is None
    assert traj.path == []
    assert flatten_points(traj.path) == []


@pytest.mark.unit
def test_heading_points_up_on_screen_for_positive_theta():
    traj = build_trajectory([PoseSample(x=2, y=3, theta=math.pi / 2)], scale=30, viewport_height=300)
    marker = traj.current_pose
    assert marker.point == TrajectoryPoint(60, 210)
    # World +y is screen -y
    assert marker.heading_end.px == pytest.approx(60)
    assert marker.heading_end.py == pytest.approx(190)


@pytest.mark.unit
def test_current_pose_is_most_recent_sample_and_path_keeps_order():
    samples = [PoseSample(x=3, y=0, theta=math.pi), PoseSample(x=2, y=0, theta=0), PoseSample(x=1, y=0, theta=0)]
    traj = build_trajectory(samples, scale=10, viewport_height=100)
    assert traj.current_pose.point == TrajectoryPoint(30, 100)
    assert traj.current_pose.theta == math.pi
    assert traj.current_pose.heading_end.px == pytest.approx(10)
    assert [p.px for p in traj.path] == [30, 20, 10]
    assert flatten_points(traj.path) == [30, 100, 20, 100, 10, 100]


@pytest.mark.unit
def test_path_limited_to_most_recent_samples():
    samples = [PoseSample(x=i, y=0, theta=0) for i in range(50)]
    traj = build_trajectory(samples, limit=20)
    assert len(traj.path) == 20
    assert traj.path[0] == to_screen(0, 0)
    assert traj.path[-1] == to_screen(19, 0)


@pytest.mark.unit
def test_marker_and_path_share_the_transform():
    samples = [PoseSample(x=4.5, y=2.25, theta=0.3)]
    traj = build_trajectory(samples, scale=12, viewport_height=250, pointer_length=5)
    assert traj.path[0] == traj.current_pose.point == to_screen(4.5, 2.25, 12, 250)
    end = traj.current_pose.heading_end
    assert math.hypot(end.px - traj.path[0].px, end.py - traj.path[0].py) == pytest.approx(5)


@pytest.mark.unit
def test_samples_from_telemetry_rows():
    rows = [
        TelemetryRecord.model_validate(
            {"payload": {"x": 1, "y": 2, "theta": 0.1}, "created_at": "2024-01-01T00:00:00Z"}
        ),
        TelemetryRecord.model_validate({"payload": {"x": 3, "y": 4, "theta": 0.2}, "created_at": "garbage"}),
    ]
    samples = samples_from_telemetry(rows)
    assert samples[0] == PoseSample(x=1, y=2, theta=0.1, captured_at=1704067200.0)
    assert samples[1].captured_at is None
    assert samples[1].theta == 0.2
