from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, Sequence

from robodash.schemas import TelemetryRecord
from robodash.state import PoseMarker, PoseSample, Trajectory, TrajectoryPoint

# Defaults of the reference map view (px per metre, viewport height in px)
MAP_SCALE = 30.0
MAP_HEIGHT = 300.0
POINTER_LENGTH = 20.0
SAMPLE_LIMIT = 20


def to_screen(x: float, y: float, scale: float = MAP_SCALE, viewport_height: float = MAP_HEIGHT) -> TrajectoryPoint:
    """World (y up) -> screen (y down). Same scale/height as the map bounds."""
    return TrajectoryPoint(px=x * scale, py=viewport_height - y * scale)


def build_trajectory(
    samples: Sequence[PoseSample],
    scale: float = MAP_SCALE,
    viewport_height: float = MAP_HEIGHT,
    pointer_length: float = POINTER_LENGTH,
    limit: int = SAMPLE_LIMIT,
) -> Trajectory:
    """
    Turn pose samples (most recent first) into a screen-space path and a marker
    for the current pose with its heading segment.

    Only the first `limit` samples are used. An empty input yields an empty
    path and no marker.
    """
    window = list(samples[:limit]) if limit > 0 else []
    if not window:
        return Trajectory()

    path = [to_screen(s.x, s.y, scale, viewport_height) for s in window]
    head = window[0]
    current = path[0]
    # Screen y grows downwards, so the vertical heading component is negated
    heading_end = TrajectoryPoint(
        px=current.px + pointer_length * math.cos(head.theta),
        py=current.py - pointer_length * math.sin(head.theta),
    )
    return Trajectory(
        current_pose=PoseMarker(point=current, theta=head.theta, heading_end=heading_end),
        path=path,
    )


def _parse_stamp(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return None


def samples_from_telemetry(records: Iterable[TelemetryRecord]) -> list[PoseSample]:
    return [
        PoseSample(
            x=r.payload.x,
            y=r.payload.y,
            theta=r.payload.theta,
            captured_at=_parse_stamp(r.created_at),
        )
        for r in records
    ]


def flatten_points(path: Iterable[TrajectoryPoint]) -> list[float]:
    """[x0, y0, x1, y1, ...] polyline form."""
    flat: list[float] = []
    for p in path:
        flat.extend((p.px, p.py))
    return flat
