from __future__ import annotations

from nicegui import ui

from robodash.config import Config
from robodash.pages.card import PollingCard
from robodash.schemas import TelemetryRecord
from robodash.services.polling_cache import PollingCache
from robodash.services.trajectory import build_trajectory, flatten_points, samples_from_telemetry
from robodash.state import ResourceKey, Trajectory


def render_map_svg(traj: Trajectory, width: float, height: float) -> str:
    """SVG for the map: gray path, blue pose dot and blue heading pointer."""
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width:g}" height="{height:g}" '
        f'viewBox="0 0 {width:g} {height:g}">',
        f'<rect width="{width:g}" height="{height:g}" fill="#e2e8f0" stroke="#94a3b8"/>',
    ]
    flat = flatten_points(traj.path)
    if len(flat) >= 4:
        pts = " ".join(f"{flat[i]:.2f},{flat[i + 1]:.2f}" for i in range(0, len(flat), 2))
        parts.append(f'<polyline points="{pts}" fill="none" stroke="gray"/>')
    marker = traj.current_pose
    if marker is not None:
        p, h = marker.point, marker.heading_end
        parts.append(f'<circle cx="{p.px:.2f}" cy="{p.py:.2f}" r="4" fill="blue"/>')
        parts.append(
            f'<line x1="{p.px:.2f}" y1="{p.py:.2f}" x2="{h.px:.2f}" y2="{h.py:.2f}" stroke="blue"/>'
        )
    parts.append("</svg>")
    return "".join(parts)


class LocationCard(PollingCard):
    """Recent trajectory and current heading on a fixed-scale map."""

    title = "Location"

    def __init__(
        self,
        cache: PollingCache,
        key: ResourceKey,
        cfg: Config,
        interval_s: float | None = None,
    ) -> None:
        super().__init__(cache, key, interval_s)
        self.cfg = cfg

    def trajectory(self, records: list[TelemetryRecord]) -> Trajectory:
        return build_trajectory(
            samples_from_telemetry(records),
            scale=self.cfg.MAP_SCALE,
            viewport_height=self.cfg.MAP_HEIGHT,
            pointer_length=self.cfg.POINTER_LENGTH,
            limit=self.cfg.TRAJECTORY_LIMIT,
        )

    def render_data(self, data: list[TelemetryRecord]) -> None:
        svg = render_map_svg(self.trajectory(data or []), self.cfg.MAP_WIDTH, self.cfg.MAP_HEIGHT)
        ui.html(svg)
