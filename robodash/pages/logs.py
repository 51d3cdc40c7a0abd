from __future__ import annotations

from nicegui import ui

from robodash.pages.card import PollingCard
from robodash.schemas import LogEntry

LOG_COLUMNS = [
    {"name": "stamp", "label": "Time", "field": "stamp", "align": "left"},
    {"name": "level", "label": "Level", "field": "level", "align": "left"},
    {"name": "msg", "label": "Msg", "field": "msg", "align": "left"},
]


def log_rows(entries: list[LogEntry]) -> list[dict]:
    return [
        {"id": e.uuid or f"{i}", "stamp": e.stamp, "level": e.level, "msg": e.msg}
        for i, e in enumerate(entries)
    ]


class LogsCard(PollingCard):
    """Most recent robot log lines."""

    title = "Most recent logs"
    empty_text = "No logs collected"

    def render_data(self, data: list[LogEntry]) -> None:
        ui.table(columns=LOG_COLUMNS, rows=log_rows(data), row_key="id").props(
            "dense flat bordered"
        ).classes("w-full")
