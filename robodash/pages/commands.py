from __future__ import annotations

from functools import partial

from nicegui import ui

from robodash.pages.card import PollingCard
from robodash.schemas import CommandRecord
from robodash.services.commands import CommandDispatcher
from robodash.services.polling_cache import PollingCache
from robodash.state import Direction, ErrorKind, ResourceKey

COMMAND_COLUMNS = [
    {"name": "created_at", "label": "Time", "field": "created_at", "align": "left"},
    {"name": "name", "label": "Name", "field": "name", "align": "left"},
    {"name": "state", "label": "State", "field": "state", "align": "left"},
    {"name": "linear_x", "label": "Linear X", "field": "linear_x"},
    {"name": "angular_z", "label": "Angular Z", "field": "angular_z"},
]

# Button order matches the operator's left-to-right layout
BUTTONS: list[tuple[str, Direction]] = [
    ("Left", Direction.LEFT),
    ("Forward", Direction.FORWARD),
    ("Backward", Direction.BACKWARD),
    ("Right", Direction.RIGHT),
]


def command_rows(records: list[CommandRecord]) -> list[dict]:
    return [
        {
            "id": r.uuid or f"{i}",
            "created_at": r.created_at or "",
            "name": r.name,
            "state": r.state,
            "linear_x": r.payload.linear.x,
            "angular_z": r.payload.angular.z,
        }
        for i, r in enumerate(records)
    ]


class CommandsCard(PollingCard):
    """Direction buttons plus the command history read back from the backend."""

    title = "Commands"
    empty_text = "No commands sent"

    def __init__(
        self,
        cache: PollingCache,
        key: ResourceKey,
        dispatcher: CommandDispatcher,
        interval_s: float | None = None,
    ) -> None:
        super().__init__(cache, key, interval_s)
        self.dispatcher = dispatcher
        self.buttons: dict[Direction, ui.button] = {}

    async def send(self, direction: Direction) -> None:
        result = await self.dispatcher.dispatch(direction)
        if result.ok:
            return
        if result.error is not None and result.error.kind is ErrorKind.BUSY:
            ui.notify("Previous command still in flight", color="warning")
        else:
            ui.notify(f"Command {direction.value} failed: {result.error}", color="negative")

    def build_controls(self) -> None:
        with ui.row().classes("gap-4 pb-4"):
            for label, direction in BUTTONS:
                self.buttons[direction] = ui.button(
                    label, on_click=partial(self.send, direction)
                ).props("unelevated")

    def render_data(self, data: list[CommandRecord]) -> None:
        ui.table(columns=COMMAND_COLUMNS, rows=command_rows(data), row_key="id").props(
            "dense flat bordered"
        ).classes("w-full")
