from __future__ import annotations

from nicegui import ui

from robodash.pages.card import PollingCard
from robodash.schemas import RobotVitals


class GeneralCard(PollingCard):
    """Identity, vitals and connection badge."""

    title = "General"

    def render_data(self, data: RobotVitals) -> None:
        with ui.grid(columns=2).classes("w-full gap-4"):
            self._readout("ID", data.id)
            self._readout("Name", data.name)
        with ui.grid(columns=4).classes("w-full gap-4"):
            self._readout("CPU", format_percent(data.vitals.cpu))
            self._readout("Battery", format_percent(data.vitals.battery))
            self._readout("RAM", format_percent(data.vitals.ram))
            self._readout("Disk", format_percent(data.vitals.disk))
        with ui.column().classes("gap-1"):
            ui.label("Connection").classes("text-slate-400")
            if data.online:
                ui.badge("Online", color="positive")
            else:
                ui.badge("Offline", color="negative")

    @staticmethod
    def _readout(caption: str, value: str) -> None:
        with ui.column().classes("gap-0"):
            ui.label(caption).classes("text-slate-400")
            ui.label(value).classes("font-bold text-3xl text-blue-500")


def format_percent(value: float) -> str:
    # Backend reports 0-100; whole numbers render without a decimal
    return f"{value:.0f}%" if float(value).is_integer() else f"{value:.1f}%"
