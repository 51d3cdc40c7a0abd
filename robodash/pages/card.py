from __future__ import annotations

from typing import Any

from nicegui import ui

from robodash.constants import UI_REFRESH_INTERVAL_S
from robodash.services.polling_cache import PollingCache, SubscriptionHandle
from robodash.state import QueryState, QueryStatus, ResourceKey


class PollingCard:
    """
    Card backed by one polling cache entry.

    The subscription follows the browser socket: it is taken when the client
    connects (and on every reconnect) and released on disconnect. A page that
    is rendered but never connects holds nothing. The body is rebuilt only when
    the cached snapshot changed.
    """

    title = ""
    empty_text = ""

    def __init__(self, cache: PollingCache, key: ResourceKey, interval_s: float | None = None) -> None:
        self.cache = cache
        self.key = key
        self.interval_s = interval_s
        self.handle: SubscriptionHandle | None = None
        self.body: ui.column | None = None
        self._rendered: tuple[QueryStatus, int] | None = None

    def acquire(self) -> None:
        if self.handle is None:
            self.handle = self.cache.subscribe(self.key, self.interval_s)

    def release(self) -> None:
        if self.handle is not None:
            self.cache.unsubscribe(self.handle)
            self.handle = None

    def build_controls(self) -> None:
        """Widgets rendered above the data body (none by default)."""

    def build(self, classes: str = "w-full") -> None:
        client = ui.context.client
        with ui.card().classes(classes):
            ui.label(self.title).classes("text-lg font-semibold")
            self.build_controls()
            self.body = ui.column().classes("w-full gap-2")
        client.on_connect(self.acquire)
        client.on_disconnect(self.release)
        self.refresh()
        ui.timer(UI_REFRESH_INTERVAL_S, self.refresh)

    def refresh(self) -> None:
        if self.body is None:
            return
        state = self.cache.get(self.key)
        signature = (state.status, state.updated_count)
        if signature == self._rendered:
            return
        self._rendered = signature
        self.body.clear()
        with self.body:
            self.render_state(state)

    def render_state(self, state: QueryState[Any]) -> None:
        if state.status in (QueryStatus.IDLE, QueryStatus.LOADING):
            ui.label("Loading...").classes("italic text-slate-400")
            return
        if state.status is QueryStatus.ERROR:
            ui.label("An error occurred...").classes("italic text-amber-700")
            return
        if state.is_stale:
            ui.label(f"Connection problem ({state.error}), showing last data").classes(
                "text-xs text-amber-700"
            )
        if self.empty_text and not state.data:
            ui.label(self.empty_text).classes("italic text-slate-700")
            return
        self.render_data(state.data)

    def render_data(self, data: Any) -> None:
        raise NotImplementedError
