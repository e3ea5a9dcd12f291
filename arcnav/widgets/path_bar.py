from __future__ import annotations

from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.events import Click
from textual.widgets import Static

from arcnav.core.messages import HistoryRequest, NavigateRequest, NavigateUpRequest
from arcnav.core.path_navigation import Breadcrumb
from arcnav.core.state import BrowseState, BrowseStateStore


class Crumb(Static):
    def __init__(self, crumb: Breadcrumb, *, current: bool) -> None:
        super().__init__(crumb.label, classes="path_crumb")
        self.folder = crumb.folder
        if current:
            self.add_class("current")


class PathBar(Horizontal):
    """History controls followed by the breadcrumb trail of the current folder."""

    def __init__(self, *, state_store: BrowseStateStore, id: str | None = None) -> None:
        super().__init__(id=id)
        self._state_store = state_store
        self._state_subscription = self._handle_state_update
        self._breadcrumbs: tuple[Breadcrumb, ...] | None = None

    def compose(self) -> ComposeResult:
        yield Static("←", id="path_nav_back", classes="path_nav_control disabled")
        yield Static("→", id="path_nav_forward", classes="path_nav_control disabled")
        yield Static("↑", id="path_nav_up", classes="path_nav_control disabled")
        yield Horizontal(id="path_crumbs")

    def on_mount(self) -> None:
        self._state_store.subscribe(self._state_subscription)

    def on_unmount(self) -> None:
        self._state_store.unsubscribe(self._state_subscription)

    @on(Click, ".path_nav_control")
    def _on_control_click(self, event: Click) -> None:
        control = event.control
        if control is None or control.has_class("disabled"):
            return
        if control.id == "path_nav_back":
            self.post_message(HistoryRequest(-1))
        elif control.id == "path_nav_forward":
            self.post_message(HistoryRequest(1))
        elif control.id == "path_nav_up":
            self.post_message(NavigateUpRequest())

    @on(Click, ".path_crumb")
    def _on_crumb_click(self, event: Click) -> None:
        control = event.control
        if isinstance(control, Crumb) and not control.has_class("current"):
            self.post_message(NavigateRequest(control.folder))

    def _handle_state_update(self, state: BrowseState) -> None:
        self._set_enabled("#path_nav_back", state.can_go_back and not state.busy)
        self._set_enabled("#path_nav_forward", state.can_go_forward and not state.busy)
        self._set_enabled("#path_nav_up", state.can_go_up and not state.busy)
        if state.breadcrumbs == self._breadcrumbs:
            return
        self._breadcrumbs = state.breadcrumbs
        container = self.query_one("#path_crumbs", Horizontal)
        container.remove_children()
        last = len(state.breadcrumbs) - 1
        container.mount_all(
            Crumb(crumb, current=index == last)
            for index, crumb in enumerate(state.breadcrumbs)
        )

    def _set_enabled(self, selector: str, enabled: bool) -> None:
        self.query_one(selector, Static).set_class(not enabled, "disabled")
