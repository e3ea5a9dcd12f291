from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.reactive import reactive
from textual.widgets import Label

from arcnav.core.state import BrowseState, BrowseStateStore


class TopBar(Container):
    """Custom application title bar."""

    archive_name = reactive("", always_update=True)
    status = reactive("", always_update=True)
    busy = reactive(False, always_update=True)

    def __init__(
        self,
        *,
        app_title: str,
        app_version: str,
        state_store: BrowseStateStore,
    ) -> None:
        super().__init__()
        self._state_store = state_store
        self._state_subscription = self._handle_state_update

        self.title_label = Horizontal(
            Label(app_title, id="topbar_app_name"),
            Label(f"v{app_version}", id="topbar_app_version"),
            id="app_meta_container",
        )
        self.status_label = Label("", id="topbar_status")

    def on_mount(self) -> None:
        self._state_store.subscribe(self._state_subscription)

    def on_unmount(self) -> None:
        self._state_store.unsubscribe(self._state_subscription)

    def watch_archive_name(self) -> None:
        self._update_status()

    def watch_status(self) -> None:
        self._update_status()

    def watch_busy(self) -> None:
        self._update_status()

    def _update_status(self) -> None:
        if not self.archive_name:
            self.status_label.update(f"[dim]{self.status}[/dim]")
            return
        if self.busy:
            self.status_label.update(f"[$warning]{self.status}[/] - {self.archive_name}")
            return
        self.status_label.update(f"[dim]{self.status} - [/dim]{self.archive_name}")

    def _handle_state_update(self, state: BrowseState) -> None:
        self.archive_name = state.archive_name
        self.status = state.status
        self.busy = state.busy

    def compose(self) -> ComposeResult:
        yield self.title_label
        yield self.status_label
