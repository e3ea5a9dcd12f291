from __future__ import annotations

from textual.widgets import Static

from arcnav.core.state import BrowseState, BrowseStateStore
from arcnav.services.entry_listing import format_size


def footer_text(state: BrowseState) -> str:
    if not state.has_archive:
        return ""
    parts = [f"{state.item_count} item(s)", format_size(state.total_size)]
    if state.selected_paths:
        parts.append(f"{len(state.selected_paths)} selected")
    if state.clipboard_count and state.clipboard_mode:
        parts.append(f"{state.clipboard_count} staged to {state.clipboard_mode}")
    if state.search_query:
        parts.append(f'search: "{state.search_query}"')
    return "  |  ".join(parts)


class StatusFooter(Static):
    """Counters for the visible listing."""

    def __init__(self, *, state_store: BrowseStateStore, id: str | None = None) -> None:
        super().__init__("", id=id)
        self._state_store = state_store
        self._state_subscription = self._handle_state_update

    def on_mount(self) -> None:
        self._state_store.subscribe(self._state_subscription)

    def on_unmount(self) -> None:
        self._state_store.unsubscribe(self._state_subscription)

    def _handle_state_update(self, state: BrowseState) -> None:
        self.update(footer_text(state))
