from __future__ import annotations

from rich.text import Text
from textual.binding import Binding
from textual.events import Click
from textual.widgets import OptionList

from arcnav.core.messages import EmptyClickRequest, ItemActivateRequest, ItemClickRequest
from arcnav.core.selection import ClickModifiers
from arcnav.core.state import BrowseState, BrowseStateStore
from arcnav.domain.entries import ArchiveEntry
from arcnav.services.entry_listing import display_name, format_size


class EntryList(OptionList):
    """Children of the current archive folder, with selection markers."""

    ALLOW_MAXIMIZE = False
    COMPONENT_CLASSES = {
        "entry-list-dir",
        "entry-list-file",
        "entry-list-meta",
        "entry-list-selection-marker",
    }
    BINDINGS = [
        Binding("enter", "activate_entry", "Open folder", show=False),
        Binding("s,space", "toggle_select", "Select", show=False),
        Binding(
            "S",
            "select_range",
            "Select range",
            key_display="Shift+S",
            show=False,
        ),
    ]

    def __init__(self, *, state_store: BrowseStateStore, id: str | None = None) -> None:
        super().__init__(id=id, compact=True)
        self._state_store = state_store
        self._state_subscription = self._handle_state_update
        self._entries: tuple[ArchiveEntry, ...] = ()
        self._selected: frozenset[str] = frozenset()
        self._folder = ""
        self._has_archive = False

    def on_mount(self) -> None:
        self.border_title = "Entries"
        self._state_store.subscribe(self._state_subscription)

    def on_unmount(self) -> None:
        self._state_store.unsubscribe(self._state_subscription)

    @property
    def highlighted_entry(self) -> ArchiveEntry | None:
        index = self.highlighted
        if index is None or not 0 <= index < len(self._entries):
            return None
        return self._entries[index]

    def _handle_state_update(self, state: BrowseState) -> None:
        entries_changed = (
            state.visible_entries != self._entries
            or state.current_folder != self._folder
            or state.has_archive != self._has_archive
        )
        if not entries_changed and state.selected_paths == self._selected:
            return
        previous = self.highlighted
        self._entries = state.visible_entries
        self._selected = state.selected_paths
        self._folder = state.current_folder
        self._has_archive = state.has_archive
        self._render_entries(previous, reset_cursor=entries_changed)

    def _render_entries(self, previous: int | None, *, reset_cursor: bool) -> None:
        if not self._entries:
            self.clear_options()
            if self._has_archive:
                self.add_option(Text("  This folder is empty.", style="dim"))
            else:
                self.add_option(Text("  Press o to open an archive.", style="dim"))
            self.highlighted = None
            return
        self.set_options([self._entry_prompt(entry) for entry in self._entries])
        if reset_cursor or previous is None:
            self.highlighted = 0
        else:
            self.highlighted = min(previous, len(self._entries) - 1)

    def _entry_prompt(self, entry: ArchiveEntry) -> Text:
        text = Text()
        if entry.path in self._selected:
            text.append(
                "✓ ",
                style=self.get_component_rich_style(
                    "entry-list-selection-marker", partial=True
                ),
            )
        else:
            text.append("  ")
        label = display_name(entry, self._folder)
        if entry.is_directory:
            text.append(
                f"{label}/",
                style=self.get_component_rich_style("entry-list-dir", partial=True),
            )
        else:
            text.append(
                label,
                style=self.get_component_rich_style("entry-list-file", partial=True),
            )
        meta_style = self.get_component_rich_style("entry-list-meta", partial=True)
        text.append(f"  {entry.type_label}", style=meta_style)
        if not entry.is_directory:
            text.append(f"  {format_size(entry.size_bytes)}", style=meta_style)
        return text

    def on_click(self, event: Click) -> None:
        index = event.style.meta.get("option")
        if index is None or not 0 <= index < len(self._entries):
            self.post_message(EmptyClickRequest())
            return
        entry = self._entries[index]
        if event.chain >= 2:
            self.post_message(ItemActivateRequest(entry.path))
            return
        modifiers = ClickModifiers(ctrl=event.ctrl, shift=event.shift, meta=event.meta)
        self.post_message(ItemClickRequest(entry.path, index, modifiers))

    def action_activate_entry(self) -> None:
        entry = self.highlighted_entry
        if entry is None:
            return
        self.post_message(ItemActivateRequest(entry.path))

    def action_toggle_select(self) -> None:
        entry = self.highlighted_entry
        if entry is None:
            return
        self.post_message(
            ItemClickRequest(entry.path, self.highlighted, ClickModifiers(ctrl=True))
        )

    def action_select_range(self) -> None:
        entry = self.highlighted_entry
        if entry is None:
            return
        self.post_message(
            ItemClickRequest(
                entry.path,
                self.highlighted,
                ClickModifiers(ctrl=True, shift=True),
            )
        )
