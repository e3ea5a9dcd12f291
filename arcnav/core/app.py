from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Coroutine

from platformdirs import user_config_path
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.theme import Theme
from textual.widgets import Footer
from textual.worker import Worker, WorkerState

from arcnav import __version__
from arcnav.core.config import RuntimeConfig, get_runtime_config
from arcnav.core.controller import BrowseController
from arcnav.core.errors import format_error
from arcnav.core.logging import configure_logging, get_logger
from arcnav.core.messages import (
    EmptyClickRequest,
    HistoryRequest,
    ItemActivateRequest,
    ItemClickRequest,
    NavigateRequest,
    NavigateUpRequest,
)
from arcnav.core.notify import NotifyTimeouts
from arcnav.core.paths import APP_AUTHOR, APP_NAME, SETTINGS_FILENAME
from arcnav.core.protocols import ArchiveBackend
from arcnav.core.settings_store import SettingsStore
from arcnav.core.worker_groups import WorkerGroup
from arcnav.services.archive_backend import LocalArchiveBackend, default_extract_dir
from arcnav.widgets.dialogs import ConfirmDialog, InputDialog
from arcnav.widgets.entry_list import EntryList
from arcnav.widgets.path_bar import PathBar
from arcnav.widgets.status_footer import StatusFooter
from arcnav.widgets.top_bar import TopBar

logger = get_logger(__name__)


def default_settings_path() -> Path:
    return Path(user_config_path(APP_NAME, APP_AUTHOR)) / SETTINGS_FILENAME


class ArchiveBrowserApp(App):
    TITLE = "arcnav"
    CSS_PATH = Path(__file__).parent.parent / "styles" / "index.tcss"

    BINDINGS = [
        Binding("o", "open_archive", "Open", show=True),
        Binding("n", "new_archive", "New archive", show=False),
        Binding("e", "extract", "Extract", show=True),
        Binding("/", "search", "Search", show=True),
        Binding("u,backspace", "go_up", "Up", show=True),
        Binding("h", "history_back", "Back", show=False),
        Binding("l", "history_forward", "Forward", show=False),
        Binding("f5", "refresh", "Refresh", show=False),
        Binding("a", "add_files", "Add", show=False),
        Binding("N", "new_folder", "New folder", key_display="Shift+N", show=False),
        Binding("r,f2", "rename_entry", "Rename", show=False),
        Binding("delete", "delete_selected", "Delete", show=True),
        Binding("y", "copy_selection", "Copy", show=False),
        Binding("x", "cut_selection", "Cut", show=False),
        Binding("p", "paste", "Paste", show=False),
        Binding("escape", "clear", "Clear", show=False),
    ]

    def __init__(
        self,
        archive: Path | str | None = None,
        *,
        backend: ArchiveBackend | None = None,
        config: RuntimeConfig | None = None,
        settings_path: Path | None = None,
    ) -> None:
        super().__init__()
        self.notify_timeouts = NotifyTimeouts()
        self.settings_store = SettingsStore(settings_path or default_settings_path())
        self.settings = self.settings_store.load()
        self._initial_archive = archive
        self.controller = BrowseController(
            backend=backend or LocalArchiveBackend(),
            notifier=self,
            picker=self,
            config=config or get_runtime_config(),
        )

    def compose(self) -> ComposeResult:
        store = self.controller.store
        with Vertical(id="app_main_container"):
            yield TopBar(
                app_title=ArchiveBrowserApp.TITLE,
                app_version=__version__,
                state_store=store,
            )
            yield PathBar(state_store=store, id="path_bar")
            yield EntryList(state_store=store, id="entry_list")
            yield StatusFooter(state_store=store, id="status_footer")
        yield Footer()

    def on_mount(self) -> None:
        self.console.set_window_title("arcnav")
        theme = self.settings.get("userPreferences", {}).get("theme")
        if theme and theme in self.available_themes:
            self.theme = theme
        self.theme_changed_signal.subscribe(self, self.on_theme_changed)
        self.query_one(EntryList).focus()
        if self._initial_archive:
            self.open_archive(self._initial_archive)

    def on_theme_changed(self, theme: Theme) -> None:
        self.settings_store.update_theme(self.settings, theme.name)

    # Notifier

    def notify_error(self, message: str) -> None:
        self.notify(message, severity="error", timeout=self.notify_timeouts.long)

    def notify_info(self, message: str) -> None:
        self.notify(message, timeout=self.notify_timeouts.normal)

    def notify_success(self, message: str) -> None:
        self.notify(message, title="Done", timeout=self.notify_timeouts.short)

    # DestinationPicker

    async def pick_destination_path(self) -> str | None:
        preferences = self.settings.get("userPreferences", {})
        default = preferences.get("lastExtractDirectory")
        if not default:
            handle = self.controller.archive_handle
            default = str(default_extract_dir(handle) if handle else Path.cwd())
        value = await self.push_screen_wait(
            InputDialog("Extract to directory", default=default)
        )
        if not value or not value.strip():
            return None
        destination = str(Path(value.strip()).expanduser())
        self.settings_store.update_extract_directory(self.settings, destination)
        return destination

    # Controller dispatch

    def _run(self, work: Coroutine[Any, Any, Any], group: str) -> None:
        self.run_worker(work, group=group, exclusive=False, exit_on_error=False)

    def open_archive(self, path: Path | str) -> None:
        target = str(Path(path).expanduser())
        self._run(self._open_and_remember(target), WorkerGroup.OPEN_ARCHIVE)

    async def _open_and_remember(self, path: str) -> None:
        if await self.controller.open_archive(path):
            self.settings_store.record_recent_archive(self.settings, path)

    async def _create_and_remember(self, path: str) -> None:
        if await self.controller.create_archive(path):
            created = self.controller.archive_handle
            if created:
                self.settings_store.record_recent_archive(self.settings, created)

    @on(NavigateRequest)
    def handle_navigate(self, event: NavigateRequest) -> None:
        self.controller.navigate_to(event.folder)

    @on(HistoryRequest)
    def handle_history(self, event: HistoryRequest) -> None:
        if event.delta < 0:
            self.controller.go_back()
        else:
            self.controller.go_forward()

    @on(NavigateUpRequest)
    def handle_navigate_up(self, _: NavigateUpRequest) -> None:
        self.controller.go_up()

    @on(ItemClickRequest)
    def handle_item_click(self, event: ItemClickRequest) -> None:
        self.controller.handle_item_click(event.path, event.index, event.modifiers)

    @on(ItemActivateRequest)
    def handle_item_activate(self, event: ItemActivateRequest) -> None:
        self.controller.handle_item_double_click(event.path)

    @on(EmptyClickRequest)
    def handle_empty_click(self, _: EmptyClickRequest) -> None:
        self.controller.handle_empty_click()

    def action_open_archive(self) -> None:
        recent = self.settings.get("userPreferences", {}).get("recentArchives") or []
        default = recent[0] if recent else str(Path.cwd())

        def after(value: str | None) -> None:
            if value and value.strip():
                self.open_archive(value.strip())

        self.push_screen(InputDialog("Path to archive", default=default), after)

    def action_new_archive(self) -> None:
        default = str(Path.cwd() / "new_archive.zip")

        def after(value: str | None) -> None:
            if value and value.strip():
                target = str(Path(value.strip()).expanduser())
                self._run(self._create_and_remember(target), WorkerGroup.CREATE_ARCHIVE)

        self.push_screen(
            InputDialog("New archive path (.zip, .7z or .tar)", default=default),
            after,
        )

    def action_extract(self) -> None:
        self._run(self.controller.extract(), WorkerGroup.EXTRACT_ARCHIVE)

    def action_refresh(self) -> None:
        self._run(self.controller.refresh(), WorkerGroup.REFRESH_LISTING)

    def action_search(self) -> None:
        def after(value: str | None) -> None:
            if value is not None:
                self.controller.search(value)

        self.push_screen(
            InputDialog("Search this folder", default=self.controller.state.search_query),
            after,
        )

    def action_go_up(self) -> None:
        self.controller.go_up()

    def action_history_back(self) -> None:
        self.controller.go_back()

    def action_history_forward(self) -> None:
        self.controller.go_forward()

    def action_add_files(self) -> None:
        def after(value: str | None) -> None:
            if not value:
                return
            sources = [
                str(Path(item.strip()).expanduser())
                for item in value.split(os.pathsep)
                if item.strip()
            ]
            self._run(self.controller.add_files(sources), WorkerGroup.ADD_FILES)

        self.push_screen(
            InputDialog(f"Files or folders to add (separate with '{os.pathsep}')"),
            after,
        )

    def action_new_folder(self) -> None:
        def after(value: str | None) -> None:
            if value is None:
                return
            self._run(self.controller.create_folder(value), WorkerGroup.CREATE_FOLDER)

        self.push_screen(InputDialog("New folder name"), after)

    def action_rename_entry(self) -> None:
        selected = self.controller.selected_paths()
        if len(selected) > 1:
            self.notify_info("Select a single entry to rename.")
            return
        if selected:
            target = next(
                (e for e in self.controller.entries if e.path == selected[0]), None
            )
        else:
            target = self.query_one(EntryList).highlighted_entry
        if target is None:
            return

        def after(value: str | None) -> None:
            if value is None:
                return
            self._run(
                self.controller.rename_entry(target.path, value),
                WorkerGroup.RENAME_ENTRY,
            )

        self.push_screen(InputDialog(f"Rename {target.name}", default=target.name), after)

    def action_delete_selected(self) -> None:
        count = len(self.controller.selected_paths())
        if not count:
            self.notify_info("Select entries to delete first.")
            return

        def after(confirmed: bool | None) -> None:
            if confirmed:
                self._run(self.controller.delete_selected(), WorkerGroup.DELETE_ENTRIES)

        self.push_screen(ConfirmDialog(f"Delete {count} item(s) from the archive?"), after)

    def action_copy_selection(self) -> None:
        if self.controller.copy_selection():
            self.notify(
                f"Copied {self.controller.state.clipboard_count} item(s).",
                timeout=self.notify_timeouts.quick,
            )

    def action_cut_selection(self) -> None:
        if self.controller.cut_selection():
            self.notify(
                f"Move staged for {self.controller.state.clipboard_count} item(s).",
                timeout=self.notify_timeouts.quick,
            )

    def action_paste(self) -> None:
        self._run(self.controller.paste(), WorkerGroup.PASTE_ENTRIES)

    def action_clear(self) -> None:
        if self.controller.state.search_query:
            self.controller.clear_search()
            return
        self.controller.handle_empty_click()

    @on(Worker.StateChanged)
    def _on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.state is not WorkerState.ERROR:
            return
        error = event.worker.error or RuntimeError("Operation failed.")
        text, severity = format_error(error)
        logger.error("worker %s failed: %s", event.worker.group, text)
        self.notify(text, severity=severity, timeout=self.notify_timeouts.long)


def main(archive: Path | str | None = None) -> None:
    config = get_runtime_config()
    settings_path = default_settings_path()
    log_dir = SettingsStore(settings_path).load().get("logs", {}).get("directory")
    configure_logging(
        level=config.log_level,
        format_name=config.log_format,
        log_dir=Path(log_dir).expanduser() if log_dir else None,
    )
    ArchiveBrowserApp(archive, config=config, settings_path=settings_path).run()
