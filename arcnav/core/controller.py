from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, TypeVar

from arcnav.core.config import RuntimeConfig, get_runtime_config
from arcnav.core.errors import BackendError, format_error, wrap_backend_error
from arcnav.core.history import NavigationHistory
from arcnav.core.loading_gate import LoadingGate
from arcnav.core.logging import get_logger, log_event
from arcnav.core.path_navigation import (
    ROOT,
    build_breadcrumbs,
    can_navigate_up,
    normalize_folder_path,
    parent_of,
)
from arcnav.core.protocols import ArchiveBackend, DestinationPicker, Notifier
from arcnav.core.selection import ClickModifiers, SelectionModel
from arcnav.core.state import WELCOME_STATUS, BrowseState, BrowseStateStore
from arcnav.domain.entries import ArchiveEntry, MutationCommand
from arcnav.services.entry_listing import (
    children,
    listing_stats,
    search_entries,
    sort_entries,
)

logger = get_logger(__name__)

_T = TypeVar("_T")

CLIPBOARD_COPY = "copy"
CLIPBOARD_CUT = "cut"


def archive_display_name(handle: str) -> str:
    return Path(handle).name or handle


class BrowseController:
    """Owns one browse session: history, selection, loading gate and state.

    Synchronous transitions (navigation, clicks, search) run immediately.
    Operations that talk to the archive backend are coroutines; the backend
    call itself runs in a worker thread while the loading gate is held.
    """

    def __init__(
        self,
        *,
        backend: ArchiveBackend,
        notifier: Notifier,
        picker: DestinationPicker | None = None,
        config: RuntimeConfig | None = None,
        store: BrowseStateStore | None = None,
    ) -> None:
        config = config or get_runtime_config()
        self._backend = backend
        self._notifier = notifier
        self._picker = picker
        self._history = NavigationHistory(limit=config.history_limit)
        self._history.reset(ROOT)
        self._selection = SelectionModel(strict=config.strict_invariants)
        self._gate = LoadingGate(self._handle_gate_change)
        self.store = store or BrowseStateStore()
        self._archive_handle: str | None = None
        self._entries: tuple[ArchiveEntry, ...] = ()
        self._visible: tuple[ArchiveEntry, ...] = ()
        self._search_query = ""
        self._clipboard: tuple[str, ...] = ()
        self._clipboard_mode: str | None = None
        self.render()

    # -- queries ---------------------------------------------------------

    @property
    def state(self) -> BrowseState:
        return self.store.state

    @property
    def history(self) -> NavigationHistory:
        return self._history

    @property
    def gate(self) -> LoadingGate:
        return self._gate

    @property
    def archive_handle(self) -> str | None:
        return self._archive_handle

    @property
    def entries(self) -> tuple[ArchiveEntry, ...]:
        return self._entries

    def current_folder(self) -> str:
        return self._history.current()

    def can_go_back(self) -> bool:
        return self._history.can_go_back()

    def can_go_forward(self) -> bool:
        return self._history.can_go_forward()

    def selected_paths(self) -> tuple[str, ...]:
        return self._selection.selected_paths()

    def visible_entries(self) -> tuple[ArchiveEntry, ...]:
        return self._visible

    # -- render pipeline -------------------------------------------------

    def render(self) -> None:
        folder = self._history.current()
        rows = children(self._entries, folder)
        if self._search_query:
            rows = search_entries(rows, self._search_query, folder)
        visible = tuple(sort_entries(rows))
        self._visible = visible
        self._selection.bind([entry.path for entry in visible])

        has_archive = self._archive_handle is not None
        name = archive_display_name(self._archive_handle) if has_archive else ""
        stats = listing_stats(visible)
        self.store.publish(
            archive_handle=self._archive_handle,
            archive_name=name,
            current_folder=folder,
            visible_entries=visible,
            selected_paths=frozenset(),
            breadcrumbs=build_breadcrumbs(folder, name) if has_archive else (),
            can_go_back=self._history.can_go_back(),
            can_go_forward=self._history.can_go_forward(),
            can_go_up=has_archive and can_navigate_up(folder),
            item_count=stats.count,
            total_size=stats.total_size,
            search_query=self._search_query,
            status=self._status_text(),
        )

    def _status_text(self) -> str:
        if self._gate.busy:
            return "Loading..."
        if self._archive_handle is None:
            return WELCOME_STATUS
        if self._search_query:
            return f"Found {len(self._visible)} match(es)"
        return "Ready"

    def _handle_gate_change(self, busy: bool) -> None:
        self.store.publish(busy=busy, status=self._status_text())

    def _publish_selection(self) -> None:
        self.store.set_selected_paths(frozenset(self._selection.selected_paths()))

    def _reject_when_busy(self, action: str) -> bool:
        if not self._gate.busy:
            return False
        log_event(logger, "guard_rejected", level=logging.DEBUG, action=action)
        return True

    # -- navigation ------------------------------------------------------

    def navigate_to(self, folder: str) -> bool:
        if self._reject_when_busy("navigate"):
            return False
        target = normalize_folder_path(folder)
        self._history.visit(target)
        self._search_query = ""
        log_event(logger, "navigate", level=logging.DEBUG, folder=target)
        self.render()
        return True

    def go_back(self) -> bool:
        if self._reject_when_busy("back"):
            return False
        if self._history.back() is None:
            return False
        self._search_query = ""
        self.render()
        return True

    def go_forward(self) -> bool:
        if self._reject_when_busy("forward"):
            return False
        if self._history.forward() is None:
            return False
        self._search_query = ""
        self.render()
        return True

    def go_up(self) -> bool:
        if self._reject_when_busy("up"):
            return False
        current = self._history.current()
        if current == ROOT:
            return False
        return self.navigate_to(parent_of(current))

    def search(self, query: str) -> bool:
        if self._reject_when_busy("search"):
            return False
        if self._archive_handle is None:
            self._notifier.notify_error("Open an archive before searching.")
            return False
        text = query.strip()
        self._search_query = text
        self.render()
        if text and not self._visible:
            self._notifier.notify_info(f'No entries match "{text}".')
        return True

    def clear_search(self) -> bool:
        if not self._search_query:
            return False
        return self.search("")

    def reset_to_empty(self) -> bool:
        if self._reject_when_busy("reset"):
            return False
        self._clear_session()
        return True

    def _clear_session(self) -> None:
        self._archive_handle = None
        self._entries = ()
        self._history.reset(ROOT)
        self._search_query = ""
        self._clear_clipboard()
        self.render()

    # -- item interaction ------------------------------------------------

    def handle_item_click(
        self,
        path: str,
        index: int,
        modifiers: ClickModifiers | None = None,
    ) -> None:
        if self._reject_when_busy("item_click"):
            return
        modifiers = modifiers or ClickModifiers()
        if modifiers.shift:
            self._selection.click_range(index, preserve_existing=modifiers.toggle)
        elif modifiers.toggle:
            self._selection.click_toggle(path, index)
        else:
            self._selection.click_simple(path, index)
        self._publish_selection()

    def handle_item_double_click(self, path: str) -> bool:
        if self._reject_when_busy("item_open"):
            return False
        entry = next((row for row in self._visible if row.path == path), None)
        if entry is None:
            return False
        self._selection.clear()
        self._publish_selection()
        if entry.is_directory:
            return self.navigate_to(entry.path)
        self._notifier.notify_info(f"Preview is not available for {entry.name}.")
        return False

    def handle_empty_click(self) -> None:
        if self._reject_when_busy("empty_click"):
            return
        self._selection.click_empty()
        self._publish_selection()

    # -- clipboard -------------------------------------------------------

    def copy_selection(self) -> bool:
        return self._stage_clipboard(CLIPBOARD_COPY)

    def cut_selection(self) -> bool:
        return self._stage_clipboard(CLIPBOARD_CUT)

    def _stage_clipboard(self, mode: str) -> bool:
        if self._reject_when_busy(mode):
            return False
        paths = self._selection.selected_paths()
        if not paths:
            self._notifier.notify_info(f"Select entries to {mode} first.")
            return False
        self._clipboard = paths
        self._clipboard_mode = mode
        self.store.set_clipboard(len(paths), mode)
        return True

    def _clear_clipboard(self) -> None:
        self._clipboard = ()
        self._clipboard_mode = None
        self.store.set_clipboard(0, None)

    # -- backend operations ----------------------------------------------

    async def open_archive(self, handle: str | Path) -> bool:
        handle = str(handle)
        if not self._gate.try_enter():
            self._reject_when_busy("open_archive")
            return False
        try:
            entries = await self._call_backend(
                "open", self._backend.fetch_entries, handle
            )
        except BackendError as error:
            log_event(
                logger,
                "archive_open_failed",
                level=logging.WARNING,
                handle=handle,
                error=str(error),
            )
            self._notify_backend_error(error)
            self._clear_session()
            return False
        else:
            self._start_session(handle, entries)
        finally:
            self._gate.leave()

        log_event(logger, "archive_opened", handle=handle, entries=len(self._entries))
        self._notifier.notify_success(
            f"Opened archive: {archive_display_name(handle)}"
        )
        return True

    async def create_archive(
        self, handle: str | Path, archive_format: str | None = None
    ) -> bool:
        """Create an empty archive and open it in place of the current one."""
        target = str(handle).strip()
        if not target:
            self._notifier.notify_error("Archive path cannot be empty.")
            return False
        if not self._gate.try_enter():
            self._reject_when_busy("create_archive")
            return False
        try:
            created = await self._call_backend(
                "create", self._backend.create_archive, target, archive_format
            )
            entries = await self._call_backend(
                "open", self._backend.fetch_entries, created
            )
        except BackendError as error:
            log_event(
                logger,
                "archive_create_failed",
                level=logging.WARNING,
                handle=target,
                error=str(error),
            )
            self._notify_backend_error(error)
            self._clear_session()
            return False
        else:
            self._start_session(created, entries)
        finally:
            self._gate.leave()

        log_event(logger, "archive_created", handle=created)
        self._notifier.notify_success(
            f"Created archive: {archive_display_name(created)}"
        )
        return True

    def _start_session(self, handle: str, entries: Sequence[ArchiveEntry]) -> None:
        self._archive_handle = handle
        self._entries = tuple(entries)
        self._history.reset(ROOT)
        self._search_query = ""
        self._clear_clipboard()
        self.render()

    async def refresh(self) -> bool:
        handle = self._archive_handle
        if handle is None:
            return False
        if not self._gate.try_enter():
            self._reject_when_busy("refresh")
            return False
        try:
            entries = await self._call_backend(
                "refresh", self._backend.fetch_entries, handle
            )
        except BackendError as error:
            self._notify_backend_error(error)
            return False
        else:
            self._replace_entries(entries)
        finally:
            self._gate.leave()
        return True

    async def delete_selected(self) -> bool:
        if self._reject_when_busy("delete"):
            return False
        paths = self._selection.selected_paths()
        if not paths:
            self._notifier.notify_info("Select entries to delete first.")
            return False
        return await self._run_mutation(
            "delete",
            MutationCommand.DELETE,
            {"paths": list(paths)},
            f"Deleted {len(paths)} item(s).",
        )

    async def rename_entry(self, path: str, new_name: str) -> bool:
        if self._reject_when_busy("rename"):
            return False
        name = new_name.strip()
        if not self._validate_name(name):
            return False
        entry = next((row for row in self._entries if row.path == path), None)
        if entry is None:
            self._notifier.notify_error(f"Entry not found: {path}")
            return False
        if entry.name == name:
            return False
        return await self._run_mutation(
            "rename",
            MutationCommand.RENAME,
            {"path": path, "new_name": name},
            f"Renamed {entry.name} to {name}.",
        )

    async def create_folder(self, name: str) -> bool:
        if self._reject_when_busy("create_folder"):
            return False
        name = name.strip()
        if not self._validate_name(name):
            return False
        return await self._run_mutation(
            "create folder",
            MutationCommand.CREATE_FOLDER,
            {"parent": self._history.current(), "name": name},
            f"Created folder {name}.",
        )

    async def add_files(self, sources: Sequence[str | Path]) -> bool:
        if self._reject_when_busy("add"):
            return False
        items = [str(source) for source in sources if str(source)]
        if not items:
            return False
        return await self._run_mutation(
            "add",
            MutationCommand.ADD,
            {"sources": items, "destination": self._history.current()},
            f"Added {len(items)} item(s).",
        )

    async def paste(self) -> bool:
        if self._reject_when_busy("paste"):
            return False
        if not self._clipboard or not self._clipboard_mode:
            self._notifier.notify_info("Nothing to paste.")
            return False
        move = self._clipboard_mode == CLIPBOARD_CUT
        sources = list(self._clipboard)
        pasted = await self._run_mutation(
            "paste",
            MutationCommand.PASTE,
            {
                "sources": sources,
                "destination": self._history.current(),
                "move": move,
            },
            f"{'Moved' if move else 'Copied'} {len(sources)} item(s).",
        )
        if pasted and move:
            self._clear_clipboard()
        return pasted

    async def extract(self, paths: Sequence[str] | None = None) -> bool:
        if self._reject_when_busy("extract"):
            return False
        handle = self._archive_handle
        if handle is None:
            self._notifier.notify_error("Open an archive before extracting.")
            return False
        if self._picker is None:
            self._notifier.notify_error("No extraction destination is available.")
            return False
        targets = list(paths) if paths else list(self._selection.selected_paths())
        destination = await self._picker.pick_destination_path()
        if not destination:
            self._notifier.notify_info("Extraction cancelled.")
            return False
        # The session may have moved on while the destination dialog was open.
        if handle != self._archive_handle:
            self._notifier.notify_info("The archive changed; nothing was extracted.")
            return False
        if not self._gate.try_enter():
            self._reject_when_busy("extract")
            self._notifier.notify_info(
                "Another operation is in progress; nothing was extracted."
            )
            return False
        try:
            count = await self._call_backend(
                "extract",
                self._backend.extract_entries,
                handle,
                targets,
                destination,
            )
        except BackendError as error:
            self._notify_backend_error(error)
            return False
        finally:
            self._gate.leave()
        log_event(
            logger,
            "extract_finished",
            handle=handle,
            destination=destination,
            count=count,
        )
        self._notifier.notify_success(f"Extracted {count} item(s) to {destination}.")
        return True

    async def _run_mutation(
        self,
        operation: str,
        command: MutationCommand,
        args: Mapping[str, Any],
        success_message: str,
    ) -> bool:
        handle = self._archive_handle
        if handle is None:
            self._notifier.notify_error("Open an archive first.")
            return False
        if not self._gate.try_enter():
            self._reject_when_busy(operation)
            return False
        try:
            await self._call_backend(
                operation, self._backend.mutate_archive, handle, command, dict(args)
            )
            entries = await self._call_backend(
                "refresh", self._backend.fetch_entries, handle
            )
        except BackendError as error:
            self._notify_backend_error(error)
            return False
        else:
            self._replace_entries(entries)
        finally:
            self._gate.leave()
        log_event(logger, "mutation_applied", command=command.value, handle=handle)
        self._notifier.notify_success(success_message)
        return True

    def _replace_entries(self, entries: Sequence[ArchiveEntry]) -> None:
        self._entries = tuple(entries)
        self._search_query = ""
        self.render()

    async def _call_backend(
        self, operation: str, func: Callable[..., _T], *args: Any
    ) -> _T:
        try:
            return await asyncio.to_thread(func, *args)
        except BackendError as error:
            error.operation = operation
            raise
        except Exception as exc:
            raise wrap_backend_error(exc, operation=operation) from exc

    def _notify_backend_error(self, error: BackendError) -> None:
        text, _severity = format_error(error)
        operation = error.operation or "operation"
        log_event(
            logger,
            "backend_error",
            level=logging.WARNING,
            operation=operation,
            code=error.code,
            error=str(error),
        )
        self._notifier.notify_error(f"{operation.capitalize()} failed: {text}")

    def _validate_name(self, name: str) -> bool:
        if not name:
            self._notifier.notify_error("Name cannot be empty.")
            return False
        if "/" in name or "\\" in name or name in {".", ".."}:
            self._notifier.notify_error(f"Invalid name: {name}")
            return False
        return True
