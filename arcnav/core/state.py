from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable

from arcnav.core.path_navigation import Breadcrumb
from arcnav.domain.entries import ArchiveEntry

WELCOME_STATUS = "No archive open"


@dataclass(frozen=True, slots=True)
class BrowseState:
    archive_handle: str | None = None
    archive_name: str = ""
    current_folder: str = ""
    visible_entries: tuple[ArchiveEntry, ...] = ()
    selected_paths: frozenset[str] = frozenset()
    breadcrumbs: tuple[Breadcrumb, ...] = ()
    can_go_back: bool = False
    can_go_forward: bool = False
    can_go_up: bool = False
    item_count: int = 0
    total_size: int = 0
    search_query: str = ""
    status: str = WELCOME_STATUS
    busy: bool = False
    clipboard_count: int = 0
    clipboard_mode: str | None = None

    @property
    def has_archive(self) -> bool:
        return self.archive_handle is not None


class BrowseStateStore:
    def __init__(self, initial: BrowseState | None = None) -> None:
        self._state = initial or BrowseState()
        self._listeners: set[Callable[[BrowseState], None]] = set()

    @property
    def state(self) -> BrowseState:
        return self._state

    def subscribe(self, callback: Callable[[BrowseState], None]) -> None:
        self._listeners.add(callback)
        callback(self._state)

    def unsubscribe(self, callback: Callable[[BrowseState], None]) -> None:
        self._listeners.discard(callback)

    def publish(self, **changes: object) -> None:
        self._update_state(**changes)

    def set_busy(self, value: bool) -> None:
        self._update_state(busy=value)

    def set_status(self, value: str) -> None:
        self._update_state(status=value)

    def set_selected_paths(self, paths: frozenset[str]) -> None:
        self._update_state(selected_paths=paths)

    def set_clipboard(self, count: int, mode: str | None) -> None:
        self._update_state(clipboard_count=count, clipboard_mode=mode)

    def _update_state(self, **changes: object) -> None:
        new_state = replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        for callback in list(self._listeners):
            callback(self._state)
