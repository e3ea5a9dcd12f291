from __future__ import annotations

from arcnav.core.path_navigation import ROOT, parent_of


class NavigationHistory:
    """Browser-style back/forward history over archive folder paths."""

    HISTORY_LIMIT = 200

    def __init__(self, *, limit: int | None = None) -> None:
        self._limit = max(1, limit if limit is not None else self.HISTORY_LIMIT)
        self._entries: list[str] = []
        self._cursor = -1

    @property
    def entries(self) -> tuple[str, ...]:
        return tuple(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    def reset(self, initial: str = ROOT) -> None:
        self._entries = [initial]
        self._cursor = 0

    def visit(self, path: str) -> None:
        if self._entries and self._entries[self._cursor] == path:
            return
        if self._cursor < len(self._entries) - 1:
            self._entries = self._entries[: self._cursor + 1]
        self._entries.append(path)
        if len(self._entries) > self._limit:
            overflow = len(self._entries) - self._limit
            self._entries = self._entries[overflow:]
        self._cursor = len(self._entries) - 1

    def back(self) -> str | None:
        if not self.can_go_back():
            return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def forward(self) -> str | None:
        if not self.can_go_forward():
            return None
        self._cursor += 1
        return self._entries[self._cursor]

    def can_go_back(self) -> bool:
        return self._cursor > 0

    def can_go_forward(self) -> bool:
        return 0 <= self._cursor < len(self._entries) - 1

    def current(self) -> str:
        if 0 <= self._cursor < len(self._entries):
            return self._entries[self._cursor]
        return ROOT

    @staticmethod
    def parent_of(path: str) -> str:
        return parent_of(path)
