from __future__ import annotations

from typing import Callable


class LoadingGate:
    """Busy flag that serializes asynchronous data operations.

    There is no queue: ``try_enter`` on a busy gate simply returns ``False``.
    """

    def __init__(self, on_change: Callable[[bool], None] | None = None) -> None:
        self._busy = False
        self._on_change = on_change

    @property
    def busy(self) -> bool:
        return self._busy

    def try_enter(self) -> bool:
        if self._busy:
            return False
        self._set(True)
        return True

    def leave(self) -> None:
        self._set(False)

    def _set(self, value: bool) -> None:
        if value == self._busy:
            return
        self._busy = value
        if self._on_change is not None:
            self._on_change(value)
