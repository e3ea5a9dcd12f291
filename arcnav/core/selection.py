from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from arcnav.core.errors import InvariantViolation
from arcnav.core.logging import get_logger, log_event

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ClickModifiers:
    ctrl: bool = False
    shift: bool = False
    meta: bool = False

    @property
    def toggle(self) -> bool:
        return self.ctrl or self.meta


class SelectionModel:
    """Multi-selection over the list rendered in the current pass.

    Indices are only meaningful for the list passed to :meth:`bind`; binding a
    new list always clears the selection and the anchor.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._strict = strict
        self._rendered: tuple[str, ...] = ()
        self._selected: set[str] = set()
        self._anchor_index = -1

    @property
    def anchor_index(self) -> int:
        return self._anchor_index

    def bind(self, rendered: Sequence[str]) -> None:
        self._rendered = tuple(rendered)
        self.clear()

    def clear(self) -> None:
        self._selected = set()
        self._anchor_index = -1

    def click_simple(self, path: str, index: int) -> None:
        if not self._check_item(path, index):
            return
        self._selected = {path}
        self._anchor_index = index

    def click_toggle(self, path: str, index: int) -> None:
        if not self._check_item(path, index):
            return
        if path in self._selected:
            self._selected.discard(path)
        else:
            self._selected.add(path)
        # The anchor follows the last touched item even when it was deselected.
        self._anchor_index = index

    def click_range(self, index: int, preserve_existing: bool = False) -> None:
        if not self._check_index(index):
            return
        anchor = self._anchor_index
        if anchor < 0 or anchor >= len(self._rendered):
            lo = hi = index
        else:
            lo, hi = min(anchor, index), max(anchor, index)
        if not preserve_existing:
            self._selected = set()
        self._selected.update(self._rendered[lo : hi + 1])

    def click_empty(self) -> None:
        self.clear()

    def is_selected(self, path: str) -> bool:
        return path in self._selected

    def selected_paths(self) -> tuple[str, ...]:
        return tuple(sorted(self._selected))

    def __len__(self) -> int:
        return len(self._selected)

    def _check_index(self, index: int) -> bool:
        if 0 <= index < len(self._rendered):
            return True
        self._violation(
            f"Selection index {index} is outside the rendered list.",
            detail=f"rendered={len(self._rendered)}",
        )
        return False

    def _check_item(self, path: str, index: int) -> bool:
        if not self._check_index(index):
            return False
        if self._rendered[index] == path:
            return True
        self._violation(
            "Selection path does not match the rendered list.",
            detail=f"{path!r} at {index}",
        )
        return False

    def _violation(self, message: str, *, detail: str) -> None:
        if self._strict:
            raise InvariantViolation(
                code="selection_out_of_range",
                message=message,
                detail=detail,
            )
        log_event(logger, "selection_invariant", message=message, detail=detail)
