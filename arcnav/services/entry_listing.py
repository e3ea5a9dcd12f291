from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from arcnav.core.path_navigation import folder_prefix
from arcnav.domain.entries import ArchiveEntry, type_label_for


@dataclass(frozen=True)
class ListingStats:
    count: int
    total_size: int


def _relative_path(path: str) -> str:
    relative = path.lstrip("/")
    if relative.endswith("/"):
        relative = relative[:-1]
    return relative


def is_direct_child(entry: ArchiveEntry, prefix: str) -> bool:
    relative = _relative_path(entry.path)
    if not relative:
        return False
    if not prefix:
        return "/" not in relative
    lead = f"{prefix}/"
    if not relative.startswith(lead):
        return False
    remainder = relative[len(lead) :]
    return bool(remainder) and "/" not in remainder


def children(entries: Sequence[ArchiveEntry], folder: str) -> list[ArchiveEntry]:
    prefix = folder_prefix(folder)
    return [entry for entry in entries if is_direct_child(entry, prefix)]


def _sort_key(entry: ArchiveEntry) -> tuple[int, str, str]:
    return (0 if entry.is_directory else 1, entry.path.casefold(), entry.path)


def sort_entries(entries: Iterable[ArchiveEntry]) -> list[ArchiveEntry]:
    return sorted(entries, key=_sort_key)


def display_name(entry: ArchiveEntry, folder: str) -> str:
    name = entry.path
    prefix = folder_prefix(folder)
    if prefix and name.startswith(f"{prefix}/"):
        name = name[len(prefix) + 1 :]
    return name.rstrip("/")


def search_entries(
    entries: Sequence[ArchiveEntry], query: str, folder: str
) -> list[ArchiveEntry]:
    needle = query.strip().casefold()
    if not needle:
        return list(entries)
    return [
        entry for entry in entries if needle in display_name(entry, folder).casefold()
    ]


def listing_stats(entries: Sequence[ArchiveEntry]) -> ListingStats:
    total = sum(entry.size_bytes for entry in entries if not entry.is_directory)
    return ListingStats(count=len(entries), total_size=total)


def with_implied_directories(entries: Iterable[ArchiveEntry]) -> list[ArchiveEntry]:
    """Add a directory entry for every folder that only exists as a path prefix."""
    rows = list(entries)
    known = {_relative_path(entry.path) for entry in rows if entry.is_directory}
    implied: list[ArchiveEntry] = []
    for entry in rows:
        parts = _relative_path(entry.path).split("/")[:-1]
        cumulative = ""
        for part in parts:
            if not part:
                break
            cumulative = f"{cumulative}/{part}" if cumulative else part
            if cumulative in known:
                continue
            known.add(cumulative)
            implied.append(
                ArchiveEntry(
                    path=f"{cumulative}/",
                    is_directory=True,
                    type_label=type_label_for(cumulative, is_directory=True),
                )
            )
    return rows + implied


def format_size(value: int) -> str:
    size = float(value)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if size < 1024.0:
            if unit == "B":
                return f"{int(size)} {unit}"
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"
