from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class ArchiveEntry:
    path: str
    is_directory: bool
    size_bytes: int = 0
    modified_at: datetime | None = None
    type_label: str = ""

    @property
    def name(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]


class MutationCommand(str, Enum):
    ADD = "add"
    DELETE = "delete"
    RENAME = "rename"
    PASTE = "paste"
    CREATE_FOLDER = "create_folder"


def type_label_for(path: str, *, is_directory: bool) -> str:
    if is_directory:
        return "Folder"
    name = path.rstrip("/").rsplit("/", 1)[-1]
    _stem, dot, suffix = name.rpartition(".")
    if not dot or not _stem or not suffix:
        return "File"
    return f"{suffix.upper()} File"
