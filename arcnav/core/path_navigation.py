from __future__ import annotations

from dataclasses import dataclass

ROOT = ""


@dataclass(frozen=True, slots=True)
class Breadcrumb:
    label: str
    folder: str


def normalize_folder_path(folder: str | None) -> str:
    """Return the canonical folder form: ``""`` for root, else ``"a/b/"``."""
    if not folder:
        return ROOT
    segments = [segment for segment in folder.split("/") if segment]
    if not segments:
        return ROOT
    return "/".join(segments) + "/"


def folder_prefix(folder: str | None) -> str:
    """Folder path without its leading or trailing slash, used for prefix tests."""
    if not folder:
        return ""
    return folder.strip("/")


def parent_of(path: str) -> str:
    # A leading slash only survives in unnormalized input; top-level folders
    # resolve to root rather than to a separate "/" marker.
    if not path:
        return ROOT
    trimmed = path[:-1] if path.endswith("/") else path
    cut = trimmed.rfind("/")
    if cut < 0:
        return ROOT
    head = trimmed[:cut]
    if not head.strip("/"):
        return ROOT
    return normalize_folder_path(head)


def can_navigate_up(folder: str) -> bool:
    return normalize_folder_path(folder) != ROOT


def build_breadcrumbs(folder: str, archive_name: str) -> tuple[Breadcrumb, ...]:
    crumbs = [Breadcrumb(label=archive_name, folder=ROOT)]
    cumulative = ""
    for segment in folder_prefix(folder).split("/"):
        if not segment:
            continue
        cumulative = f"{cumulative}{segment}/"
        crumbs.append(Breadcrumb(label=segment, folder=cumulative))
    return tuple(crumbs)
