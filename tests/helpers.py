from __future__ import annotations

from typing import Any, Mapping, Sequence

from arcnav.core.errors import BackendError
from arcnav.domain.entries import ArchiveEntry, MutationCommand, type_label_for


def entry(path: str, size: int = 0) -> ArchiveEntry:
    is_directory = path.endswith("/")
    return ArchiveEntry(
        path=path,
        is_directory=is_directory,
        size_bytes=0 if is_directory else size,
        type_label=type_label_for(path, is_directory=is_directory),
    )


class FakeBackend:
    """In-memory backend; archives are keyed by handle."""

    def __init__(self, archives: Mapping[str, Sequence[ArchiveEntry]] | None = None) -> None:
        self.archives = {key: list(value) for key, value in (archives or {}).items()}
        self.mutations: list[tuple[str, MutationCommand, dict[str, Any]]] = []
        self.extractions: list[tuple[str, list[str], str]] = []
        self.fail_fetch: BaseException | None = None
        self.fail_mutation: BaseException | None = None
        self.fail_create: BaseException | None = None
        self.created: list[tuple[str, str | None]] = []
        self.on_fetch = None

    def fetch_entries(self, handle: str) -> list[ArchiveEntry]:
        if self.on_fetch is not None:
            self.on_fetch()
        if self.fail_fetch is not None:
            raise self.fail_fetch
        if handle not in self.archives:
            raise BackendError(code="archive_open_failed", message="No such archive.")
        return list(self.archives[handle])

    def mutate_archive(
        self, handle: str, command: MutationCommand, args: Mapping[str, Any]
    ) -> None:
        if self.fail_mutation is not None:
            raise self.fail_mutation
        self.mutations.append((handle, command, dict(args)))
        if command is MutationCommand.CREATE_FOLDER:
            self.archives[handle].append(entry(f"{args['parent']}{args['name']}/"))
        elif command is MutationCommand.DELETE:
            doomed = set(args["paths"])
            self.archives[handle] = [
                row for row in self.archives[handle] if row.path not in doomed
            ]

    def extract_entries(self, handle: str, paths: Sequence[str], destination: str) -> int:
        self.extractions.append((handle, list(paths), destination))
        return len(paths) or len(self.archives[handle])

    def create_archive(self, handle: str, archive_format: str | None = None) -> str:
        if self.fail_create is not None:
            raise self.fail_create
        self.created.append((handle, archive_format))
        self.archives[handle] = []
        return handle


class RecordingNotifier:
    def __init__(self) -> None:
        self.errors: list[str] = []
        self.infos: list[str] = []
        self.successes: list[str] = []

    def notify_error(self, message: str) -> None:
        self.errors.append(message)

    def notify_info(self, message: str) -> None:
        self.infos.append(message)

    def notify_success(self, message: str) -> None:
        self.successes.append(message)


class FakePicker:
    def __init__(self, destination: str | None) -> None:
        self.destination = destination
        self.calls = 0
        self.on_pick = None

    async def pick_destination_path(self) -> str | None:
        self.calls += 1
        if self.on_pick is not None:
            self.on_pick()
        return self.destination


