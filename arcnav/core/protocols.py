from typing import Any, Mapping, Protocol, Sequence

from arcnav.domain.entries import ArchiveEntry, MutationCommand


class ArchiveBackend(Protocol):
    def fetch_entries(self, handle: str) -> list[ArchiveEntry]: ...

    def mutate_archive(
        self, handle: str, command: MutationCommand, args: Mapping[str, Any]
    ) -> None: ...

    def extract_entries(
        self, handle: str, paths: Sequence[str], destination: str
    ) -> int: ...

    def create_archive(self, handle: str, archive_format: str | None = None) -> str: ...


class Notifier(Protocol):
    def notify_error(self, message: str) -> None: ...
    def notify_info(self, message: str) -> None: ...
    def notify_success(self, message: str) -> None: ...


class DestinationPicker(Protocol):
    async def pick_destination_path(self) -> str | None: ...
