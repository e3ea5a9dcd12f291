from __future__ import annotations

import os
import tarfile
import tempfile
import zipfile
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Iterable, Literal, Mapping, Sequence

import py7zr

from arcnav.core.errors import BackendError, wrap_backend_error
from arcnav.core.path_navigation import folder_prefix
from arcnav.domain.entries import ArchiveEntry, MutationCommand, type_label_for
from arcnav.services.entry_listing import with_implied_directories

ArchiveFormat = Literal["zip", "7z", "tar"]

_TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz")
_DIRECTORY_ATTR = (0o40775 << 16) | 0x10


def format_from_path(path: Path) -> ArchiveFormat:
    name = path.name.lower()
    if name.endswith(".zip"):
        return "zip"
    if name.endswith(".7z"):
        return "7z"
    if name.endswith(_TAR_SUFFIXES):
        return "tar"
    raise BackendError(
        code="archive_unsupported_format",
        message="Unsupported archive type.",
        detail=path.name,
    )


class LocalArchiveBackend:
    """Archive engine for files on the local disk.

    Listing, extraction and creation of empty archives cover zip, 7z and
    tar. Only zip archives can be modified; the archive is rewritten into a
    temporary sibling file which then replaces the original.
    """

    def fetch_entries(self, handle: str) -> list[ArchiveEntry]:
        path = Path(handle)
        try:
            archive_format = format_from_path(path)
            if archive_format == "zip":
                rows = _list_zip(path)
            elif archive_format == "7z":
                rows = _list_7z(path)
            else:
                rows = _list_tar(path)
        except BackendError:
            raise
        except Exception as exc:
            raise wrap_backend_error(
                exc,
                operation="list",
                code="archive_open_failed",
                message="Failed to read archive.",
            ) from exc
        return with_implied_directories(rows)

    def extract_entries(
        self, handle: str, paths: Sequence[str], destination: str
    ) -> int:
        path = Path(handle)
        output_dir = Path(destination)
        try:
            archive_format = format_from_path(path)
            output_dir.mkdir(parents=True, exist_ok=True)
            if archive_format == "zip":
                return _extract_zip(path, paths, output_dir)
            if archive_format == "7z":
                return _extract_7z(path, paths, output_dir)
            return _extract_tar(path, paths, output_dir)
        except BackendError:
            raise
        except Exception as exc:
            raise wrap_backend_error(
                exc,
                operation="extract",
                code="archive_extract_failed",
                message="Failed to extract archive.",
            ) from exc

    def mutate_archive(
        self, handle: str, command: MutationCommand, args: Mapping[str, Any]
    ) -> None:
        path = Path(handle)
        operation = MutationCommand(command).value
        try:
            if format_from_path(path) != "zip":
                raise BackendError(
                    code="archive_read_only",
                    message="Only zip archives can be modified.",
                    detail=path.name,
                    operation=operation,
                )
            handler = _MUTATIONS[MutationCommand(command)]
            handler(path, args)
        except BackendError as error:
            if not error.operation:
                error.operation = operation
            raise
        except Exception as exc:
            raise wrap_backend_error(
                exc,
                operation=operation,
                code="archive_update_failed",
                message="Failed to update archive.",
            ) from exc

    def create_archive(
        self, handle: str, archive_format: ArchiveFormat | None = None
    ) -> str:
        """Write an empty archive at ``handle`` and return its final path.

        A path without a known archive suffix gets the extension of
        ``archive_format``. Existing files are never overwritten.
        """
        path = _creation_target(Path(handle).expanduser(), archive_format)
        if path.exists():
            raise BackendError(
                code="archive_exists",
                message="A file already exists at that path.",
                detail=str(path),
                operation="create",
            )
        if not path.parent.is_dir():
            raise BackendError(
                code="archive_invalid_target",
                message="Destination folder does not exist.",
                detail=str(path.parent),
                operation="create",
            )
        try:
            _CREATORS[format_from_path(path)](path)
        except FileExistsError as exc:
            raise BackendError(
                code="archive_exists",
                message="A file already exists at that path.",
                detail=str(path),
                operation="create",
            ) from exc
        except Exception as exc:
            _cleanup_temp_file(path)
            raise wrap_backend_error(
                exc,
                operation="create",
                code="archive_create_failed",
                message="Failed to create archive.",
            ) from exc
        return str(path)


def default_extract_dir(handle: str) -> Path:
    """Sibling folder named after the archive, e.g. ``/data/demo`` for ``demo.tar.gz``."""
    path = Path(handle)
    name = path.name
    lowered = name.lower()
    for suffix in (".zip", ".7z", *_TAR_SUFFIXES):
        if lowered.endswith(suffix) and len(name) > len(suffix):
            name = name[: -len(suffix)]
            break
    else:
        name = path.stem or name
    return path.with_name(name)


def _creation_target(path: Path, archive_format: str | None) -> Path:
    if archive_format is not None and archive_format not in _CREATE_EXTENSIONS:
        raise BackendError(
            code="archive_unsupported_format",
            message="Unsupported archive type.",
            detail=archive_format,
            operation="create",
        )
    try:
        detected = format_from_path(path)
    except BackendError as error:
        if archive_format is None:
            error.operation = "create"
            raise
        return path.with_name(f"{path.name}{_CREATE_EXTENSIONS[archive_format]}")
    if archive_format is not None and archive_format != detected:
        raise BackendError(
            code="archive_format_mismatch",
            message="File extension does not match the archive type.",
            detail=path.name,
            operation="create",
        )
    return path


def _tar_write_mode(path: Path) -> str:
    name = path.name.lower()
    if name.endswith((".tar.gz", ".tgz")):
        return "x:gz"
    if name.endswith((".tar.bz2", ".tbz2")):
        return "x:bz2"
    if name.endswith((".tar.xz", ".txz")):
        return "x:xz"
    return "x:"


def _create_zip(path: Path) -> None:
    with zipfile.ZipFile(path, "x"):
        pass


def _create_7z(path: Path) -> None:
    with py7zr.SevenZipFile(path, "w"):
        pass


def _create_tar(path: Path) -> None:
    with tarfile.open(path, _tar_write_mode(path)):
        pass


_CREATE_EXTENSIONS = {"zip": ".zip", "7z": ".7z", "tar": ".tar"}

_CREATORS: dict[str, Callable[[Path], None]] = {
    "zip": _create_zip,
    "7z": _create_7z,
    "tar": _create_tar,
}


def _normalize_member_name(name: str) -> str:
    while name.startswith("./"):
        name = name[2:]
    return name


def _member_key(name: str) -> str:
    return _normalize_member_name(name).strip("/")


def _matches(name: str, key: str) -> bool:
    member = _member_key(name)
    return member == key or member.startswith(f"{key}/")


def _select_members(names: Iterable[str], paths: Sequence[str]) -> list[str]:
    keys = [path.strip("/") for path in paths if path.strip("/")]
    if not keys:
        return list(names)
    return [name for name in names if any(_matches(name, key) for key in keys)]


def _zip_timestamp(info: zipfile.ZipInfo) -> datetime | None:
    try:
        return datetime(*info.date_time)
    except ValueError:
        return None


def _list_zip(path: Path) -> list[ArchiveEntry]:
    rows: list[ArchiveEntry] = []
    with zipfile.ZipFile(path, "r") as archive:
        for info in archive.infolist():
            name = _normalize_member_name(info.filename)
            if not name.strip("/"):
                continue
            is_directory = info.is_dir()
            rows.append(
                ArchiveEntry(
                    path=name,
                    is_directory=is_directory,
                    size_bytes=0 if is_directory else info.file_size,
                    modified_at=_zip_timestamp(info),
                    type_label=type_label_for(name, is_directory=is_directory),
                )
            )
    return rows


def _list_7z(path: Path) -> list[ArchiveEntry]:
    rows: list[ArchiveEntry] = []
    with py7zr.SevenZipFile(path, "r") as archive:
        for info in archive.list():
            name = _normalize_member_name(info.filename)
            if not name.strip("/"):
                continue
            is_directory = bool(info.is_directory)
            if is_directory and not name.endswith("/"):
                name = f"{name}/"
            rows.append(
                ArchiveEntry(
                    path=name,
                    is_directory=is_directory,
                    size_bytes=0 if is_directory else int(info.uncompressed or 0),
                    modified_at=info.creationtime,
                    type_label=type_label_for(name, is_directory=is_directory),
                )
            )
    return rows


def _list_tar(path: Path) -> list[ArchiveEntry]:
    rows: list[ArchiveEntry] = []
    with tarfile.open(path, "r:*") as archive:
        for member in archive.getmembers():
            name = _normalize_member_name(member.name)
            if not name.strip("/"):
                continue
            is_directory = member.isdir()
            if is_directory and not name.endswith("/"):
                name = f"{name}/"
            rows.append(
                ArchiveEntry(
                    path=name,
                    is_directory=is_directory,
                    size_bytes=0 if is_directory else member.size,
                    modified_at=datetime.fromtimestamp(member.mtime),
                    type_label=type_label_for(name, is_directory=is_directory),
                )
            )
    return rows


def _extract_zip(path: Path, paths: Sequence[str], output_dir: Path) -> int:
    with zipfile.ZipFile(path, "r") as archive:
        names = _select_members(archive.namelist(), paths)
        _validate_member_names(names)
        for name in names:
            archive.extract(name, output_dir)
        return len(names)


def _extract_7z(path: Path, paths: Sequence[str], output_dir: Path) -> int:
    with py7zr.SevenZipFile(path, "r") as archive:
        all_names = archive.getnames()
        names = _select_members(all_names, paths)
        _validate_member_names(names)
        if len(names) == len(all_names):
            archive.extractall(path=output_dir)
        else:
            archive.extract(path=output_dir, targets=names)
        return len(names)


def _extract_tar(path: Path, paths: Sequence[str], output_dir: Path) -> int:
    with tarfile.open(path, "r:*") as archive:
        selected = set(_select_members(archive.getnames(), paths))
        members = [member for member in archive.getmembers() if member.name in selected]
        _validate_member_names([member.name for member in members])
        if hasattr(tarfile, "data_filter"):
            archive.extractall(output_dir, members=members, filter="data")
        else:
            archive.extractall(output_dir, members=members)
        return len(members)


def _validate_member_names(names: Sequence[str]) -> None:
    for name in names:
        if not _is_safe_member_name(name):
            raise BackendError(
                code="archive_unsafe_member",
                message="Archive contains unsafe paths.",
                detail=name,
            )


def _is_safe_member_name(name: str) -> bool:
    path = PurePosixPath(name)
    if path.is_absolute():
        return False
    return ".." not in path.parts


def _validate_entry_name(name: str) -> str:
    text = str(name).strip()
    if not text or "/" in text or "\\" in text or text in {".", ".."}:
        raise BackendError(
            code="archive_invalid_name",
            message="Invalid entry name.",
            detail=text,
        )
    return text


def _join(prefix: str, name: str) -> str:
    return f"{prefix}/{name}" if prefix else name


# -- zip rewriting -----------------------------------------------------------

Remap = Callable[[str], Sequence[str]]
Append = Callable[[zipfile.ZipFile, set[str]], None]


def _temp_output_path(output_path: Path) -> Path:
    handle, temp_name = tempfile.mkstemp(
        prefix=f".{output_path.stem}.",
        suffix=f"{output_path.suffix}.tmp",
        dir=output_path.parent,
    )
    os.close(handle)
    return Path(temp_name)


def _cleanup_temp_file(path: Path) -> None:
    try:
        if path.exists():
            path.unlink()
    except OSError:
        pass


def _clone_info(info: zipfile.ZipInfo, name: str) -> zipfile.ZipInfo:
    clone = zipfile.ZipInfo(name, date_time=info.date_time)
    clone.compress_type = info.compress_type
    clone.external_attr = info.external_attr
    clone.comment = info.comment
    return clone


def _directory_info(name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(f"{name.rstrip('/')}/")
    info.external_attr = _DIRECTORY_ATTR
    return info


def _rewrite_zip(archive_path: Path, remap: Remap, append: Append | None = None) -> None:
    """Copy every member through ``remap`` into a fresh archive.

    ``remap`` returns the names a member is written under; an empty result
    drops it. ``append`` may write extra members afterwards.
    """
    temp_path = _temp_output_path(archive_path)
    try:
        with zipfile.ZipFile(archive_path, "r") as source, zipfile.ZipFile(
            temp_path, "w", compression=zipfile.ZIP_DEFLATED
        ) as target:
            target.comment = source.comment
            written: set[str] = set()
            for info in source.infolist():
                targets = remap(info.filename)
                if not targets:
                    continue
                data = b"" if info.is_dir() else source.read(info)
                for name in targets:
                    if name in written:
                        continue
                    written.add(name)
                    target.writestr(_clone_info(info, name), data)
            if append is not None:
                append(target, written)
        temp_path.replace(archive_path)
    except Exception:
        _cleanup_temp_file(temp_path)
        raise


def _zip_keys(archive_path: Path) -> set[str]:
    with zipfile.ZipFile(archive_path, "r") as archive:
        names = archive.namelist()
    keys: set[str] = set()
    for name in names:
        key = _member_key(name)
        while key:
            keys.add(key)
            key = key.rpartition("/")[0]
    return keys


def _require_existing(keys: set[str], key: str) -> None:
    if key not in keys:
        raise BackendError(
            code="archive_entry_not_found",
            message="Entry not found in archive.",
            detail=key,
        )


def _require_free(keys: set[str], key: str) -> None:
    if key in keys:
        raise BackendError(
            code="archive_entry_exists",
            message="An entry with that name already exists.",
            detail=key,
        )


def _replace_prefix(name: str, old: str, new: str) -> str:
    normalized = _normalize_member_name(name)
    return new + normalized[len(old) :]


def _delete(archive_path: Path, args: Mapping[str, Any]) -> None:
    keys = [str(path).strip("/") for path in args.get("paths", ())]
    keys = [key for key in keys if key]
    if not keys:
        raise BackendError(code="archive_nothing_selected", message="Nothing to delete.")
    existing = _zip_keys(archive_path)
    for key in keys:
        _require_existing(existing, key)

    def remap(name: str) -> Sequence[str]:
        if any(_matches(name, key) for key in keys):
            return ()
        return (name,)

    _rewrite_zip(archive_path, remap)


def _rename(archive_path: Path, args: Mapping[str, Any]) -> None:
    old = str(args["path"]).strip("/")
    new_name = _validate_entry_name(args["new_name"])
    parent = old.rpartition("/")[0]
    new = _join(parent, new_name)
    existing = _zip_keys(archive_path)
    _require_existing(existing, old)
    _require_free(existing, new)

    def remap(name: str) -> Sequence[str]:
        if _matches(name, old):
            return (_replace_prefix(name, old, new),)
        return (name,)

    _rewrite_zip(archive_path, remap)


def _create_folder(archive_path: Path, args: Mapping[str, Any]) -> None:
    name = _validate_entry_name(args["name"])
    key = _join(folder_prefix(str(args.get("parent", ""))), name)
    _require_free(_zip_keys(archive_path), key)

    def append(target: zipfile.ZipFile, written: set[str]) -> None:
        target.writestr(_directory_info(key), b"")

    _rewrite_zip(archive_path, lambda member: (member,), append)


def _add(archive_path: Path, args: Mapping[str, Any]) -> None:
    prefix = folder_prefix(str(args.get("destination", "")))
    additions: dict[str, Path | None] = {}
    for raw in args.get("sources", ()):
        source = Path(raw)
        if not source.exists():
            raise BackendError(
                code="archive_source_missing",
                message="Source item does not exist.",
                detail=str(source),
            )
        base = _join(prefix, source.name)
        if source.is_dir():
            additions[f"{base}/"] = None
            for child in sorted(source.rglob("*")):
                arcname = _join(base, child.relative_to(source).as_posix())
                if child.is_dir():
                    additions[f"{arcname}/"] = None
                else:
                    additions[arcname] = child
        else:
            additions[base] = source
    if not additions:
        raise BackendError(code="archive_nothing_selected", message="Nothing to add.")
    replaced = {name.rstrip("/") for name in additions}

    def remap(name: str) -> Sequence[str]:
        if _member_key(name) in replaced:
            return ()
        return (name,)

    def append(target: zipfile.ZipFile, written: set[str]) -> None:
        for arcname, source in additions.items():
            if source is None:
                target.writestr(_directory_info(arcname), b"")
            else:
                target.write(source, arcname=arcname)

    _rewrite_zip(archive_path, remap, append)


def _paste(archive_path: Path, args: Mapping[str, Any]) -> None:
    prefix = folder_prefix(str(args.get("destination", "")))
    move = bool(args.get("move", False))
    sources = [str(path).strip("/") for path in args.get("sources", ())]
    sources = [source for source in sources if source]
    if not sources:
        raise BackendError(code="paste_nothing", message="Nothing to paste.")

    existing = _zip_keys(archive_path)
    moves: dict[str, str] = {}
    for source in sources:
        _require_existing(existing, source)
        if prefix == source or prefix.startswith(f"{source}/"):
            raise BackendError(
                code="archive_invalid_target",
                message="Cannot paste a folder into itself.",
                detail=source,
            )
        target = _join(prefix, source.rpartition("/")[2])
        if target == source:
            raise BackendError(
                code="archive_invalid_target",
                message="Source and destination are the same.",
                detail=source,
            )
        _require_free(existing, target)
        moves[source] = target

    def remap(name: str) -> Sequence[str]:
        for source, target in moves.items():
            if _matches(name, source):
                copied = _replace_prefix(name, source, target)
                return (copied,) if move else (name, copied)
        return (name,)

    _rewrite_zip(archive_path, remap)


_MUTATIONS: dict[MutationCommand, Callable[[Path, Mapping[str, Any]], None]] = {
    MutationCommand.ADD: _add,
    MutationCommand.DELETE: _delete,
    MutationCommand.RENAME: _rename,
    MutationCommand.PASTE: _paste,
    MutationCommand.CREATE_FOLDER: _create_folder,
}
