from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Sequence

from platformdirs import user_config_path

from arcnav import __version__
from arcnav.core.app import main as run_app
from arcnav.core.config import get_runtime_config
from arcnav.core.errors import ArcnavError, format_error
from arcnav.core.path_navigation import normalize_folder_path
from arcnav.core.paths import APP_AUTHOR, APP_NAME, SETTINGS_FILENAME
from arcnav.core.settings_store import SettingsStore
from arcnav.services.archive_backend import LocalArchiveBackend
from arcnav.services.entry_listing import (
    children,
    display_name,
    format_size,
    listing_stats,
    sort_entries,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arcnav",
        description="arcnav - browse the contents of archive files",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Print version and exit.",
    )

    parser.add_argument(
        "--no-ui",
        action="store_true",
        help="Parse CLI arguments without launching the UI.",
    )

    parser.add_argument(
        "--open",
        dest="archive",
        metavar="ARCHIVE",
        help="Archive to open on startup.",
    )

    subparsers = parser.add_subparsers(dest="command")

    ls_parser = subparsers.add_parser(
        "ls",
        help="List one folder of an archive without launching the UI.",
    )
    ls_parser.add_argument("target", help="Path to the archive.")
    ls_parser.add_argument(
        "folder",
        nargs="?",
        default="",
        help="Folder inside the archive (default: root).",
    )
    ls_parser.set_defaults(handler=handle_ls)

    config_parser = subparsers.add_parser(
        "print-config",
        help=f"Print resolved runtime config and {SETTINGS_FILENAME} to stdout.",
    )
    config_parser.set_defaults(handler=handle_print_config)

    return parser


def handle_ls(args: argparse.Namespace) -> None:
    backend = LocalArchiveBackend()
    folder = normalize_folder_path(args.folder)
    try:
        entries = backend.fetch_entries(str(Path(args.target).expanduser()))
    except ArcnavError as exc:
        text, _severity = format_error(exc)
        raise SystemExit(text) from exc

    rows = sort_entries(children(entries, folder))
    for entry in rows:
        name = display_name(entry, folder)
        if entry.is_directory:
            print(f"{name}/")
        else:
            print(f"{name}\t{format_size(entry.size_bytes)}")
    stats = listing_stats(rows)
    print(f"{stats.count} item(s), {format_size(stats.total_size)}")


def _redact_secrets(value: object) -> object:
    if isinstance(value, dict):
        redacted: dict[object, object] = {}
        for key, item in value.items():
            key_text = str(key).lower()
            tokens = ("token", "secret", "password", "api_key", "apikey")
            if any(token in key_text for token in tokens):
                redacted[key] = "***"
            else:
                redacted[key] = _redact_secrets(item)
        return redacted
    if isinstance(value, list):
        return [_redact_secrets(item) for item in value]
    return value


def handle_print_config(_args: argparse.Namespace) -> None:
    config_dir = Path(user_config_path(APP_NAME, APP_AUTHOR))
    settings_path = config_dir / SETTINGS_FILENAME
    settings_store = SettingsStore(settings_path)
    payload = {
        "runtime": get_runtime_config().model_dump(),
        "settings_path": str(settings_path),
        "settings": settings_store.load(),
    }
    print(json.dumps(_redact_secrets(payload), indent=2))


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in {"ls", "print-config"}:
        args.handler(args)
        return

    if args.no_ui:
        return

    run_app(args.archive)


if __name__ == "__main__":
    main()
