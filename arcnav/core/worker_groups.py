from __future__ import annotations


class WorkerGroup:
    ADD_FILES = "add_files"
    CREATE_ARCHIVE = "create_archive"
    CREATE_FOLDER = "create_folder"
    DELETE_ENTRIES = "delete_entries"
    EXTRACT_ARCHIVE = "extract_archive"
    OPEN_ARCHIVE = "open_archive"
    PASTE_ENTRIES = "paste_entries"
    REFRESH_LISTING = "refresh_listing"
    RENAME_ENTRY = "rename_entry"
