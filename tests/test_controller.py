from __future__ import annotations

import asyncio

import pytest

from arcnav.core.config import RuntimeConfig
from arcnav.core.controller import BrowseController
from arcnav.core.errors import BackendError, InvariantViolation
from arcnav.core.path_navigation import Breadcrumb
from arcnav.core.selection import ClickModifiers
from arcnav.core.state import WELCOME_STATUS
from arcnav.domain.entries import MutationCommand
from tests.helpers import FakeBackend, FakePicker, RecordingNotifier, entry

ARCHIVE = "/data/demo.zip"


def visible(controller: BrowseController) -> list[str]:
    return [row.path for row in controller.visible_entries()]


def make_controller(
    config: RuntimeConfig,
    notifier: RecordingNotifier,
    *,
    rows=None,
    picker: FakePicker | None = None,
) -> tuple[BrowseController, FakeBackend]:
    backend = FakeBackend(
        {ARCHIVE: rows if rows is not None else [entry("x/"), entry("x/y.txt", 10), entry("z.txt", 5)]}
    )
    controller = BrowseController(
        backend=backend, notifier=notifier, picker=picker, config=config
    )
    return controller, backend


def opened(config, notifier, **kwargs) -> tuple[BrowseController, FakeBackend]:
    controller, backend = make_controller(config, notifier, **kwargs)
    assert asyncio.run(controller.open_archive(ARCHIVE))
    return controller, backend


def test_initial_state_is_empty(config, notifier):
    controller, _backend = make_controller(config, notifier)
    state = controller.state
    assert not state.has_archive
    assert state.status == WELCOME_STATUS
    assert state.visible_entries == ()
    assert controller.current_folder() == ""
    assert not controller.can_go_back()


def test_open_renders_root_listing(config, notifier):
    controller, _backend = opened(config, notifier)
    state = controller.state
    assert visible(controller) == ["x/", "z.txt"]
    assert state.archive_name == "demo.zip"
    assert state.breadcrumbs == (Breadcrumb("demo.zip", ""),)
    assert state.item_count == 2
    assert state.total_size == 5
    assert state.status == "Ready"
    assert not state.busy
    assert notifier.successes == ["Opened archive: demo.zip"]


def test_scenario_enter_folder_and_go_up(config, notifier):
    controller, _backend = opened(config, notifier)
    root_view = controller.state.visible_entries

    assert controller.navigate_to("x/")
    assert visible(controller) == ["x/y.txt"]
    assert controller.state.can_go_up
    assert controller.state.breadcrumbs[-1] == Breadcrumb("x", "x/")

    assert controller.go_up()
    assert controller.current_folder() == ""
    assert controller.state.visible_entries == root_view
    assert not controller.go_up()


def test_back_and_forward(config, notifier):
    controller, _backend = opened(config, notifier)
    controller.navigate_to("x/")
    assert controller.go_back()
    assert controller.current_folder() == ""
    assert controller.can_go_forward()
    assert controller.go_forward()
    assert controller.current_folder() == "x/"
    assert not controller.go_forward()


def test_open_resets_history(config, notifier):
    controller, _backend = opened(config, notifier)
    controller.navigate_to("x/")
    assert asyncio.run(controller.open_archive(ARCHIVE))
    assert controller.history.entries == ("",)
    assert not controller.can_go_back()


def test_status_passes_through_loading(config, notifier):
    controller, _backend = make_controller(config, notifier)
    statuses: list[str] = []
    controller.store.subscribe(lambda state: statuses.append(state.status))
    asyncio.run(controller.open_archive(ARCHIVE))
    assert statuses[0] == WELCOME_STATUS
    assert "Loading..." in statuses
    assert statuses[-1] == "Ready"
    assert WELCOME_STATUS not in statuses[1:]


def test_open_failure_resets_to_empty(config, notifier):
    controller, backend = opened(config, notifier)
    controller.navigate_to("x/")
    backend.fail_fetch = OSError("disk gone")

    assert not asyncio.run(controller.open_archive(ARCHIVE))
    state = controller.state
    assert not state.has_archive
    assert state.visible_entries == ()
    assert state.status == WELCOME_STATUS
    assert not state.busy
    assert controller.current_folder() == ""
    assert notifier.errors[0].startswith("Open failed:")
    assert "disk gone" in notifier.errors[0]


def test_refresh_failure_keeps_previous_listing(config, notifier):
    controller, backend = opened(config, notifier)
    controller.navigate_to("x/")
    backend.fail_fetch = BackendError(code="archive_open_failed", message="Corrupt.")

    assert not asyncio.run(controller.refresh())
    assert visible(controller) == ["x/y.txt"]
    assert controller.current_folder() == "x/"
    assert not controller.gate.busy
    assert notifier.errors == ["Refresh failed: [archive_open_failed] Corrupt."]


def test_refresh_keeps_cursor_and_clears_selection(config, notifier):
    controller, backend = opened(config, notifier)
    controller.navigate_to("x/")
    controller.handle_item_click("x/y.txt", 0)
    backend.archives[ARCHIVE].append(entry("x/w.txt"))

    assert asyncio.run(controller.refresh())
    assert controller.current_folder() == "x/"
    assert visible(controller) == ["x/w.txt", "x/y.txt"]
    assert controller.selected_paths() == ()
    assert controller.can_go_back()


def test_refresh_without_archive_is_noop(config, notifier):
    controller, _backend = make_controller(config, notifier)
    assert not asyncio.run(controller.refresh())
    assert notifier.errors == []


def test_navigation_rejected_while_busy(config, notifier):
    controller, _backend = opened(config, notifier)
    controller.navigate_to("x/")
    assert controller.can_go_back()

    assert controller.gate.try_enter()
    cursor = controller.history.cursor
    assert not controller.go_back()
    assert not controller.navigate_to("z/")
    assert not controller.go_up()
    assert not controller.handle_item_double_click("x/y.txt")
    assert controller.history.cursor == cursor
    controller.gate.leave()

    assert controller.go_back()


def test_commands_rejected_while_busy(config, notifier):
    controller, backend = opened(config, notifier)
    controller.handle_item_click("z.txt", 1)
    controller.gate.try_enter()
    assert not asyncio.run(controller.delete_selected())
    assert not asyncio.run(controller.open_archive(ARCHIVE))
    assert not controller.copy_selection()
    controller.gate.leave()
    assert backend.mutations == []
    assert notifier.errors == []
    assert notifier.infos == []


def test_navigation_attempt_during_open_is_ignored(config, notifier):
    controller, backend = make_controller(config, notifier)
    attempts: list[bool] = []
    backend.on_fetch = lambda: attempts.append(controller.navigate_to("x/"))

    assert asyncio.run(controller.open_archive(ARCHIVE))
    assert attempts == [False]
    assert controller.current_folder() == ""


def test_click_modifiers_drive_selection(config, notifier):
    rows = [entry(f"f{i}.txt") for i in range(6)]
    controller, _backend = opened(config, notifier, rows=rows)
    controller.handle_item_click("f1.txt", 1)
    controller.handle_item_click("f4.txt", 4, ClickModifiers(shift=True))
    controller.handle_item_click("f2.txt", 2, ClickModifiers(shift=True))
    assert controller.selected_paths() == ("f1.txt", "f2.txt")

    controller.handle_item_click("f5.txt", 5, ClickModifiers(ctrl=True))
    assert controller.selected_paths() == ("f1.txt", "f2.txt", "f5.txt")
    controller.handle_item_click("f4.txt", 4, ClickModifiers(shift=True, meta=True))
    assert controller.selected_paths() == ("f1.txt", "f2.txt", "f4.txt", "f5.txt")
    assert controller.state.selected_paths == frozenset(controller.selected_paths())

    controller.handle_empty_click()
    assert controller.selected_paths() == ()
    assert controller.state.selected_paths == frozenset()


def test_navigation_clears_selection(config, notifier):
    controller, _backend = opened(config, notifier)
    controller.handle_item_click("z.txt", 1)
    controller.navigate_to("x/")
    controller.go_back()
    assert controller.selected_paths() == ()


def test_strict_invariants_raise_on_stale_index(notifier):
    strict = RuntimeConfig(strict_invariants=True)
    controller, _backend = opened(strict, notifier)
    with pytest.raises(InvariantViolation):
        controller.handle_item_click("x/", 5)


def test_stale_index_ignored_by_default(config, notifier):
    controller, _backend = opened(config, notifier)
    controller.handle_item_click("x/", 5)
    assert controller.selected_paths() == ()


def test_double_click_directory_navigates(config, notifier):
    controller, _backend = opened(config, notifier)
    assert controller.handle_item_double_click("x/")
    assert controller.current_folder() == "x/"


def test_double_click_file_reports_preview_unavailable(config, notifier):
    controller, _backend = opened(config, notifier)
    assert not controller.handle_item_double_click("z.txt")
    assert controller.current_folder() == ""
    assert notifier.infos == ["Preview is not available for z.txt."]


def test_identical_render_notifies_nobody(config, notifier):
    controller, _backend = opened(config, notifier)
    calls: list[object] = []
    controller.store.subscribe(calls.append)
    controller.render()
    controller.render()
    assert len(calls) == 1


def test_search_filters_current_folder(config, notifier):
    controller, _backend = opened(config, notifier)
    assert controller.search("Z")
    assert visible(controller) == ["z.txt"]
    assert controller.state.status == "Found 1 match(es)"

    assert controller.search("nothing")
    assert visible(controller) == []
    assert notifier.infos == ['No entries match "nothing".']

    assert controller.clear_search()
    assert visible(controller) == ["x/", "z.txt"]
    assert controller.state.status == "Ready"
    assert not controller.clear_search()


def test_navigation_clears_search(config, notifier):
    controller, _backend = opened(config, notifier)
    controller.search("z")
    controller.navigate_to("x/")
    assert controller.state.search_query == ""
    assert visible(controller) == ["x/y.txt"]


def test_search_without_archive_reports_error(config, notifier):
    controller, _backend = make_controller(config, notifier)
    assert not controller.search("a")
    assert notifier.errors == ["Open an archive before searching."]


def test_create_folder_refetches_and_renders(config, notifier):
    controller, backend = opened(config, notifier)
    assert asyncio.run(controller.create_folder("  new "))
    assert backend.mutations == [
        (ARCHIVE, MutationCommand.CREATE_FOLDER, {"parent": "", "name": "new"})
    ]
    assert visible(controller) == ["new/", "x/", "z.txt"]
    assert notifier.successes[-1] == "Created folder new."


@pytest.mark.parametrize("name", ["", "   ", "a/b", ".."])
def test_invalid_names_never_reach_backend(config, notifier, name):
    controller, backend = opened(config, notifier)
    assert not asyncio.run(controller.create_folder(name))
    assert not asyncio.run(controller.rename_entry("z.txt", name))
    assert backend.mutations == []
    assert len(notifier.errors) == 2


def test_rename_passes_path_and_name(config, notifier):
    controller, backend = opened(config, notifier)
    assert asyncio.run(controller.rename_entry("z.txt", "renamed.txt"))
    assert backend.mutations[0][1:] == (
        MutationCommand.RENAME,
        {"path": "z.txt", "new_name": "renamed.txt"},
    )


def test_rename_to_same_name_is_noop(config, notifier):
    controller, backend = opened(config, notifier)
    assert not asyncio.run(controller.rename_entry("z.txt", "z.txt"))
    assert backend.mutations == []


def test_delete_requires_selection(config, notifier):
    controller, backend = opened(config, notifier)
    assert not asyncio.run(controller.delete_selected())
    assert notifier.infos == ["Select entries to delete first."]
    assert backend.mutations == []


def test_delete_selected_entries(config, notifier):
    controller, backend = opened(config, notifier)
    controller.handle_item_click("z.txt", 1)
    assert asyncio.run(controller.delete_selected())
    assert visible(controller) == ["x/"]
    assert controller.selected_paths() == ()
    assert notifier.successes[-1] == "Deleted 1 item(s)."


def test_mutation_failure_is_reported(config, notifier):
    controller, backend = opened(config, notifier)
    controller.handle_item_click("z.txt", 1)
    backend.fail_mutation = RuntimeError("locked")
    assert not asyncio.run(controller.delete_selected())
    assert visible(controller) == ["x/", "z.txt"]
    assert notifier.errors[0].startswith("Delete failed:")
    assert not controller.gate.busy


def test_cut_and_paste_moves_into_current_folder(config, notifier):
    controller, backend = opened(config, notifier)
    controller.handle_item_click("z.txt", 1)
    assert controller.cut_selection()
    assert controller.state.clipboard_count == 1
    assert controller.state.clipboard_mode == "cut"

    controller.navigate_to("x/")
    assert asyncio.run(controller.paste())
    assert backend.mutations[-1][1:] == (
        MutationCommand.PASTE,
        {"sources": ["z.txt"], "destination": "x/", "move": True},
    )
    assert controller.state.clipboard_count == 0


def test_copy_keeps_clipboard_after_paste(config, notifier):
    controller, backend = opened(config, notifier)
    controller.handle_item_click("z.txt", 1)
    controller.copy_selection()
    controller.navigate_to("x/")
    assert asyncio.run(controller.paste())
    assert backend.mutations[-1][2]["move"] is False
    assert controller.state.clipboard_count == 1


def test_paste_with_empty_clipboard(config, notifier):
    controller, backend = opened(config, notifier)
    assert not controller.copy_selection()
    assert not asyncio.run(controller.paste())
    assert notifier.infos == ["Select entries to copy first.", "Nothing to paste."]
    assert backend.mutations == []


def test_add_files_targets_current_folder(config, notifier):
    controller, backend = opened(config, notifier)
    controller.navigate_to("x/")
    assert asyncio.run(controller.add_files(["/tmp/a.txt", ""]))
    assert backend.mutations[-1][1:] == (
        MutationCommand.ADD,
        {"sources": ["/tmp/a.txt"], "destination": "x/"},
    )
    assert not asyncio.run(controller.add_files([]))


def test_extract_selection_to_picked_destination(config, notifier):
    picker = FakePicker("/tmp/out")
    controller, backend = opened(config, notifier, picker=picker)
    controller.handle_item_click("z.txt", 1)
    assert asyncio.run(controller.extract())
    assert backend.extractions == [(ARCHIVE, ["z.txt"], "/tmp/out")]
    assert notifier.successes[-1] == "Extracted 1 item(s) to /tmp/out."
    assert controller.selected_paths() == ("z.txt",)


def test_extract_everything_without_selection(config, notifier):
    controller, backend = opened(config, notifier, picker=FakePicker("/tmp/out"))
    assert asyncio.run(controller.extract())
    assert backend.extractions == [(ARCHIVE, [], "/tmp/out")]


def test_extract_explicit_paths(config, notifier):
    controller, backend = opened(config, notifier, picker=FakePicker("/tmp/out"))
    assert asyncio.run(controller.extract(["x/"]))
    assert backend.extractions[0][1] == ["x/"]


def test_cancelled_pick_is_information(config, notifier):
    picker = FakePicker(None)
    controller, backend = opened(config, notifier, picker=picker)
    assert not asyncio.run(controller.extract())
    assert picker.calls == 1
    assert notifier.infos == ["Extraction cancelled."]
    assert backend.extractions == []


def test_extract_without_archive(config, notifier):
    controller, _backend = make_controller(config, notifier, picker=FakePicker("/tmp"))
    assert not asyncio.run(controller.extract())
    assert notifier.errors == ["Open an archive before extracting."]


def test_reset_to_empty(config, notifier):
    controller, _backend = opened(config, notifier)
    controller.navigate_to("x/")
    assert controller.reset_to_empty()
    assert not controller.state.has_archive
    assert controller.current_folder() == ""
    assert controller.visible_entries() == ()


def test_history_limit_comes_from_config(notifier):
    controller, _backend = opened(RuntimeConfig(history_limit=2), notifier)
    controller.navigate_to("x/")
    controller.navigate_to("")
    controller.navigate_to("x/")
    assert controller.history.entries == ("", "x/")


def test_extract_skipped_when_busy_after_pick(config, notifier):
    picker = FakePicker("/tmp/out")
    controller, backend = opened(config, notifier, picker=picker)
    picker.on_pick = controller.gate.try_enter
    assert not asyncio.run(controller.extract())
    controller.gate.leave()
    assert backend.extractions == []
    assert notifier.infos == ["Another operation is in progress; nothing was extracted."]


def test_extract_skipped_when_archive_changed_during_pick(config, notifier):
    picker = FakePicker("/tmp/out")
    controller, backend = opened(config, notifier, picker=picker)
    picker.on_pick = controller.reset_to_empty
    assert not asyncio.run(controller.extract())
    assert backend.extractions == []
    assert notifier.infos == ["The archive changed; nothing was extracted."]


def test_create_archive_opens_empty_archive(config, notifier):
    backend = FakeBackend()
    controller = BrowseController(backend=backend, notifier=notifier, config=config)
    assert asyncio.run(controller.create_archive("/data/new.zip", "zip"))
    state = controller.state
    assert backend.created == [("/data/new.zip", "zip")]
    assert state.has_archive
    assert state.archive_name == "new.zip"
    assert state.visible_entries == ()
    assert state.status == "Ready"
    assert not state.busy
    assert controller.archive_handle == "/data/new.zip"
    assert notifier.successes == ["Created archive: new.zip"]


def test_create_archive_replaces_open_session(config, notifier):
    controller, backend = opened(config, notifier)
    controller.navigate_to("x/")
    controller.handle_item_click("x/y.txt", 0)
    controller.copy_selection()
    assert asyncio.run(controller.create_archive("/data/fresh.7z"))
    assert backend.created == [("/data/fresh.7z", None)]
    assert controller.current_folder() == ""
    assert controller.history.entries == ("",)
    assert controller.state.clipboard_count == 0


def test_create_archive_failure_returns_home(config, notifier):
    controller, backend = opened(config, notifier)
    backend.fail_create = BackendError(
        code="archive_exists", message="A file already exists at that path."
    )
    assert not asyncio.run(controller.create_archive(ARCHIVE))
    state = controller.state
    assert not state.has_archive
    assert state.status == WELCOME_STATUS
    assert not state.busy
    assert notifier.errors[-1].startswith("Create failed:")
    assert "archive_exists" in notifier.errors[-1]


def test_create_archive_rejects_blank_path_and_busy_gate(config, notifier):
    controller, backend = opened(config, notifier)
    assert not asyncio.run(controller.create_archive("   "))
    assert notifier.errors == ["Archive path cannot be empty."]
    controller.gate.try_enter()
    assert not asyncio.run(controller.create_archive("/data/other.zip"))
    controller.gate.leave()
    assert backend.created == []
    assert controller.archive_handle == ARCHIVE
