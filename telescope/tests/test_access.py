"""Tests for access scope management."""

import json
import threading
from pathlib import Path

import pytest

from telescope.core.access import (
    AccessScopeManager, JsonFileGrantStore, MemoryGrantStore, Root,
    create_token, resolve_token
)
from telescope.core.errors import UserCancelled

KEY = "homeFolderBookmarks"


class FakePicker:
    """Returns queued selections; None simulates dismissal."""

    def __init__(self, *selections):
        self.selections = list(selections)
        self.calls = []

    def pick(self, message, prompt):
        self.calls.append((message, prompt))
        choice = self.selections.pop(0)
        if choice is None:
            raise UserCancelled("dismissed")
        return choice


@pytest.fixture
def folders(tmp_path):
    """Three sibling directories."""
    paths = []
    for name in ("Downloads", "Documents", "Desktop"):
        p = tmp_path / name
        p.mkdir()
        paths.append(p)
    return paths


def make_manager(picker=None, store=None):
    return AccessScopeManager(store or MemoryGrantStore(), picker or FakePicker(), key=KEY)


class TestTokens:
    """Test token encoding and resolution."""

    def test_round_trip(self, folders):
        token = create_token(folders[0])
        path, stale = resolve_token(token)
        assert path == folders[0].resolve()
        assert not stale

    def test_identity_change_is_stale(self, folders):
        record = json.loads(create_token(folders[0]))
        record["ino"] = -1
        path, stale = resolve_token(json.dumps(record).encode())
        assert path == folders[0].resolve()
        assert stale

    def test_missing_directory_unresolvable(self, folders):
        token = create_token(folders[0])
        folders[0].rmdir()
        with pytest.raises(OSError):
            resolve_token(token)

    def test_renamed_directory_found_by_identity(self, tmp_path):
        projects = tmp_path / "Projects"
        projects.mkdir()
        token = create_token(projects)
        renamed = projects.rename(tmp_path / "Projects-2025")

        path, stale = resolve_token(token)
        assert path.resolve() == renamed.resolve()
        assert stale

    def test_garbage_token_unresolvable(self):
        with pytest.raises(ValueError):
            resolve_token(b"\x00not-a-token")

    def test_file_is_not_grantable(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("x")
        with pytest.raises(NotADirectoryError):
            create_token(f)


class TestRoot:
    """Test the live handle lifecycle."""

    def test_start_and_stop(self, folders):
        root = Root(folders[0])
        assert root.start_access()
        assert root.is_accessing
        root.stop_access()
        assert not root.is_accessing

    def test_start_fails_for_missing_dir(self, tmp_path):
        root = Root(tmp_path / "gone")
        assert not root.start_access()
        assert not root.is_accessing


class TestAccessScopeManager:
    """Test grant lifecycle operations."""

    def test_request_then_resolve_round_trip(self, folders):
        """Test N picked folders come back as N live roots."""
        manager = make_manager(FakePicker(folders))

        granted = manager.request_new_grant()
        assert [r.path for r in granted] == [f.resolve() for f in folders]
        assert all(r.is_accessing for r in granted)

        manager.release_all()
        assert not any(r.is_accessing for r in granted)

        resolved = manager.resolve_granted_roots()
        assert [r.path for r in resolved] == [f.resolve() for f in folders]
        assert all(r.is_accessing for r in resolved)
        manager.close()

    def test_request_replaces_existing_grant(self, folders):
        manager = make_manager(FakePicker(folders[:2], [folders[2]]))
        manager.request_new_grant()
        manager.request_new_grant()
        assert manager.granted_folder_names() == ["Desktop"]
        manager.close()

    def test_request_cancelled(self):
        manager = make_manager(FakePicker(None))
        with pytest.raises(UserCancelled):
            manager.request_new_grant()

    def test_empty_selection_cancels(self):
        manager = make_manager(FakePicker([]))
        with pytest.raises(UserCancelled):
            manager.request_new_grant()

    def test_add_deduplicates(self, folders):
        store = MemoryGrantStore()
        manager = make_manager(FakePicker([folders[0]], [folders[0], folders[1], folders[1]]), store)
        manager.request_new_grant()
        roots = manager.add_to_grant()

        assert [r.name for r in roots] == ["Downloads", "Documents"]
        assert len(store.load(KEY)) == 2
        manager.close()

    def test_stale_token_refreshed_on_resolve(self, folders):
        store = MemoryGrantStore()
        record = json.loads(create_token(folders[0]))
        record["ino"] = -1
        stale_token = json.dumps(record).encode()
        store.save(KEY, [stale_token])

        manager = make_manager(store=store)
        roots = manager.resolve_granted_roots()

        assert [r.name for r in roots] == ["Downloads"]
        assert store.load(KEY) == [create_token(folders[0])]
        manager.close()

    def test_renamed_folder_followed_and_token_refreshed(self, tmp_path):
        """Test a grant survives its folder being renamed."""
        projects = tmp_path / "Projects"
        projects.mkdir()
        store = MemoryGrantStore()
        store.save(KEY, [create_token(projects)])
        renamed = projects.rename(tmp_path / "Projects-2025")

        manager = make_manager(store=store)
        roots = manager.resolve_granted_roots()

        assert [r.path.resolve() for r in roots] == [renamed.resolve()]
        assert roots[0].is_accessing
        assert store.load(KEY) == [create_token(renamed)]
        manager.close()

    def test_unresolvable_tokens_dropped_silently(self, folders):
        store = MemoryGrantStore()
        store.save(KEY, [create_token(folders[0]), create_token(folders[1]), b"junk"])
        folders[1].rmdir()

        manager = make_manager(store=store)
        roots = manager.resolve_granted_roots()

        assert [r.name for r in roots] == ["Downloads"]
        assert len(store.load(KEY)) == 3
        manager.close()

    def test_revoke_by_name(self, folders):
        store = MemoryGrantStore()
        store.save(KEY, [create_token(f) for f in folders])
        manager = make_manager(store=store)

        manager.revoke("Documents")

        assert [r.name for r in manager.live_roots] == ["Downloads", "Desktop"]
        assert len(store.load(KEY)) == 2
        manager.close()

    def test_revoke_unknown_name_is_noop(self, folders):
        store = MemoryGrantStore()
        store.save(KEY, [create_token(f) for f in folders])
        manager = make_manager(store=store)

        manager.revoke("Music")

        assert len(store.load(KEY)) == 3
        assert manager.live_roots == []

    def test_revoke_all(self, folders):
        store = MemoryGrantStore()
        manager = make_manager(FakePicker(folders), store)
        roots = manager.request_new_grant()

        manager.revoke_all()

        assert store.load(KEY) == []
        assert manager.live_roots == []
        assert not any(r.is_accessing for r in roots)

    def test_resolve_or_request_uses_existing(self, folders):
        store = MemoryGrantStore()
        store.save(KEY, [create_token(folders[0])])
        picker = FakePicker()
        manager = make_manager(picker, store)

        roots = manager.resolve_or_request()

        assert [r.name for r in roots] == ["Downloads"]
        assert picker.calls == []
        manager.close()

    def test_resolve_or_request_prompts_when_empty(self, folders):
        picker = FakePicker([folders[2]])
        manager = make_manager(picker)

        roots = manager.resolve_or_request()

        assert [r.name for r in roots] == ["Desktop"]
        assert picker.calls[0][1] == "Grant Access"
        manager.close()

    def test_picker_requires_ui_thread(self, folders):
        manager = make_manager(FakePicker(folders))
        errors = []

        def worker():
            try:
                manager.request_new_grant()
            except RuntimeError as e:
                errors.append(e)

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        assert len(errors) == 1


class TestJsonFileGrantStore:
    """Test the file-backed blob store."""

    def test_save_load_delete(self, tmp_path):
        store = JsonFileGrantStore(tmp_path / "cfg" / "grants.json")
        assert store.load(KEY) == []

        store.save(KEY, [b"\x00\x01", b"token"])
        assert JsonFileGrantStore(store.path).load(KEY) == [b"\x00\x01", b"token"]

        store.delete(KEY)
        assert store.load(KEY) == []

    def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "grants.json"
        path.write_text("{not json")
        assert JsonFileGrantStore(path).load(KEY) == []

    def test_non_utf8_file_reads_empty(self, tmp_path):
        path = tmp_path / "grants.json"
        path.write_bytes(b"\xff\xfe\x00bad")
        assert JsonFileGrantStore(path).load(KEY) == []

    def test_non_list_entry_ignored(self, tmp_path):
        path = tmp_path / "grants.json"
        path.write_text(json.dumps({KEY: "notalist"}))
        assert JsonFileGrantStore(path).load(KEY) == []

    def test_non_string_blobs_skipped(self, tmp_path):
        path = tmp_path / "grants.json"
        path.write_text(json.dumps({KEY: [42, None, "dG9rZW4="]}))
        assert JsonFileGrantStore(path).load(KEY) == [b"token"]
