"""Unit tests for the note store."""

from datetime import UTC, datetime, timedelta

import pytest

from api.services.note_store import STORAGE_KEY, NoteStore, strip_markup


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def store(storage):
    return NoteStore(storage)


class TestNoteCrud:
    """Create, read, update and delete."""

    def test_create_returns_unique_ids(self, store):
        """Rapid repeated creates never reuse an id."""
        ids = [store.create() for _ in range(200)]

        assert len(set(ids)) == 200

    def test_create_defaults(self, store):
        note = store.get(store.create())

        assert note.title == ""
        assert note.content == ""
        assert note.folder_id == "all"
        assert note.tags == []
        assert note.is_favorite is False
        assert note.created_at == note.updated_at

    def test_create_prepends_and_uses_folder(self, store):
        first = store.create()
        second = store.create(folder_id="work", title="Second")

        notes = store.list_notes()
        assert [note.id for note in notes] == [second, first]
        assert store.get(second).folder_id == "work"
        assert store.get(second).title == "Second"

    def test_create_ignores_supplied_id(self, store):
        note_id = store.create(id="chosen", title="x")

        assert note_id != "chosen"
        assert store.get("chosen") is None

    def test_update_changes_field_and_bumps_updated_at(self, store):
        note_id = store.create()
        before = store.get(note_id).updated_at

        updated = store.update(note_id, {"title": "x"})

        assert updated.title == "x"
        assert store.get(note_id).title == "x"
        assert store.get(note_id).updated_at > before

    def test_update_is_strictly_increasing_with_frozen_clock(self, storage):
        clock = FrozenClock()
        store = NoteStore(storage, clock=clock)
        note_id = store.create()
        first = store.get(note_id).updated_at

        store.update(note_id, {"content": "a"})
        second = store.get(note_id).updated_at
        store.update(note_id, {"content": "b"})
        third = store.get(note_id).updated_at

        assert first < second < third

    def test_update_keeps_id_and_created_at(self, store):
        note_id = store.create()
        created = store.get(note_id).created_at

        store.update(note_id, {"id": "other", "created_at": datetime(2000, 1, 1, tzinfo=UTC)})

        note = store.get(note_id)
        assert note.id == note_id
        assert note.created_at == created

    def test_update_unknown_id_is_observable_noop(self, store):
        store.create(title="only")
        before = store.snapshot()

        result = store.update("missing", {"title": "x"})

        assert result is None
        assert store.snapshot() == before

    def test_delete(self, store):
        note_id = store.create()

        assert store.delete(note_id) is True
        assert store.get(note_id) is None
        assert store.delete(note_id) is False


class TestNoteQueries:
    """Folder filtering, search and tags."""

    def test_favorites_folder_is_virtual(self, store):
        plain = store.create(title="plain")
        starred = store.create(title="starred")
        store.toggle_favorite(starred)

        assert [note.id for note in store.list_notes("favorites")] == [starred]
        assert {note.id for note in store.list_notes("all")} == {plain, starred}

    def test_toggle_favorite_twice(self, store):
        note_id = store.create()

        assert store.toggle_favorite(note_id).is_favorite is True
        assert store.toggle_favorite(note_id).is_favorite is False

    def test_search_matches_plain_text_content(self, store):
        note_id = store.create(title="Shopping", content="<p>Buy <b>Milk</b> &amp; eggs</p>")
        store.create(title="Other", content="<p>nothing here</p>")

        assert [note.id for note in store.search("milk")] == [note_id]
        assert [note.id for note in store.search("& eggs")] == [note_id]
        assert [note.id for note in store.search("SHOP")] == [note_id]

    def test_search_does_not_match_markup(self, store):
        store.create(content="<p class='bold'>text</p>")

        assert store.search("class") == []

    def test_tags_are_deduplicated(self, store):
        note_id = store.create()

        store.add_tag(note_id, "work")
        store.add_tag(note_id, "work")
        store.add_tag(note_id, "home")

        assert store.get(note_id).tags == ["work", "home"]
        assert store.remove_tag(note_id, "work").tags == ["home"]

    def test_tag_operations_on_unknown_note(self, store):
        assert store.add_tag("missing", "x") is None
        assert store.remove_tag("missing", "x") is None
        assert store.toggle_favorite("missing") is None

    def test_strip_markup(self):
        assert strip_markup("<p>a&lt;b</p>").strip() == "a<b"
        assert strip_markup("") == ""


class TestFolders:
    """Folder lifecycle."""

    def test_reserved_folders_exist(self, store):
        ids = [folder.id for folder in store.folders()]

        assert ids[:2] == ["all", "favorites"]

    def test_delete_folder_reassigns_notes(self, store):
        folder = store.add_folder("Work")
        in_folder = [store.create(folder_id=folder.id) for _ in range(3)]
        elsewhere = store.create()

        assert store.delete_folder(folder.id) is True

        assert folder.id not in {f.id for f in store.folders()}
        for note_id in in_folder:
            assert store.get(note_id).folder_id == "all"
        assert store.get(elsewhere).folder_id == "all"
        assert all(note.folder_id != folder.id for note in store.list_notes())

    def test_reserved_folders_cannot_be_deleted(self, store):
        assert store.delete_folder("all") is False
        assert store.delete_folder("favorites") is False
        assert store.delete_folder("nope") is False


class TestPersistence:
    """Write-through local persistence."""

    def test_collection_survives_restart(self, storage):
        store = NoteStore(storage)
        folder = store.add_folder("Ideas", "folder")
        note_id = store.create(folder_id=folder.id, title="Persisted", tags=["a"])

        reloaded = NoteStore(storage)

        note = reloaded.get(note_id)
        assert note.title == "Persisted"
        assert note.folder_id == folder.id
        assert folder.id in {f.id for f in reloaded.folders()}

    def test_storage_uses_camel_case(self, storage):
        store = NoteStore(storage)
        store.create(title="wire")

        saved = storage.get(STORAGE_KEY)
        assert {"folderId", "isFavorite", "createdAt", "updatedAt"} <= set(saved["notes"][0])

    def test_storage_failure_is_swallowed(self, storage, monkeypatch):
        store = NoteStore(storage)

        def broken_set(key, value):
            raise OSError("disk full")

        monkeypatch.setattr(storage, "set", broken_set)

        note_id = store.create(title="still here")
        assert store.get(note_id).title == "still here"

    def test_invalid_records_are_skipped_on_load(self, storage):
        storage.set(
            STORAGE_KEY,
            {"notes": [{"id": "ok", "title": "fine"}, {"title": "no id"}, "garbage"]},
        )

        store = NoteStore(storage)

        assert [note.id for note in store.list_notes()] == ["ok"]

    def test_listeners_receive_changed_id(self, store):
        seen = []
        store.subscribe(seen.append)

        note_id = store.create()
        store.update(note_id, {"title": "x"})
        store.import_notes([])

        assert seen == [note_id, note_id, None]

    def test_listener_errors_do_not_break_mutations(self, store):
        def broken(_note_id):
            raise RuntimeError("boom")

        store.subscribe(broken)

        note_id = store.create(title="ok")
        assert store.get(note_id) is not None


class TestImport:
    """Bulk import."""

    def test_merge_adds_only_new_ids(self, store):
        existing = store.create(title="local")

        count = store.import_notes(
            [{"id": existing, "title": "remote copy"}, {"id": "new1", "title": "new"}],
            merge=True,
        )

        assert count == 1
        assert store.get(existing).title == "local"
        assert store.get("new1").title == "new"

    def test_replace(self, store):
        store.create(title="gone")

        count = store.import_notes([{"id": "a"}, {"id": "a"}, {"id": "b"}], merge=False)

        assert count == 2
        assert {note.id for note in store.list_notes()} == {"a", "b"}

    def test_import_accepts_epoch_milliseconds(self, store):
        store.import_notes([{"id": "ms", "createdAt": 1714564800000, "updatedAt": 1714564800000}])

        assert store.get("ms").created_at.year == 2024
