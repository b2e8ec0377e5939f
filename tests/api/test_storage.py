"""Tests for local JSON-file storage."""

import pytest

from api.storage import LocalStorage


class TestLocalStorage:
    def test_missing_key_returns_default(self, storage):
        assert storage.get("absent") is None
        assert storage.get("absent", {"x": 1}) == {"x": 1}

    def test_set_get_remove(self, storage):
        storage.set("notes", {"notes": [{"id": "1", "title": "héllo"}]})

        assert storage.get("notes") == {"notes": [{"id": "1", "title": "héllo"}]}

        storage.remove("notes")
        assert storage.get("notes") is None
        storage.remove("notes")

    def test_corrupt_file_reads_as_default(self, storage):
        storage.data_dir.mkdir(parents=True)
        (storage.data_dir / "broken.json").write_text("{not json", encoding="utf-8")

        assert storage.get("broken", "fallback") == "fallback"

    def test_overwrite_leaves_no_temp_files(self, storage):
        storage.set("k", 1)
        storage.set("k", 2)

        assert storage.get("k") == 2
        assert [p.name for p in storage.data_dir.iterdir()] == ["k.json"]

    @pytest.mark.parametrize("key", ["../escape", "a/b", "", "spaces here"])
    def test_rejects_unsafe_keys(self, tmp_path, key):
        storage = LocalStorage(tmp_path)

        with pytest.raises(ValueError):
            storage.set(key, 1)
