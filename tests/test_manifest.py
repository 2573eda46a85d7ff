"""Tests for manifest persistence."""

import json

import pytest

from pydeepcode.bundle.manifest import ManifestState, ManifestStore


@pytest.fixture
def store(tmp_path):
    return ManifestStore(state_dir=tmp_path / "state")


class TestManifestStore:
    """Tests for ManifestStore."""

    def test_load_without_manifest(self, store, tmp_path):
        """A workspace never saved has an empty manifest."""
        assert store.load_state(tmp_path) is None
        assert store.load_manifest(tmp_path) == {}

    def test_save_and_load(self, store, tmp_path):
        """A saved manifest is loaded back with its bundle id."""
        manifest = {"b.txt": "2", "a.txt": "1"}

        state_file = store.save_manifest(tmp_path, manifest, bundle_id="bundle-1")

        assert state_file.exists()
        state = store.load_state(tmp_path)
        assert state.files == manifest
        assert state.bundle_id == "bundle-1"
        assert state.workspace_path == str(tmp_path.resolve())
        assert state.last_update is not None

    def test_workspaces_are_separate(self, store, tmp_path):
        """Each workspace has its own manifest file."""
        first = tmp_path / "one"
        second = tmp_path / "two"
        first.mkdir()
        second.mkdir()

        store.save_manifest(first, {"a.txt": "1"})

        assert store.load_manifest(second) == {}
        assert store.load_manifest(first) == {"a.txt": "1"}

    def test_corrupt_file_is_ignored(self, store, tmp_path):
        """An unreadable manifest is treated as missing."""
        store.state_dir.mkdir(parents=True)
        store._get_state_file(tmp_path).write_text("{not json")

        assert store.load_state(tmp_path) is None

    def test_files_must_be_object(self, store, tmp_path):
        """A manifest with malformed files is treated as missing."""
        store.state_dir.mkdir(parents=True)
        store._get_state_file(tmp_path).write_text(json.dumps({"files": ["a"]}))

        assert store.load_manifest(tmp_path) == {}

    def test_clear(self, store, tmp_path):
        """Clearing removes the stored manifest once."""
        store.save_manifest(tmp_path, {"a.txt": "1"})

        assert store.clear(tmp_path) is True
        assert store.clear(tmp_path) is False
        assert store.load_state(tmp_path) is None


class TestManifestState:
    """Tests for ManifestState serialization."""

    def test_to_dict_sorts_files(self):
        """Files are written in path order."""
        state = ManifestState("/ws", files={"b": "2", "a": "1"})
        assert list(state.to_dict()["files"]) == ["a", "b"]

    def test_from_dict_defaults(self):
        """Missing keys fall back to defaults."""
        state = ManifestState.from_dict({"workspace_path": "/ws"})
        assert state.files == {}
        assert state.bundle_id is None
