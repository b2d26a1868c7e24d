"""Tests for atomic manifest persistence."""
import json
from pathlib import Path

import pytest

from rock_index.core import fs
from rock_index.core.errors import PersistError
from rock_index.manifest.persist import load_table, save_table
from rock_index.manifest.schemas import EntryRecord, Manifest, Provider


@pytest.fixture
def manifest():
    return Manifest(
        repository={"pkg": {"1.0-1": [EntryRecord(arch="installed", modules={"m": "m.lua"}, commands={})]}},
        modules={"m": [Provider(name="pkg", version="1.0-1")]},
    )


def test_providers_persist_as_strings(tmp_path, manifest):
    path = save_table(tmp_path, "manifest", manifest)

    data = json.loads(path.read_text())
    assert data["modules"] == {"m": ["pkg/1.0-1"]}
    assert set(data) == {"repository", "modules", "commands"}
    assert "dependencies" not in data["repository"]["pkg"]["1.0-1"][0]
    assert load_table(path, Manifest) == manifest


def test_interrupted_write_leaves_previous_manifest(tmp_path, manifest):
    """Test: readers never see a partial write.

    Given: a complete manifest on disk and a half-written temporary file
    When: the manifest is loaded
    Then: the previous complete content is returned
    """
    save_table(tmp_path, "manifest", manifest)
    (tmp_path / "manifest.x7q2.tmp").write_text('{"repository": {"half')

    assert load_table(tmp_path / "manifest", Manifest) == manifest


def test_failed_replace_keeps_target(tmp_path, manifest, monkeypatch):
    save_table(tmp_path, "manifest", manifest)

    def failing_replace(target, source):
        raise OSError("disk full")

    monkeypatch.setattr(fs, "replace_file", failing_replace)
    with pytest.raises(PersistError) as excinfo:
        save_table(tmp_path, "manifest", Manifest())

    assert excinfo.value.code == "save"
    assert load_table(tmp_path / "manifest", Manifest) == manifest
    assert list(tmp_path.glob("*.tmp")) == []


def test_save_never_writes_live_path_directly(tmp_path, manifest, monkeypatch):
    written = []
    real_replace = fs.replace_file

    def recording_replace(target, source):
        written.append((Path(target).name, Path(source).name))
        real_replace(target, source)

    monkeypatch.setattr(fs, "replace_file", recording_replace)
    save_table(tmp_path, "manifest", manifest)
    save_table(tmp_path, "manifest", manifest)

    assert [target for target, _ in written] == ["manifest", "manifest"]
    sources = [source for _, source in written]
    assert all(s.startswith("manifest.") and s.endswith(".tmp") for s in sources)
    assert sources[0] != sources[1]
    assert list(tmp_path.glob("*.tmp")) == []


def test_concurrent_writer_cannot_tear_manifest(tmp_path, manifest, monkeypatch):
    """Test: another writer's temporary file never reaches the live path.

    Given: a second writer leaves a half-written manifest.tmp while the
        first writer is about to move its own file into place
    When: the first writer completes
    Then: the live manifest holds the first writer's complete content
    """
    real_replace = fs.replace_file

    def interleaved_replace(target, source):
        (tmp_path / "manifest.x7q2.tmp").write_text('{"repository": {"half')
        real_replace(target, source)

    monkeypatch.setattr(fs, "replace_file", interleaved_replace)
    save_table(tmp_path, "manifest", manifest)

    assert load_table(tmp_path / "manifest", Manifest) == manifest


def test_saved_manifest_is_world_readable(tmp_path, manifest):
    path = save_table(tmp_path, "manifest", manifest)
    assert path.stat().st_mode & 0o777 == 0o644


def test_load_missing_file(tmp_path):
    with pytest.raises(PersistError) as excinfo:
        load_table(tmp_path / "manifest", Manifest)
    assert excinfo.value.code == "open"


def test_load_invalid_content(tmp_path):
    (tmp_path / "manifest").write_text("return {}")
    with pytest.raises(PersistError) as excinfo:
        load_table(tmp_path / "manifest", Manifest)
    assert excinfo.value.code == "load"
