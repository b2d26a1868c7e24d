"""Tests for dependency resolution of installed packages."""
import logging

import pytest

from conftest import install_rock
from rock_index.core.config import RocksConfig
from rock_index.deps.resolver import DependencyResolver
from rock_index.manifest.builder import ManifestBuilder
from rock_index.manifest.dependencies import update_dependencies
from rock_index.manifest.loader import ManifestLoader
from rock_index.manifest.schemas import EntryRecord, Manifest


class FakeResolver:
    """Returns canned scan results per package."""

    def __init__(self, answers):
        self.answers = answers
        self.calls = []

    def scan(self, manifest, name, version, deps_mode):
        self.calls.append((name, version, deps_mode))
        results, missing = self.answers[name]
        return dict(results), dict(missing)


@pytest.fixture
def manifest():
    return Manifest(
        repository={
            "app": {"1.0-1": [EntryRecord(arch="installed", modules={}, commands={})]},
            "lib": {"2.0-1": [EntryRecord(arch="installed", modules={}, commands={})]},
            "srconly": {"0.1-1": [EntryRecord(arch="rockspec")]},
        }
    )


def test_self_edge_removed(manifest):
    resolver = FakeResolver(
        {
            "app": ({"app": "1.0-1", "lib": "2.0-1"}, {}),
            "lib": ({"lib": "2.0-1"}, {}),
        }
    )
    update_dependencies(manifest, "one", resolver)

    assert manifest.repository["app"]["1.0-1"][0].dependencies == {"lib": "2.0-1"}
    assert manifest.repository["lib"]["2.0-1"][0].dependencies == {}
    assert manifest.repository["srconly"]["0.1-1"][0].dependencies is None
    assert [call[0] for call in resolver.calls] == ["app", "lib"]


def test_missing_rockspec_is_tree_inconsistency(manifest, caplog):
    resolver = FakeResolver(
        {
            "app": ({}, {"app 1.0-1": "Could not open rockspec"}),
            "lib": ({"lib": "2.0-1"}, {}),
        }
    )
    with caplog.at_level(logging.WARNING):
        update_dependencies(manifest, "one", resolver)

    assert "Tree inconsistency detected: app 1.0-1 has no rockspec. Could not open rockspec" in caplog.text
    assert manifest.repository["app"]["1.0-1"][0].dependencies == {}


def test_missing_dependency_reported(manifest, caplog):
    resolver = FakeResolver(
        {
            "app": ({"app": "1.0-1"}, {"ghost >= 1.0": "failed"}),
            "lib": ({"lib": "2.0-1"}, {}),
        }
    )
    with caplog.at_level(logging.WARNING):
        update_dependencies(manifest, "one", resolver)

    assert "Missing dependency for app 1.0-1: ghost >= 1.0" in caplog.text


def test_missing_dependency_silent_in_none_mode(manifest, caplog):
    resolver = FakeResolver(
        {
            "app": ({"app": "1.0-1"}, {"ghost >= 1.0": "failed"}),
            "lib": ({"lib": "2.0-1"}, {}),
        }
    )
    with caplog.at_level(logging.WARNING):
        update_dependencies(manifest, "none", resolver)

    assert "Missing dependency" not in caplog.text


class TestResolver:
    """DependencyResolver against real trees."""

    def test_transitive_closure(self, config, tree_root):
        install_rock(tree_root, "a", "1.0-1", {"lua/a.lua": ""}, dependencies=("b >= 1.0",))
        install_rock(tree_root, "b", "1.5-1", {"lua/b.lua": ""}, dependencies=("c",))
        install_rock(tree_root, "c", "0.1-1", {"lua/c.lua": ""}, dependencies=())

        manifest = ManifestBuilder(config).make_manifest(config.tree().rocks_dir)

        assert manifest.repository["a"]["1.0-1"][0].dependencies == {"b": "1.5-1", "c": "0.1-1"}
        assert manifest.repository["b"]["1.5-1"][0].dependencies == {"c": "0.1-1"}

    def test_newest_matching_version_wins(self, config, tree_root):
        install_rock(tree_root, "b", "1.0-1", {"lua/b.lua": ""}, dependencies=())
        install_rock(tree_root, "b", "2.0-1", {"lua/b.lua": ""}, dependencies=())
        install_rock(tree_root, "b", "3.0-1", {"lua/b.lua": ""}, dependencies=())
        install_rock(tree_root, "a", "1.0-1", {"lua/a.lua": ""}, dependencies=("b < 3.0",))

        manifest = ManifestBuilder(config).make_manifest(config.tree().rocks_dir)
        assert manifest.repository["a"]["1.0-1"][0].dependencies == {"b": "2.0-1"}

    def test_lua_dependency_checked_but_not_recorded(self, config, tree_root):
        install_rock(tree_root, "a", "1.0-1", {"lua/a.lua": ""}, dependencies=("lua >= 5.1",))
        loader = ManifestLoader(config)
        manifest = ManifestBuilder(config, loader=loader).make_manifest(config.tree().rocks_dir)

        results, missing = DependencyResolver(config, loader).scan(manifest, "a", "1.0-1", "one")
        assert results == {"a": "1.0-1"}
        assert missing == {}

    def test_unsatisfied_lua_dependency_is_missing(self, config, tree_root):
        install_rock(tree_root, "a", "1.0-1", {"lua/a.lua": ""}, dependencies=("lua >= 5.3",))
        loader = ManifestLoader(config)
        manifest = ManifestBuilder(config, loader=loader).make_manifest(config.tree().rocks_dir)

        _, missing = DependencyResolver(config, loader).scan(manifest, "a", "1.0-1", "one")
        assert missing == {"lua >= 5.3": "failed"}

    def test_none_mode_resolves_nothing(self, config, tree_root):
        install_rock(tree_root, "b", "1.0-1", {"lua/b.lua": ""}, dependencies=())
        install_rock(tree_root, "a", "1.0-1", {"lua/a.lua": ""}, dependencies=("b",))

        manifest = ManifestBuilder(config).make_manifest(config.tree().rocks_dir, deps_mode="none")
        assert manifest.repository["a"]["1.0-1"][0].dependencies == {}

    def test_all_mode_searches_other_trees(self, tmp_path, tree_root):
        system_root = tmp_path / "system"
        install_rock(system_root, "b", "1.0-1", {"lua/b.lua": ""}, dependencies=())
        install_rock(tree_root, "a", "1.0-1", {"lua/a.lua": ""}, dependencies=("b",))
        config = RocksConfig(
            root_dir=tree_root,
            rocks_trees=[tree_root, system_root],
            local_cache=tmp_path / "cache",
        )
        ManifestBuilder(config).make_manifest(config.tree(system_root).rocks_dir)

        one = ManifestBuilder(config).make_manifest(config.tree().rocks_dir, deps_mode="one")
        assert one.repository["a"]["1.0-1"][0].dependencies == {}

        every = ManifestBuilder(config).make_manifest(config.tree().rocks_dir, deps_mode="all")
        assert every.repository["a"]["1.0-1"][0].dependencies == {"b": "1.0-1"}
